"""Fuelogic Alerts: tank status classification and webhook alert dispatch."""

__version__ = "0.1.0"
