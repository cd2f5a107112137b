"""
Tank readings, status classification and threshold configuration.
"""

from .models import TankReading
from .thresholds import TankStatus, ThresholdConfig, classify, classify_percent, summarize
from .config_store import ConfigurationStore

__all__ = [
    "TankReading",
    "TankStatus",
    "ThresholdConfig",
    "classify",
    "classify_percent",
    "summarize",
    "ConfigurationStore",
]
