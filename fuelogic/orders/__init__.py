"""Fuel orders announced to order webhooks."""

from .models import FuelOrder, group_by_station

__all__ = ["FuelOrder", "group_by_station"]
