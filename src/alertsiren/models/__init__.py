"""Data models for alert API responses."""

from alertsiren.models.alerts import Alert, AlertObservation, ApiModel, Region

__all__ = [
    "Alert",
    "AlertObservation",
    "ApiModel",
    "Region",
]
