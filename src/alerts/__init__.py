"""Derived alert feed for CRM tasks and contacts."""

from alerts.dismissals import DismissalSet, dismissal_key
from alerts.engine import (
    AlertEngine,
    AlertError,
    AlertLoadError,
    TaskCompletionError,
    create_alert_engine,
)
from alerts.models import Alert, AlertAction, AlertActionResult, AlertKind, AlertPriority

__all__ = [
    "Alert",
    "AlertAction",
    "AlertActionResult",
    "AlertEngine",
    "AlertError",
    "AlertKind",
    "AlertLoadError",
    "AlertPriority",
    "DismissalSet",
    "TaskCompletionError",
    "create_alert_engine",
    "dismissal_key",
]
