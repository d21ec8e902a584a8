"""Alert value types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AlertKind(str, Enum):
    """What an alert is about."""

    TASK_OVERDUE = "task_overdue"
    TASK_DUE_TODAY = "task_due_today"
    TASK_DUE_TOMORROW = "task_due_tomorrow"
    CONTACT_FOLLOW_UP = "contact_follow_up"


class AlertPriority(str, Enum):
    """Alert urgency; ``rank`` orders high before low."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {AlertPriority.HIGH: 0, AlertPriority.MEDIUM: 1, AlertPriority.LOW: 2}

# Alert id prefix per kind; ids are "<prefix>-<source id>".
ALERT_ID_PREFIX = {
    AlertKind.TASK_OVERDUE: "overdue",
    AlertKind.TASK_DUE_TODAY: "due-today",
    AlertKind.TASK_DUE_TOMORROW: "due-tomorrow",
    AlertKind.CONTACT_FOLLOW_UP: "follow-up",
}

KIND_PRIORITY = {
    AlertKind.TASK_OVERDUE: AlertPriority.HIGH,
    AlertKind.TASK_DUE_TODAY: AlertPriority.MEDIUM,
    AlertKind.TASK_DUE_TOMORROW: AlertPriority.LOW,
    AlertKind.CONTACT_FOLLOW_UP: AlertPriority.MEDIUM,
}


@dataclass(frozen=True)
class AlertAction:
    """A user action offered on an alert."""

    type: str
    label: str


COMPLETE_ACTION = AlertAction(type="complete", label="Mark Complete")
DISMISS_ACTION = AlertAction(type="dismiss", label="Dismiss")


@dataclass(frozen=True)
class Alert:
    """A derived notification, rebuilt on every load.

    Source entities are referenced by id only: ``task_id`` for task alerts,
    ``contact_id`` and ``activity_ids`` (newest first) for follow-ups.
    """

    id: str
    kind: AlertKind
    priority: AlertPriority
    title: str
    message: str
    timestamp: Any
    actions: tuple[AlertAction, ...]
    task_id: int | None = None
    contact_id: int | None = None
    activity_ids: tuple[int, ...] = field(default_factory=tuple)

    @property
    def action_types(self) -> list[str]:
        return [action.type for action in self.actions]


def make_alert_id(kind: AlertKind, source_id: int | str) -> str:
    """Return the deterministic id for an alert of ``kind`` about ``source_id``."""
    return f"{ALERT_ID_PREFIX[kind]}-{source_id}"


@dataclass(frozen=True)
class AlertActionResult:
    """Acknowledgment returned by dismiss and complete actions."""

    success: bool = True
