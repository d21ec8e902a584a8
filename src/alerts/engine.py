"""Derive the alert feed from tasks, activities, and contacts.

Alerts are never stored. Each :meth:`AlertEngine.get_all` call loads the three
source collections concurrently and rebuilds the list:

- incomplete tasks produce at most one of overdue (high), due today (medium),
  or due tomorrow (low), checked in that order;
- contacts with activity inside the trailing follow-up window produce one
  follow-up alert (medium) counting those activities.

The result is ordered by priority, then newest timestamp first. Dismissals and
task completions recorded on the engine suppress matching alerts on later loads.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from functools import cmp_to_key
from typing import Any, Protocol

from alerts.dismissals import DismissalSet, dismissal_key, follow_up_key, task_key
from alerts.models import (
    COMPLETE_ACTION,
    DISMISS_ACTION,
    KIND_PRIORITY,
    Alert,
    AlertActionResult,
    AlertKind,
    make_alert_id,
)
from config import settings
from crm.models import Activity, Contact, Task
from crm.services import ActivityService, ContactService, TaskService
from date_utils import (
    coerce_datetime,
    safe_date_sort,
    safe_format,
    safe_is_after,
    safe_is_today,
    safe_is_tomorrow,
    safe_sub_days,
)
from services.record_client import RecordClient
from time_utils import local_now, to_local

logger = logging.getLogger(__name__)

_TASK_ALERT_TITLES = {
    AlertKind.TASK_OVERDUE: "Overdue Task",
    AlertKind.TASK_DUE_TODAY: "Due Today",
    AlertKind.TASK_DUE_TOMORROW: "Due Tomorrow",
}


class TaskStore(Protocol):
    """Task source; also receives completion updates."""

    async def get_all(self) -> Sequence[Task]: ...

    async def update(self, record_id: int | str, data: Mapping[str, Any]) -> Any: ...


class ActivityStore(Protocol):
    async def get_all(self) -> Sequence[Activity]: ...


class ContactStore(Protocol):
    async def get_all(self) -> Sequence[Contact]: ...


class AlertError(Exception):
    """Base class for alert engine failures."""


class AlertLoadError(AlertError):
    """Raised when the alert feed cannot be built."""


class TaskCompletionError(AlertError):
    """Raised when a task cannot be marked complete."""


class AlertEngine:
    """Builds alerts and tracks which ones the user has dismissed.

    Args:
        task_store: Source of tasks; ``update`` is used by :meth:`complete_task`.
        activity_store: Source of activities.
        contact_store: Source of contacts.
        dismissals: Dismissal state owned by this engine (fresh set by default).
        clock: Returns the current time (default: ``time_utils.local_now``).
        follow_up_window_days: Trailing window for follow-ups
            (default: settings.alerts.follow_up_window_days).
        date_format: strftime pattern for due dates in overdue messages
            (default: settings.alerts.date_format).
    """

    def __init__(
        self,
        task_store: TaskStore,
        activity_store: ActivityStore,
        contact_store: ContactStore,
        *,
        dismissals: DismissalSet | None = None,
        clock: Callable[[], datetime] | None = None,
        follow_up_window_days: int | None = None,
        date_format: str | None = None,
    ) -> None:
        self.task_store = task_store
        self.activity_store = activity_store
        self.contact_store = contact_store
        self.dismissals = dismissals if dismissals is not None else DismissalSet()
        self._clock = clock or local_now
        self.follow_up_window_days = (
            follow_up_window_days
            if follow_up_window_days is not None
            else settings.alerts.follow_up_window_days
        )
        self.date_format = date_format or settings.alerts.date_format

    async def get_all(self) -> list[Alert]:
        """Load sources and return the ordered alert list.

        Raises:
            AlertLoadError: If any source fails or the alerts cannot be built.
        """
        try:
            tasks, activities, contacts = await self._load_sources()
            now = to_local(self._clock())
            alerts = self._task_alerts(tasks, now)
            alerts.extend(self._follow_up_alerts(activities, contacts, now))
            alerts.sort(key=cmp_to_key(_compare_alerts))
        except Exception as exc:
            logger.error("AlertEngine.get_all failed: %s", exc)
            raise AlertLoadError("Failed to load alerts") from exc
        logger.info("Alerts loaded: count=%s dismissed_keys=%s", len(alerts), len(self.dismissals))
        return alerts

    async def dismiss_alert(self, alert_id: str) -> AlertActionResult:
        """Suppress the alert's source from subsequent loads."""
        self.dismissals.add(dismissal_key(alert_id))
        return AlertActionResult(success=True)

    async def complete_task(self, task_id: int | str) -> AlertActionResult:
        """Mark a task complete in the store and suppress its alerts.

        Raises:
            TaskCompletionError: If the store update fails; dismissals are untouched.
        """
        try:
            await self.task_store.update(task_id, {"completed": True})
        except Exception as exc:
            logger.error("AlertEngine.complete_task failed for task %s: %s", task_id, exc)
            raise TaskCompletionError("Failed to complete task") from exc
        self.dismissals.add(task_key(task_id))
        return AlertActionResult(success=True)

    def clear_dismissed_alerts(self) -> None:
        """Forget every dismissal."""
        self.dismissals.clear()

    async def _load_sources(
        self,
    ) -> tuple[Sequence[Task], Sequence[Activity], Sequence[Contact]]:
        # A failure in one fetch cancels the others.
        async with asyncio.TaskGroup() as group:
            tasks = group.create_task(self.task_store.get_all())
            activities = group.create_task(self.activity_store.get_all())
            contacts = group.create_task(self.contact_store.get_all())
        return tasks.result(), activities.result(), contacts.result()

    def _task_alerts(self, tasks: Sequence[Task], now: datetime) -> list[Alert]:
        alerts: list[Alert] = []
        for task in tasks:
            if task.completed or task.due_date in (None, ""):
                continue
            if task_key(task.id) in self.dismissals:
                continue
            kind = _task_alert_kind(task.due_date, now)
            if kind is not None:
                alerts.append(self._task_alert(task, kind))
        return alerts

    def _task_alert(self, task: Task, kind: AlertKind) -> Alert:
        if kind is AlertKind.TASK_OVERDUE:
            due = safe_format(task.due_date, self.date_format, "unknown date")
            message = f'"{task.title}" was due {due}'
            actions = (COMPLETE_ACTION, DISMISS_ACTION)
        elif kind is AlertKind.TASK_DUE_TODAY:
            message = f'"{task.title}" is due today'
            actions = (COMPLETE_ACTION, DISMISS_ACTION)
        else:
            message = f'"{task.title}" is due tomorrow'
            actions = (DISMISS_ACTION,)
        return Alert(
            id=make_alert_id(kind, task.id),
            kind=kind,
            priority=KIND_PRIORITY[kind],
            title=_TASK_ALERT_TITLES[kind],
            message=message,
            timestamp=task.due_date,
            actions=actions,
            task_id=task.id,
        )

    def _follow_up_alerts(
        self,
        activities: Sequence[Activity],
        contacts: Sequence[Contact],
        now: datetime,
    ) -> list[Alert]:
        window_start = safe_sub_days(now, self.follow_up_window_days, fallback=now)
        recent = [
            activity
            for activity in activities
            if _within(activity.timestamp, window_start, now)
        ]
        recent.sort(key=cmp_to_key(lambda a, b: safe_date_sort(a.timestamp, b.timestamp)))

        by_contact: dict[int, list[Activity]] = {}
        for activity in recent:
            if activity.contact_id is not None:
                by_contact.setdefault(activity.contact_id, []).append(activity)

        contacts_by_id = {contact.id: contact for contact in contacts}
        alerts: list[Alert] = []
        for contact_id, group in by_contact.items():
            if follow_up_key(contact_id) in self.dismissals:
                continue
            contact = contacts_by_id.get(contact_id)
            if contact is None:
                continue
            count = len(group)
            noun = "activity" if count == 1 else "activities"
            kind = AlertKind.CONTACT_FOLLOW_UP
            alerts.append(
                Alert(
                    id=make_alert_id(kind, contact_id),
                    kind=kind,
                    priority=KIND_PRIORITY[kind],
                    title="Follow-up Needed",
                    message=f"{contact.name} - {count} recent {noun}",
                    timestamp=group[0].timestamp,
                    actions=(DISMISS_ACTION,),
                    contact_id=contact_id,
                    activity_ids=tuple(activity.id for activity in group),
                )
            )
        return alerts


def _task_alert_kind(due_date: Any, now: datetime) -> AlertKind | None:
    if safe_is_after(now, due_date):
        return AlertKind.TASK_OVERDUE
    if safe_is_today(due_date, now=now):
        return AlertKind.TASK_DUE_TODAY
    if safe_is_tomorrow(due_date, now=now):
        return AlertKind.TASK_DUE_TOMORROW
    return None


def _within(value: Any, start: datetime, end: datetime) -> bool:
    moment = coerce_datetime(value)
    return moment is not None and start <= moment <= end


def _compare_alerts(first: Alert, second: Alert) -> int:
    rank_diff = first.priority.rank - second.priority.rank
    if rank_diff:
        return rank_diff
    return safe_date_sort(first.timestamp, second.timestamp)


def create_alert_engine(
    client: RecordClient | None = None, **kwargs: Any
) -> AlertEngine:
    """Build an engine backed by the record API task, activity, and contact tables."""
    client = client or RecordClient()
    return AlertEngine(
        TaskService(client),
        ActivityService(client),
        ContactService(client),
        **kwargs,
    )
