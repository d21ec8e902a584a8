"""Dismissal bookkeeping for derived alerts.

Dismissal keys are per source entity, not per alert: every task alert for task
7 is suppressed by ``task-7``, and a contact's follow-up by ``follow-up-3``.
Alert ids are mapped onto those keys by stripping their kind prefix.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

ALERT_PREFIX_PATTERN = re.compile(r"^(overdue|due-today|due-tomorrow|follow-up)-")

_TASK_PREFIXES = frozenset({"overdue", "due-today", "due-tomorrow"})


def task_key(task_id: int | str) -> str:
    """Return the dismissal key covering every alert for a task."""
    return f"task-{task_id}"


def follow_up_key(contact_id: int | str) -> str:
    """Return the dismissal key covering a contact's follow-up alert."""
    return f"follow-up-{contact_id}"


def dismissal_key(alert_id: str) -> str:
    """Map an alert id to the dismissal key of its source entity.

    Ids without a known prefix are taken to already be dismissal keys.
    """
    match = ALERT_PREFIX_PATTERN.match(alert_id)
    if match is None:
        return alert_id
    source_id = alert_id[match.end() :]
    if match.group(1) in _TASK_PREFIXES:
        return task_key(source_id)
    return follow_up_key(source_id)


class DismissalSet:
    """Dismissal keys held for the lifetime of one alert engine."""

    def __init__(self, keys: set[str] | None = None) -> None:
        self._keys: set[str] = set(keys or ())

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def add(self, key: str) -> None:
        if key not in self._keys:
            logger.debug("Dismissal key added: %s", key)
        self._keys.add(key)

    def clear(self) -> None:
        self._keys.clear()

    def keys(self) -> frozenset[str]:
        return frozenset(self._keys)
