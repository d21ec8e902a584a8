"""Shared CRUD behavior for CRM tables backed by the record API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from crm.models import CrmRecord, lookup_id
from services.record_client import RecordApiError, RecordClient, RecordResponse

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=CrmRecord)

SYSTEM_FIELDS = ("Name", "CreatedOn", "ModifiedOn")
LOOKUP_COLUMNS = frozenset({"contact_id", "deal_id"})


class RecordNotFoundError(LookupError):
    """Raised when a record id does not resolve."""


def field_list(names: list[str] | tuple[str, ...]) -> list[dict[str, dict[str, str]]]:
    """Build the ``fields`` query parameter for the given column names."""
    return [{"field": {"Name": name}} for name in names]


def where_equals(column: str, value: Any) -> list[dict[str, Any]]:
    """Build a single-condition ``where`` clause."""
    return [{"FieldName": column, "Operator": "EqualTo", "Values": [value]}]


class RecordService(Generic[RecordT]):
    """Base service for one backend table.

    Subclasses declare the table, the record model, a human label used in error
    messages, and ``columns``: the writable columns keyed by their plain name
    with the wire name as value. Writes accept either spelling, so both
    ``{"title": ...}`` and ``{"title_c": ...}`` work, as do pydantic drafts.
    """

    table: ClassVar[str]
    model: ClassVar[type[CrmRecord]]
    label: ClassVar[str]
    label_plural: ClassVar[str]
    columns: ClassVar[dict[str, str]]
    order_by: ClassVar[list[dict[str, str]] | None] = None
    paging: ClassVar[dict[str, int] | None] = None

    def __init__(self, client: RecordClient | None = None) -> None:
        self.client = client or RecordClient()

    @property
    def fields(self) -> list[dict[str, dict[str, str]]]:
        names = dict.fromkeys(SYSTEM_FIELDS + tuple(self.columns.values()))
        return field_list(tuple(names))

    def query_params(self, where: list[dict[str, Any]] | None = None) -> dict[str, Any]:
        """Return fetch parameters with the table's ordering and paging applied."""
        params: dict[str, Any] = {"fields": self.fields}
        if where:
            params["where"] = where
        if self.order_by:
            params["orderBy"] = self.order_by
        if self.paging:
            params["pagingInfo"] = self.paging
        return params

    async def get_all(self) -> list[RecordT]:
        """Return every record in the table."""
        return await self._fetch(self.query_params(), f"Error fetching {self.label_plural}")

    async def get_by_id(self, record_id: int | str) -> RecordT:
        """Return one record, raising RecordNotFoundError when it is missing."""
        response = await self.client.get_record_by_id(
            self.table, int(record_id), {"fields": self.fields}
        )
        self._check(response, f"Error fetching {self.label} {record_id}")
        if not response.data:
            raise RecordNotFoundError(f"{self.label.capitalize()} {record_id} not found")
        return self.model.model_validate(response.data)

    async def create(self, data: Mapping[str, Any] | BaseModel) -> RecordT | None:
        """Create a record and return it as stored."""
        response = await self.client.create_record(self.table, {"records": [self.clean(data)]})
        return self._single_result(response, "create")

    async def update(
        self, record_id: int | str, data: Mapping[str, Any] | BaseModel
    ) -> RecordT | None:
        """Apply a partial update and return the stored record."""
        record = {"Id": int(record_id), **self.clean(data)}
        response = await self.client.update_record(self.table, {"records": [record]})
        return self._single_result(response, "update")

    async def delete(self, record_id: int | str) -> bool:
        """Delete a record; True when the backend confirms it."""
        response = await self.client.delete_record(self.table, {"RecordIds": [int(record_id)]})
        self._check(response, f"Error deleting {self.label} {record_id}")
        if response.results is None:
            return True
        failed = response.failed_results()
        if failed:
            logger.error("Failed to delete %s %s: %s", len(failed), self.label_plural, failed)
            raise RecordApiError(f"Failed to delete {self.label}", failed)
        return bool(response.successful_results())

    def clean(self, data: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
        """Keep writable columns only, keyed by wire name, dropping unset values."""
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_none=True)
        cleaned: dict[str, Any] = {}
        for name, wire_name in self.columns.items():
            value = data.get(wire_name)
            if value is None:
                value = data.get(name)
            if value is None:
                continue
            if name in LOOKUP_COLUMNS:
                try:
                    value = lookup_id(value)
                except (TypeError, ValueError) as exc:
                    raise RecordApiError(f"Invalid {name} for {self.label}: {value!r}") from exc
                if value is None:
                    continue
            cleaned[wire_name] = value
        return cleaned

    async def _fetch(self, params: dict[str, Any], context: str) -> list[RecordT]:
        response = await self.client.fetch_records(self.table, params)
        self._check(response, context)
        return [self.model.model_validate(item) for item in response.data or []]

    def _check(self, response: RecordResponse, context: str) -> None:
        if not response.success:
            logger.error("%s: %s", context, response.message)
            response.raise_for_failure(context)

    def _single_result(self, response: RecordResponse, verb: str) -> RecordT | None:
        self._check(response, f"Error during {self.label} {verb}")
        if response.results is None:
            data = response.data
        else:
            failed = response.failed_results()
            if failed:
                logger.error("Failed to %s %s %s: %s", verb, len(failed), self.label_plural, failed)
                raise RecordApiError(f"Failed to {verb} {self.label}", failed)
            successful = response.successful_results()
            data = successful[0].data if successful else None
        if not data:
            return None
        return self.model.model_validate(data)
