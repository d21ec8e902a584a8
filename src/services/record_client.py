"""Generic client for the remote record-storage API.

Every CRM table is reached through the same five calls. The backend answers
with a JSON envelope::

    {"success": true, "message": null, "data": [...],
     "results": [{"success": false, "errors": [{"fieldLabel": "Email",
                                                "message": "is required"}]}]}

``results`` is only present for write calls and reports per-record outcomes.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from config import settings
from services.http_client import AsyncHttpClient

logger = logging.getLogger(__name__)


class RecordApiError(Exception):
    """Raised when the record API reports a failed call or failed records."""

    def __init__(self, message: str, results: list["RecordResult"] | None = None) -> None:
        super().__init__(message)
        self.results = results or []

    @property
    def field_errors(self) -> list["FieldError"]:
        """Flatten field-level errors across all failed results."""
        return [error for result in self.results for error in result.errors]


class FieldError(BaseModel):
    """A single field-level validation failure."""

    model_config = ConfigDict(populate_by_name=True)

    field_label: str | None = Field(default=None, alias="fieldLabel")
    message: str = ""


class RecordResult(BaseModel):
    """Outcome for one record in a create, update, or delete call."""

    success: bool
    data: Any = None
    message: str | None = None
    errors: list[FieldError] = Field(default_factory=list)


class RecordResponse(BaseModel):
    """Envelope returned by every record API call."""

    success: bool
    message: str | None = None
    data: Any = None
    results: list[RecordResult] | None = None

    def raise_for_failure(self, default_message: str = "Record API request failed") -> None:
        """Raise RecordApiError when the envelope reports failure."""
        if not self.success:
            raise RecordApiError(self.message or default_message)

    def failed_results(self) -> list[RecordResult]:
        """Return the per-record results that did not succeed."""
        return [result for result in self.results or [] if not result.success]

    def successful_results(self) -> list[RecordResult]:
        """Return the per-record results that succeeded."""
        return [result for result in self.results or [] if result.success]


class RecordClient:
    """Async client for table-scoped record operations."""

    def __init__(self, http_client: AsyncHttpClient | None = None) -> None:
        """Create a client, defaulting to the configured record API."""
        self.http = http_client or AsyncHttpClient(
            base_url=settings.record_api.url,
            headers=_default_headers(),
        )

    async def fetch_records(self, table: str, params: dict[str, Any]) -> RecordResponse:
        """Query records in ``table`` using fields/where/orderBy/pagingInfo params."""
        logger.debug("Record fetch: table=%s", table)
        return await self._call("POST", f"/tables/{table}/records/query", params)

    async def get_record_by_id(
        self, table: str, record_id: int, params: dict[str, Any]
    ) -> RecordResponse:
        """Fetch a single record by id."""
        logger.debug("Record get: table=%s id=%s", table, record_id)
        return await self._call("POST", f"/tables/{table}/records/{record_id}/query", params)

    async def create_record(self, table: str, params: dict[str, Any]) -> RecordResponse:
        """Create the records listed under ``params["records"]``."""
        logger.info("Record create: table=%s count=%s", table, len(params.get("records", [])))
        return await self._call("POST", f"/tables/{table}/records", params)

    async def update_record(self, table: str, params: dict[str, Any]) -> RecordResponse:
        """Update the records listed under ``params["records"]`` (each carries ``Id``)."""
        logger.info("Record update: table=%s count=%s", table, len(params.get("records", [])))
        return await self._call("PATCH", f"/tables/{table}/records", params)

    async def delete_record(self, table: str, params: dict[str, Any]) -> RecordResponse:
        """Delete the ids listed under ``params["RecordIds"]``."""
        logger.info("Record delete: table=%s ids=%s", table, params.get("RecordIds"))
        return await self._call("DELETE", f"/tables/{table}/records", params)

    async def _call(self, method: str, path: str, params: dict[str, Any]) -> RecordResponse:
        response = await self.http.request(method, path, json=params)
        if response is None:
            return RecordResponse(success=False, message=f"{method} {path} failed")
        return RecordResponse.model_validate(response.json())


def _default_headers() -> dict[str, str]:
    """Build auth and project headers from settings."""
    headers = {"Content-Type": "application/json"}
    if settings.record_api.api_key:
        headers["Authorization"] = f"Bearer {settings.record_api.api_key}"
    if settings.record_api.project_id:
        headers["X-Project-Id"] = settings.record_api.project_id
    return headers
