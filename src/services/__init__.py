"""Services module for CRM Desk."""

from services.http_client import AsyncHttpClient, ErrorConfig, ErrorStrategy, RetryConfig
from services.record_client import RecordApiError, RecordClient, RecordResponse

__all__ = [
    "AsyncHttpClient",
    "ErrorConfig",
    "ErrorStrategy",
    "RetryConfig",
    "RecordApiError",
    "RecordClient",
    "RecordResponse",
]
