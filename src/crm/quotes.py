"""In-process quote store.

The record backend has no quote table, so quotes are kept in memory for the
lifetime of the store, optionally seeded from a list of quote payloads.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from functools import cmp_to_key
from typing import Any

from crm.models import Quote, QuoteDraft
from crm.records import RecordNotFoundError
from date_utils import safe_date_sort, safe_to_iso_string
from time_utils import local_now

logger = logging.getLogger(__name__)


class QuoteStore:
    """CRUD and search over quotes held in memory."""

    def __init__(self, quotes: Iterable[Mapping[str, Any] | Quote] = ()) -> None:
        self._quotes: list[Quote] = [
            quote if isinstance(quote, Quote) else Quote.model_validate(quote) for quote in quotes
        ]

    async def get_all(self) -> list[Quote]:
        """Return all quotes, newest quote date first."""
        ordered = sorted(
            self._quotes,
            key=cmp_to_key(lambda a, b: safe_date_sort(a.quote_date, b.quote_date)),
        )
        return [quote.model_copy(deep=True) for quote in ordered]

    async def get_by_id(self, quote_id: int | str) -> Quote:
        """Return a copy of one quote."""
        return self._find(quote_id).model_copy(deep=True)

    async def create(self, data: Mapping[str, Any] | QuoteDraft) -> Quote:
        """Store a new quote with the next free id."""
        payload = data.to_quote_data() if isinstance(data, QuoteDraft) else dict(data)
        payload.pop("Id", None)
        payload.pop("id", None)
        now = safe_to_iso_string(local_now())
        next_id = max((quote.id for quote in self._quotes), default=0) + 1
        quote = Quote.model_validate(
            {**payload, "Id": next_id, "created_date": now, "modified_date": now}
        )
        self._quotes.append(quote)
        logger.info("Quote created: id=%s company=%s", quote.id, quote.company)
        return quote.model_copy(deep=True)

    async def update(self, quote_id: int | str, data: Mapping[str, Any] | QuoteDraft) -> Quote:
        """Merge ``data`` into an existing quote."""
        current = self._find(quote_id)
        payload = data.to_quote_data() if isinstance(data, QuoteDraft) else dict(data)
        payload.pop("Id", None)
        payload.pop("id", None)
        merged = {
            **current.model_dump(),
            **payload,
            "id": current.id,
            "modified_date": safe_to_iso_string(local_now()),
        }
        updated = Quote.model_validate(merged)
        self._quotes[self._quotes.index(current)] = updated
        logger.info("Quote updated: id=%s", updated.id)
        return updated.model_copy(deep=True)

    async def delete(self, quote_id: int | str) -> bool:
        """Remove a quote."""
        self._quotes.remove(self._find(quote_id))
        logger.info("Quote deleted: id=%s", quote_id)
        return True

    async def search(self, term: str | None) -> list[Quote]:
        """Case-insensitive match on company, contact, deal, status, delivery and party names."""
        if not term:
            return await self.get_all()
        needle = term.lower()
        return [
            quote.model_copy(deep=True) for quote in self._quotes if _matches(quote, needle)
        ]

    def _find(self, quote_id: int | str) -> Quote:
        target = int(quote_id)
        for quote in self._quotes:
            if quote.id == target:
                return quote
        raise RecordNotFoundError("Quote not found")


def _matches(quote: Quote, needle: str) -> bool:
    haystack = (
        quote.company,
        quote.contact,
        quote.deal,
        quote.status,
        quote.delivery_method,
        quote.billing_address.bill_to_name,
        quote.shipping_address.ship_to_name,
    )
    return any(needle in (value or "").lower() for value in haystack)
