"""Unit tests for the in-process quote store."""

from __future__ import annotations

import pytest

from crm.models import QuoteDraft
from crm.quotes import QuoteStore
from crm.records import RecordNotFoundError

SEED = [
    {
        "Id": 1,
        "company": "Acme",
        "contact": "Carol Chen",
        "deal": "Widgets",
        "quote_date": "2025-05-01",
        "status": "Sent",
        "billing_address": {"bill_to_name": "Acme AP"},
        "shipping_address": {"ship_to_name": "Acme Dock"},
    },
    {
        "Id": 2,
        "company": "Globex",
        "contact": "Hank Scorpio",
        "deal": "Doomsday",
        "quote_date": "2025-06-01",
        "status": "Draft",
    },
    {"Id": 3, "company": "Initech", "quote_date": "bad date"},
]


@pytest.mark.asyncio
async def test_get_all_orders_by_quote_date_newest_first() -> None:
    """Invalid quote dates trail valid ones."""
    store = QuoteStore(SEED)
    quotes = await store.get_all()
    assert [quote.id for quote in quotes] == [2, 1, 3]


@pytest.mark.asyncio
async def test_get_by_id_and_missing() -> None:
    """Known ids resolve; unknown ids raise RecordNotFoundError."""
    store = QuoteStore(SEED)
    assert (await store.get_by_id("1")).company == "Acme"
    with pytest.raises(RecordNotFoundError, match="Quote not found"):
        await store.get_by_id(99)


@pytest.mark.asyncio
async def test_returned_quotes_are_copies() -> None:
    """Mutating a returned quote does not touch the store."""
    store = QuoteStore(SEED)
    quote = await store.get_by_id(1)
    quote.company = "Changed"
    assert (await store.get_by_id(1)).company == "Acme"


@pytest.mark.asyncio
async def test_create_assigns_next_id_and_timestamps() -> None:
    """New quotes get max id + 1 and creation timestamps."""
    store = QuoteStore(SEED)
    draft = QuoteDraft(
        company="Umbrella",
        contact="Alice",
        deal="Vaccines",
        quote_date="2025-06-10",
        expires_on="2025-07-10",
        billing_address={
            "bill_to_name": "Umbrella AP",
            "street": "1 Hive Rd",
            "city": "Raccoon City",
            "state": "MO",
            "pincode": "65000",
        },
        same_as_billing=True,
    )

    created = await store.create(draft)

    assert created.id == 4
    assert created.created_date is not None
    assert created.created_date == created.modified_date
    assert created.shipping_address.ship_to_name == "Umbrella AP"


@pytest.mark.asyncio
async def test_update_merges_fields() -> None:
    """Updates keep untouched fields and the original id."""
    store = QuoteStore(SEED)
    updated = await store.update(1, {"status": "Accepted", "Id": 50})

    assert updated.id == 1
    assert updated.status == "Accepted"
    assert updated.company == "Acme"
    assert updated.modified_date is not None


@pytest.mark.asyncio
async def test_delete_removes_quote() -> None:
    """Deleted quotes are gone."""
    store = QuoteStore(SEED)
    assert await store.delete(2) is True
    with pytest.raises(RecordNotFoundError):
        await store.delete(2)


@pytest.mark.asyncio
async def test_search_matches_names_and_status() -> None:
    """Search is case-insensitive across party names and status."""
    store = QuoteStore(SEED)

    assert [quote.id for quote in await store.search("acme dock")] == [1]
    assert [quote.id for quote in await store.search("DRAFT")] == [2, 3]
    assert len(await store.search("")) == 3
