"""Typed CRM records and validated drafts.

Records mirror the backend tables: custom columns carry a ``_c`` suffix on the
wire and are exposed here under plain names via aliases. Dates are kept as
received (usually ISO strings, sometimes missing or malformed) and read through
``date_utils`` by consumers.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, get_args

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from date_utils import is_valid_date, safe_is_after

DealStage = Literal["Lead", "Qualified", "Proposal", "Negotiation", "Won", "Lost"]
DEAL_STAGES: tuple[str, ...] = get_args(DealStage)

_EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


def lookup_id(value: Any) -> int | None:
    """Normalize a lookup column (bare id or ``{"Id": ..., "Name": ...}``) to an int."""
    if isinstance(value, dict):
        value = value.get("Id")
    if value is None or value == "":
        return None
    return int(value)


LookupId = Annotated[int | None, BeforeValidator(lookup_id)]
Flag = Annotated[bool, BeforeValidator(lambda value: bool(value))]


class CrmRecord(BaseModel):
    """Columns shared by every backend table."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(alias="Id")
    record_name: str | None = Field(default=None, alias="Name")
    created_on: str | None = Field(default=None, alias="CreatedOn")
    modified_on: str | None = Field(default=None, alias="ModifiedOn")


class Contact(CrmRecord):
    """A person the sales team works with."""

    name: str = Field(default="", alias="name_c")
    company: str | None = Field(default=None, alias="company_c")
    email: str | None = Field(default=None, alias="email_c")
    phone: str | None = Field(default=None, alias="phone_c")
    tags: str | None = Field(default=None, alias="tags_c")
    notes: str | None = Field(default=None, alias="notes_c")


class Task(CrmRecord):
    """A to-do item, optionally tied to a contact."""

    title: str = Field(default="", alias="title_c")
    completed: Flag = Field(default=False, alias="completed_c")
    due_date: Any = Field(default=None, alias="due_date_c")
    contact_id: LookupId = Field(default=None, alias="contact_id_c")


class Activity(CrmRecord):
    """A logged interaction (call, email, meeting) with a contact."""

    contact_id: LookupId = Field(default=None, alias="contact_id_c")
    deal_id: LookupId = Field(default=None, alias="deal_id_c")
    type: str | None = Field(default=None, alias="type_c")
    description: str | None = Field(default=None, alias="description_c")
    timestamp: Any = Field(default=None, alias="timestamp_c")


class Deal(CrmRecord):
    """A sales opportunity moving through the pipeline."""

    title: str = Field(default="", alias="title_c")
    value: float | None = Field(default=None, alias="value_c")
    stage: str | None = Field(default=None, alias="stage_c")
    probability: int | None = Field(default=None, alias="probability_c")
    expected_close_date: Any = Field(default=None, alias="expected_close_date_c")
    contact_id: LookupId = Field(default=None, alias="contact_id_c")


class SalesOrder(CrmRecord):
    """A confirmed order, linked to a deal and contact."""

    deal_id: LookupId = Field(default=None, alias="deal_id_c")
    contact_id: LookupId = Field(default=None, alias="contact_id_c")
    order_date: Any = Field(default=None, alias="order_date_c")
    amount: float | None = Field(default=None, alias="amount_c")
    description: str | None = Field(default=None, alias="description_c")


class Address(BaseModel):
    """Postal address on a quote."""

    street: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    pincode: str = ""


class BillingAddress(Address):
    bill_to_name: str = ""


class ShippingAddress(Address):
    ship_to_name: str = ""


class Quote(BaseModel):
    """A priced offer; quotes live in-process rather than in a backend table."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(alias="Id")
    company: str = ""
    contact: str = ""
    deal: str = ""
    contact_id: LookupId = None
    deal_id: LookupId = None
    quote_date: Any = None
    status: str = "Draft"
    delivery_method: str = "Email"
    expires_on: Any = None
    billing_address: BillingAddress = Field(default_factory=BillingAddress)
    shipping_address: ShippingAddress = Field(default_factory=ShippingAddress)
    quote_value: float | None = None
    created_date: str | None = None
    modified_date: str | None = None


def _required_text(value: str, label: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{label} is required")
    return stripped


class ContactDraft(BaseModel):
    """Validated input for creating or editing a contact."""

    name: str
    company: str | None = None
    email: str
    phone: str
    tags: str | None = None
    notes: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _required_text(value, "Name")

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        """Require a plausible address (something@something.tld)."""
        value = _required_text(value, "Email")
        if not _EMAIL_PATTERN.search(value):
            raise ValueError("Email is invalid")
        return value

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return _required_text(value, "Phone")


class DealDraft(BaseModel):
    """Validated input for creating or editing a deal."""

    title: str
    contact_id: int
    value: float
    stage: DealStage = "Lead"
    probability: int
    expected_close_date: str

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        return _required_text(value, "Deal title")

    @field_validator("probability")
    @classmethod
    def validate_probability(cls, value: int) -> int:
        """Ensure probability is a percentage."""
        if not 0 <= value <= 100:
            raise ValueError("Probability must be between 0 and 100")
        return value

    @field_validator("expected_close_date")
    @classmethod
    def validate_expected_close_date(cls, value: str) -> str:
        """Ensure the expected close date is present and readable."""
        value = _required_text(value, "Expected close date")
        if not is_valid_date(value):
            raise ValueError("Expected close date is invalid")
        return value


class QuoteDraft(BaseModel):
    """Validated input for creating or editing a quote."""

    company: str
    contact: str
    deal: str
    contact_id: LookupId = None
    deal_id: LookupId = None
    quote_date: str
    status: str = "Draft"
    delivery_method: str = "Email"
    expires_on: str
    billing_address: BillingAddress
    shipping_address: ShippingAddress = Field(default_factory=ShippingAddress)
    same_as_billing: bool = False
    quote_value: float | None = None

    @field_validator("company", "contact", "deal", "quote_date", "expires_on")
    @classmethod
    def validate_required(cls, value: str, info) -> str:
        label = info.field_name.replace("_", " ").capitalize()
        return _required_text(value, label)

    @model_validator(mode="after")
    def validate_addresses_and_dates(self) -> "QuoteDraft":
        """Check address completeness and that the quote expires after it is issued."""
        billing = self.billing_address
        for field_name in ("bill_to_name", "street", "city", "state", "pincode"):
            label = "Bill to name" if field_name == "bill_to_name" else f"Billing {field_name}"
            _required_text(getattr(billing, field_name), label)

        if self.same_as_billing:
            self.shipping_address = ShippingAddress(
                ship_to_name=billing.bill_to_name,
                **billing.model_dump(exclude={"bill_to_name"}),
            )
        else:
            shipping = self.shipping_address
            for field_name in ("ship_to_name", "street", "city", "state", "pincode"):
                label = "Ship to name" if field_name == "ship_to_name" else f"Shipping {field_name}"
                _required_text(getattr(shipping, field_name), label)

        if not safe_is_after(self.expires_on, self.quote_date):
            raise ValueError("Expiry date must be after quote date")
        return self

    def to_quote_data(self) -> dict[str, Any]:
        """Return the stored quote fields (drops form-only flags)."""
        return self.model_dump(exclude={"same_as_billing"})
