# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Normalized shapes for the loosely-typed records the backend returns.

Every external record passes through these models before it reaches the
analytics engine: identifiers become strings, dates become ``date``
objects, and money/hour fields become finite non-negative floats.
"""

import datetime
import logging
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from agencydesk.services.currency_service import to_amount

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class InvoiceStatus(str, Enum):
    """Invoice status values."""

    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"
    UNKNOWN = "unknown"


class PricingType(str, Enum):
    """How a project or client is billed."""

    FIXED = "fixed"
    HOURLY = "hourly"
    DAILY = "daily"
    UNKNOWN = "unknown"


class BillingCycle(str, Enum):
    """Subscription billing cycle."""

    MONTHLY = "monthly"
    YEARLY = "yearly"


def coerce_identifier(value: Any) -> str | None:
    """Identifiers arrive as ints, strings or ``{"id": ...}`` objects."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return coerce_identifier(value.get("id"))
    text = str(value).strip()
    return text or None


def coerce_money(value: Any) -> float:
    """Finite, non-negative float; anything else becomes 0."""
    amount = to_amount(value)
    if amount is None or amount < 0:
        if value is not None:
            logger.debug(f"Coercing invalid amount {value!r} to 0")
        return 0.0
    return amount


def coerce_date(value: Any) -> datetime.date | None:
    """Parse dates and ISO timestamps; unparseable values become None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        text = value.strip().replace("Z", "+00:00")
        try:
            return datetime.datetime.fromisoformat(text).date()
        except ValueError:
            pass
        try:
            return datetime.date.fromisoformat(text[:10])
        except ValueError:
            logger.debug(f"Unparseable date {value!r}")
    return None


def coerce_currency(value: Any) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip().upper()


def _coerce_enum(enum_cls: type[Enum], value: Any, default: Enum) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def _coerce_status(value: Any) -> str:
    return str(value).strip().lower() if value else "active"


def _coerce_name(value: Any) -> str:
    return "" if value is None else str(value)


class RecordModel(BaseModel):
    """Common configuration for backend records."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class InvoiceRecord(RecordModel):
    """An invoice stored on a client."""

    id: str | None = None
    amount: float = 0.0
    date: datetime.date | None = None
    status: InvoiceStatus = InvoiceStatus.UNKNOWN
    currency: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> str | None:
        return coerce_identifier(v)

    @field_validator("amount", mode="before")
    @classmethod
    def normalize_amount(cls, v: Any) -> float:
        return coerce_money(v)

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> datetime.date | None:
        return coerce_date(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> InvoiceStatus:
        return _coerce_enum(InvoiceStatus, v, InvoiceStatus.UNKNOWN)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v: Any) -> str | None:
        return coerce_currency(v)

    @property
    def is_paid(self) -> bool:
        return self.status is InvoiceStatus.PAID


class ClientRecord(RecordModel):
    """A client with its embedded invoices."""

    id: str
    name: str = ""
    status: str = "active"
    currency: str | None = None
    price_type: PricingType = Field(
        default=PricingType.UNKNOWN,
        validation_alias=AliasChoices("price_type", "priceType"),
    )
    price: float = 0.0
    invoices: list[InvoiceRecord] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> str | None:
        return coerce_identifier(v)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v: Any) -> str:
        return _coerce_name(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> str:
        return _coerce_status(v)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v: Any) -> str | None:
        return coerce_currency(v)

    @field_validator("price_type", mode="before")
    @classmethod
    def normalize_price_type(cls, v: Any) -> PricingType:
        return _coerce_enum(PricingType, v, PricingType.UNKNOWN)

    @field_validator("price", mode="before")
    @classmethod
    def normalize_price(cls, v: Any) -> float:
        return coerce_money(v)

    @field_validator("invoices", mode="before")
    @classmethod
    def drop_malformed_invoices(cls, v: Any) -> list[Any]:
        """Keep only mapping-shaped invoice entries."""
        if not isinstance(v, list):
            return []
        kept = [item for item in v if isinstance(item, (Mapping, InvoiceRecord))]
        if len(kept) != len(v):
            logger.warning(f"Dropped {len(v) - len(kept)} malformed invoice entries")
        return kept


class ProjectRecord(RecordModel):
    """A project and its pricing model."""

    id: str
    name: str = ""
    client_id: str | None = Field(
        default=None, validation_alias=AliasChoices("client_id", "clientId")
    )
    status: str = "active"
    pricing_type: PricingType = Field(
        default=PricingType.UNKNOWN,
        validation_alias=AliasChoices("pricing_type", "pricingType"),
    )
    fixed_price: float = Field(
        default=0.0, validation_alias=AliasChoices("fixed_price", "fixedPrice")
    )
    hourly_rate: float = Field(
        default=0.0, validation_alias=AliasChoices("hourly_rate", "hourlyRate")
    )
    daily_rate: float = Field(
        default=0.0, validation_alias=AliasChoices("daily_rate", "dailyRate")
    )
    currency: str | None = None
    end_date: datetime.date | None = Field(
        default=None, validation_alias=AliasChoices("end_date", "endDate")
    )

    @field_validator("id", "client_id", mode="before")
    @classmethod
    def normalize_ids(cls, v: Any) -> str | None:
        return coerce_identifier(v)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v: Any) -> str:
        return _coerce_name(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> str:
        return _coerce_status(v)

    @field_validator("pricing_type", mode="before")
    @classmethod
    def normalize_pricing_type(cls, v: Any) -> PricingType:
        return _coerce_enum(PricingType, v, PricingType.UNKNOWN)

    @field_validator("fixed_price", "hourly_rate", "daily_rate", mode="before")
    @classmethod
    def normalize_money(cls, v: Any) -> float:
        return coerce_money(v)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v: Any) -> str | None:
        return coerce_currency(v)

    @field_validator("end_date", mode="before")
    @classmethod
    def normalize_end_date(cls, v: Any) -> datetime.date | None:
        return coerce_date(v)


class HourEntryRecord(RecordModel):
    """Logged working time."""

    id: str | None = None
    client_id: str | None = Field(
        default=None, validation_alias=AliasChoices("client_id", "clientId")
    )
    project_id: str | None = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId")
    )
    hours: float = 0.0
    date: datetime.date | None = None

    @field_validator("id", "client_id", "project_id", mode="before")
    @classmethod
    def normalize_ids(cls, v: Any) -> str | None:
        return coerce_identifier(v)

    @field_validator("hours", mode="before")
    @classmethod
    def normalize_hours(cls, v: Any) -> float:
        return coerce_money(v)

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> datetime.date | None:
        return coerce_date(v)


class SubscriptionRecord(RecordModel):
    """A recurring software/service subscription."""

    id: str | None = None
    name: str = ""
    price: float = 0.0
    seats: int = 1
    billing_cycle: BillingCycle = Field(
        default=BillingCycle.MONTHLY,
        validation_alias=AliasChoices("billing_cycle", "billingCycle"),
    )
    status: str = "active"
    currency: str | None = None
    total_paid: float = Field(
        default=0.0, validation_alias=AliasChoices("total_paid", "totalPaid")
    )
    billing_date: datetime.date | None = Field(
        default=None, validation_alias=AliasChoices("billing_date", "billingDate")
    )

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> str | None:
        return coerce_identifier(v)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v: Any) -> str:
        return _coerce_name(v)

    @field_validator("price", "total_paid", mode="before")
    @classmethod
    def normalize_money(cls, v: Any) -> float:
        return coerce_money(v)

    @field_validator("seats", mode="before")
    @classmethod
    def normalize_seats(cls, v: Any) -> int:
        """Missing or non-positive seat counts mean a single seat."""
        seats = to_amount(v)
        if seats is None or seats < 1:
            return 1
        return int(seats)

    @field_validator("billing_cycle", mode="before")
    @classmethod
    def normalize_billing_cycle(cls, v: Any) -> BillingCycle:
        return _coerce_enum(BillingCycle, v, BillingCycle.MONTHLY)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> str:
        return _coerce_status(v)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v: Any) -> str | None:
        return coerce_currency(v)

    @field_validator("billing_date", mode="before")
    @classmethod
    def normalize_billing_date(cls, v: Any) -> datetime.date | None:
        return coerce_date(v)

    @property
    def is_active(self) -> bool:
        return self.status == "active"


def parse_records(
    model: type[RecordT],
    rows: Iterable[Any] | None,
) -> list[RecordT]:
    """Validate raw rows into ``model``, skipping rows that cannot be read."""
    records: list[RecordT] = []
    for row in rows or []:
        if isinstance(row, model):
            records.append(row)
            continue
        try:
            records.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed {model.__name__}: {e.error_count()} error(s)"
            )
    return records
