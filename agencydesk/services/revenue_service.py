# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Money-bearing sources the analytics engine combines.

Each source is a small frozen record carrying a :class:`MoneyAmount` and the
date it occurred on, so the aggregator can filter by period and convert
into the display currency without knowing where the money came from.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import ClassVar, Literal

from agencydesk.schemas.records import (
    BillingCycle,
    ClientRecord,
    HourEntryRecord,
    PricingType,
    ProjectRecord,
    SubscriptionRecord,
)
from agencydesk.services.currency_service import convert, to_amount

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 8


@dataclass(frozen=True)
class MoneyAmount:
    """An amount in a currency; non-finite or negative amounts become 0."""

    amount: float
    currency: str

    def __post_init__(self) -> None:
        value = to_amount(self.amount)
        if value is None or value < 0:
            value = 0.0
        object.__setattr__(self, "amount", value)
        object.__setattr__(self, "currency", self.currency.upper())

    def to(self, currency: str, rates: Mapping[str, Mapping[str, float]]) -> float:
        """Value of this amount in ``currency``."""
        return convert(self.amount, self.currency, currency, rates)

    def scaled(self, factor: float) -> "MoneyAmount":
        return MoneyAmount(self.amount * factor, self.currency)


@dataclass(frozen=True)
class InvoiceRevenue:
    """A paid client invoice."""

    kind: ClassVar[Literal["invoice"]] = "invoice"

    money: MoneyAmount
    occurred_on: date | None
    client_id: str
    invoice_id: str | None = None


@dataclass(frozen=True)
class FixedProjectRevenue:
    """A completed fixed-price project, dated by its end date."""

    kind: ClassVar[Literal["fixed_project"]] = "fixed_project"

    money: MoneyAmount
    occurred_on: date | None
    client_id: str | None
    project_id: str


@dataclass(frozen=True)
class BillableHours:
    """Logged hours valued at the applicable hourly rate."""

    kind: ClassVar[Literal["billable_hours"]] = "billable_hours"

    money: MoneyAmount
    occurred_on: date | None
    client_id: str | None
    hours: float


@dataclass(frozen=True)
class SubscriptionCost:
    """Per-cycle cost of an active subscription (price times seats)."""

    kind: ClassVar[Literal["subscription"]] = "subscription"

    money: MoneyAmount
    occurred_on: date | None
    billing_cycle: BillingCycle
    subscription_id: str | None = None

    def monthly(self) -> MoneyAmount:
        if self.billing_cycle is BillingCycle.YEARLY:
            return MoneyAmount(self.money.amount / 12, self.money.currency)
        return self.money

    def yearly(self) -> MoneyAmount:
        if self.billing_cycle is BillingCycle.YEARLY:
            return self.money
        return self.money.scaled(12)


RevenueSource = InvoiceRevenue | FixedProjectRevenue | BillableHours | SubscriptionCost


def convert_to_hours(value: float, pricing_type: PricingType | str) -> float:
    """Convert a logged quantity to hours; daily work counts 8 hours a day."""
    if pricing_type in (PricingType.DAILY, PricingType.DAILY.value):
        return value * HOURS_PER_DAY
    return value


def invoice_sources(
    clients: Iterable[ClientRecord],
    default_currency: str,
) -> list[InvoiceRevenue]:
    """Paid invoices of every client, in their own or the client's currency."""
    sources = []
    for client in clients:
        client_currency = client.currency or default_currency
        for invoice in client.invoices:
            if not invoice.is_paid:
                continue
            sources.append(
                InvoiceRevenue(
                    money=MoneyAmount(invoice.amount, invoice.currency or client_currency),
                    occurred_on=invoice.date,
                    client_id=client.id,
                    invoice_id=invoice.id,
                )
            )
    return sources


def fixed_project_sources(
    projects: Iterable[ProjectRecord],
    clients: Iterable[ClientRecord],
    default_currency: str,
    today: date,
) -> list[FixedProjectRevenue]:
    """Completed fixed-price projects; undated ones count as finished today."""
    client_currency = {c.id: c.currency for c in clients}
    sources = []
    for project in projects:
        if project.pricing_type is not PricingType.FIXED:
            continue
        if project.status != "completed" or project.fixed_price <= 0:
            continue
        currency = (
            project.currency or client_currency.get(project.client_id) or default_currency
        )
        sources.append(
            FixedProjectRevenue(
                money=MoneyAmount(project.fixed_price, currency),
                occurred_on=project.end_date or today,
                client_id=project.client_id,
                project_id=project.id,
            )
        )
    return sources


def hourly_rate(project: ProjectRecord | None, client: ClientRecord | None) -> float:
    """Rate per hour: the project's own rate first, then the client's."""
    if project is not None:
        if project.pricing_type is PricingType.HOURLY and project.hourly_rate:
            return project.hourly_rate
        if project.pricing_type is PricingType.DAILY and project.daily_rate:
            return project.daily_rate / convert_to_hours(1, PricingType.DAILY)
    if client is not None and client.price_type is PricingType.HOURLY:
        return client.price
    return 0.0


def billable_hour_sources(
    hour_entries: Iterable[HourEntryRecord],
    projects: Iterable[ProjectRecord],
    clients: Iterable[ClientRecord],
    default_currency: str,
) -> list[BillableHours]:
    """Value every hour entry at its applicable rate."""
    projects_by_id = {p.id: p for p in projects}
    clients_by_id = {c.id: c for c in clients}
    sources = []
    for entry in hour_entries:
        project = projects_by_id.get(entry.project_id) if entry.project_id else None
        client = clients_by_id.get(entry.client_id) if entry.client_id else None
        rate = hourly_rate(project, client)
        if rate <= 0 or entry.hours <= 0:
            continue
        currency = (
            (project.currency if project else None)
            or (client.currency if client else None)
            or default_currency
        )
        sources.append(
            BillableHours(
                money=MoneyAmount(entry.hours * rate, currency),
                occurred_on=entry.date,
                client_id=entry.client_id,
                hours=entry.hours,
            )
        )
    return sources


def subscription_sources(
    subscriptions: Iterable[SubscriptionRecord],
    default_currency: str,
) -> list[SubscriptionCost]:
    """Per-cycle cost of every active subscription."""
    sources = []
    for sub in subscriptions:
        if not sub.is_active:
            continue
        sources.append(
            SubscriptionCost(
                money=MoneyAmount(sub.price * sub.seats, sub.currency or default_currency),
                occurred_on=sub.billing_date,
                billing_cycle=sub.billing_cycle,
                subscription_id=sub.id,
            )
        )
    logger.debug(f"{len(sources)} active subscriptions")
    return sources
