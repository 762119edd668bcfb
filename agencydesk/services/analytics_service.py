# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Multi-currency analytics aggregation.

Raw client, project, hour entry and subscription records are normalized,
split into money-bearing sources, filtered by period and converted into a
single display currency. Values are kept unrounded; rounding only happens
in the formatted strings.
"""

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from agencydesk.schemas.analytics import (
    AnalyticsSnapshot,
    BreakdownItem,
    Metric,
    MetricName,
    PeriodInfo,
    Trend,
)
from agencydesk.schemas.records import (
    ClientRecord,
    HourEntryRecord,
    ProjectRecord,
    SubscriptionRecord,
    parse_records,
)
from agencydesk.services.currency_service import (
    convert,
    format_currency,
    format_hours,
    format_number,
)
from agencydesk.services.period_service import (
    DateBounds,
    Granularity,
    PeriodSelector,
    ResolvedPeriod,
)
from agencydesk.services.revenue_service import (
    BillableHours,
    FixedProjectRevenue,
    InvoiceRevenue,
    SubscriptionCost,
    billable_hour_sources,
    fixed_project_sources,
    invoice_sources,
    subscription_sources,
)

logger = logging.getLogger(__name__)

Rates = Mapping[str, Mapping[str, float]]

# Metrics whose value does not depend on the selected period
LIFETIME_METRICS = frozenset(
    {
        MetricName.TOTAL_CLIENTS,
        MetricName.ACTIVE_CLIENTS,
        MetricName.MONTHLY_COSTS,
        MetricName.YEARLY_COSTS,
        MetricName.TOTAL_PAID_TO_DATE,
    }
)

CURRENCY_METRICS = frozenset(MetricName) - {
    MetricName.TOTAL_CLIENTS,
    MetricName.ACTIVE_CLIENTS,
    MetricName.TOTAL_HOURS,
}

SUBTITLES = {
    MetricName.TOTAL_CLIENTS: "client accounts",
    MetricName.ACTIVE_CLIENTS: "clients with active status",
    MetricName.TOTAL_HOURS: "tracked hours",
    MetricName.TOTAL_REVENUE: "from paid invoices",
    MetricName.MONTHLY_COSTS: "subscription expenses",
    MetricName.YEARLY_COSTS: "subscription expenses per year",
    MetricName.TOTAL_PAID_TO_DATE: "all subscriptions",
    MetricName.FIXED_PROJECT_REVENUE: "completed fixed-price projects",
    MetricName.HOURLY_REVENUE: "billable hours",
}


# --- Individual metrics ---


def total_hours(hour_entries: Iterable[HourEntryRecord], bounds: DateBounds) -> float:
    """Hours logged inside the bounds. Hours carry no currency."""
    return math.fsum(e.hours for e in hour_entries if bounds.contains(e.date))


def _sum_converted(
    sources: Iterable[InvoiceRevenue | FixedProjectRevenue | BillableHours],
    bounds: DateBounds,
    currency: str,
    rates: Rates,
) -> float:
    return math.fsum(
        s.money.to(currency, rates) for s in sources if bounds.contains(s.occurred_on)
    )


def revenue_total(
    invoices: Iterable[InvoiceRevenue],
    bounds: DateBounds,
    currency: str,
    rates: Rates,
) -> float:
    """Paid invoice revenue inside the bounds, in ``currency``."""
    return _sum_converted(invoices, bounds, currency, rates)


def monthly_subscription_cost(
    costs: Iterable[SubscriptionCost],
    currency: str,
    rates: Rates,
) -> float:
    """Active subscription cost expressed per month."""
    return math.fsum(c.monthly().to(currency, rates) for c in costs)


def yearly_subscription_cost(
    costs: Iterable[SubscriptionCost],
    currency: str,
    rates: Rates,
) -> float:
    """Active subscription cost expressed per year."""
    return math.fsum(c.yearly().to(currency, rates) for c in costs)


def total_paid_to_date(
    subscriptions: Iterable[SubscriptionRecord],
    currency: str,
    rates: Rates,
    default_currency: str,
) -> float:
    """Lifetime amount paid across all subscriptions; not period-scoped."""
    return math.fsum(
        convert(s.total_paid, s.currency or default_currency, currency, rates)
        for s in subscriptions
    )


def net_profit(
    revenue: float,
    monthly_cost: float,
    yearly_cost: float,
    period: ResolvedPeriod,
) -> tuple[float, str]:
    """Revenue minus the recurring cost matching the period's granularity.

    Returns the profit and a short description of the estimate.
    """
    granularity = period.granularity
    if granularity is Granularity.MONTHLY:
        return revenue - monthly_cost, "monthly estimate"
    if granularity is Granularity.PRORATED:
        months = period.months() or 0.0
        return revenue - monthly_cost * months, "period estimate"
    if period.selector is PeriodSelector.CUSTOM:
        return revenue - yearly_cost, "estimate"
    return revenue - yearly_cost, "annual estimate"


def compute_trend(current: float, previous: float | None) -> Trend:
    """Signed percentage change, or an unavailable trend without a baseline."""
    if previous is None or previous <= 0:
        return Trend(available=False)
    # Half-up rounding, so +2.5% shows as 3 and -2.5% as -2
    change = math.floor((current - previous) / previous * 100 + 0.5)
    return Trend(available=True, change=change, is_increase=change >= 0)


def hours_by_client(
    clients: Iterable[ClientRecord],
    hour_entries: Iterable[HourEntryRecord],
    bounds: DateBounds,
) -> list[BreakdownItem]:
    """Hours per client, largest first; clients without hours are left out."""
    totals: dict[str, list[float]] = defaultdict(list)
    for entry in hour_entries:
        if entry.client_id is not None and bounds.contains(entry.date):
            totals[entry.client_id].append(entry.hours)
    return _ranked(clients, {cid: math.fsum(v) for cid, v in totals.items()})


def revenue_by_client(
    clients: Iterable[ClientRecord],
    invoices: Iterable[InvoiceRevenue],
    bounds: DateBounds,
    currency: str,
    rates: Rates,
) -> list[BreakdownItem]:
    """Paid invoice revenue per client, largest first; zero rows left out."""
    totals: dict[str, list[float]] = defaultdict(list)
    for invoice in invoices:
        if bounds.contains(invoice.occurred_on):
            totals[invoice.client_id].append(invoice.money.to(currency, rates))
    return _ranked(clients, {cid: math.fsum(v) for cid, v in totals.items()})


def _ranked(
    clients: Iterable[ClientRecord],
    totals: Mapping[str, float],
) -> list[BreakdownItem]:
    items = [
        BreakdownItem(client_id=c.id, name=c.name, value=totals[c.id])
        for c in clients
        if totals.get(c.id, 0) > 0
    ]
    items.sort(key=lambda item: (-item.value, item.name))
    return items


def client_status_rows(clients: Iterable[ClientRecord]) -> list[str]:
    counts: dict[str, int] = defaultdict(int)
    for client in clients:
        counts[client.status] += 1
    return [
        f"{counts[status]} {status}"
        for status in ("active", "inactive", "pending")
        if counts[status] > 0
    ]


# --- Aggregation ---


class _PeriodValues:
    """Period-scoped values computed for one set of bounds."""

    def __init__(
        self,
        period: ResolvedPeriod,
        hour_entries: list[HourEntryRecord],
        invoices: list[InvoiceRevenue],
        fixed_projects: list[FixedProjectRevenue],
        billable: list[BillableHours],
        monthly_cost: float,
        yearly_cost: float,
        currency: str,
        rates: Rates,
    ) -> None:
        bounds = period.current
        self.hours = total_hours(hour_entries, bounds)
        self.revenue = revenue_total(invoices, bounds, currency, rates)
        self.fixed_project_revenue = _sum_converted(
            fixed_projects, bounds, currency, rates
        )
        self.hourly_revenue = _sum_converted(billable, bounds, currency, rates)
        self.net_profit, self.net_profit_subtitle = net_profit(
            self.revenue, monthly_cost, yearly_cost, period
        )


def aggregate(
    clients: Iterable[Any],
    projects: Iterable[Any],
    hour_entries: Iterable[Any],
    subscriptions: Iterable[Any],
    period: ResolvedPeriod,
    target_currency: str,
    rates: Rates,
    *,
    default_currency: str = "USD",
) -> AnalyticsSnapshot:
    """Build an analytics snapshot.

    Args:
        clients: Client rows (raw mappings or :class:`ClientRecord`), with
            their invoices embedded.
        projects: Project rows.
        hour_entries: Hour entry rows.
        subscriptions: Subscription rows.
        period: Resolved reporting period.
        target_currency: Currency every money value is expressed in.
        rates: Exchange rate table.
        default_currency: Currency assumed for records that carry none.

    Returns:
        A new, immutable snapshot. Breakdowns hold every contributing client;
        callers cut them with :meth:`AnalyticsSnapshot.truncated`.
    """
    target_currency = target_currency.upper()
    client_rows = parse_records(ClientRecord, clients)
    project_rows = parse_records(ProjectRecord, projects)
    entry_rows = parse_records(HourEntryRecord, hour_entries)
    subscription_rows = parse_records(SubscriptionRecord, subscriptions)

    today = period.today or date.today()
    invoices = invoice_sources(client_rows, default_currency)
    fixed_projects = fixed_project_sources(
        project_rows, client_rows, default_currency, today
    )
    billable = billable_hour_sources(
        entry_rows, project_rows, client_rows, default_currency
    )
    costs = subscription_sources(subscription_rows, default_currency)

    monthly_cost = monthly_subscription_cost(costs, target_currency, rates)
    yearly_cost = yearly_subscription_cost(costs, target_currency, rates)
    paid_to_date = total_paid_to_date(
        subscription_rows, target_currency, rates, default_currency
    )

    def values_for(p: ResolvedPeriod) -> _PeriodValues:
        return _PeriodValues(
            p,
            entry_rows,
            invoices,
            fixed_projects,
            billable,
            monthly_cost,
            yearly_cost,
            target_currency,
            rates,
        )

    current = values_for(period)
    previous_period = period.previous_period()
    previous = values_for(previous_period) if previous_period is not None else None

    revenue_breakdown = revenue_by_client(
        client_rows, invoices, period.current, target_currency, rates
    )
    hours_breakdown = hours_by_client(client_rows, entry_rows, period.current)

    period_scoped: dict[MetricName, tuple[float, float | None]] = {
        MetricName.TOTAL_HOURS: (current.hours, previous and previous.hours),
        MetricName.TOTAL_REVENUE: (current.revenue, previous and previous.revenue),
        MetricName.NET_PROFIT: (current.net_profit, previous and previous.net_profit),
        MetricName.FIXED_PROJECT_REVENUE: (
            current.fixed_project_revenue,
            previous and previous.fixed_project_revenue,
        ),
        MetricName.HOURLY_REVENUE: (
            current.hourly_revenue,
            previous and previous.hourly_revenue,
        ),
    }
    lifetime: dict[MetricName, float] = {
        MetricName.TOTAL_CLIENTS: float(len(client_rows)),
        MetricName.ACTIVE_CLIENTS: float(
            sum(1 for c in client_rows if c.status == "active")
        ),
        MetricName.MONTHLY_COSTS: monthly_cost,
        MetricName.YEARLY_COSTS: yearly_cost,
        MetricName.TOTAL_PAID_TO_DATE: paid_to_date,
    }

    metrics: dict[MetricName, Metric] = {}
    for name in MetricName:
        if name in LIFETIME_METRICS:
            value, baseline = lifetime[name], None
        else:
            value, baseline = period_scoped[name]

        breakdown: list[BreakdownItem] = []
        if name is MetricName.TOTAL_HOURS:
            breakdown = _formatted(hours_breakdown, None)
        elif name in (MetricName.TOTAL_REVENUE, MetricName.NET_PROFIT):
            breakdown = _formatted(revenue_breakdown, target_currency)

        metrics[name] = Metric(
            name=name,
            current=value,
            previous=baseline,
            trend=compute_trend(value, baseline),
            breakdown=breakdown,
            formatted=format_metric(name, value, target_currency),
            formatted_full=format_metric(name, value, target_currency, full=True),
            subtitle=(
                current.net_profit_subtitle
                if name is MetricName.NET_PROFIT
                else SUBTITLES[name]
            ),
            status_rows=(
                client_status_rows(client_rows)
                if name is MetricName.TOTAL_CLIENTS
                else []
            ),
        )

    logger.debug(
        f"Aggregated {len(client_rows)} clients, {len(entry_rows)} hour entries, "
        f"{len(subscription_rows)} subscriptions in {target_currency}"
    )
    return AnalyticsSnapshot(
        currency=target_currency,
        period=_period_info(period),
        metrics=metrics,
    )


def format_metric(
    name: MetricName,
    value: float,
    currency: str,
    full: bool = False,
) -> str:
    """Display string for a metric value."""
    if name is MetricName.TOTAL_HOURS:
        return f"{value:.1f} hours" if full else format_hours(value)
    if name in CURRENCY_METRICS:
        return format_currency(value, currency, abbreviate=not full)
    return str(round(value)) if full else format_number(value)


def _formatted(items: list[BreakdownItem], currency: str | None) -> list[BreakdownItem]:
    return [
        item.model_copy(
            update={
                "formatted": (
                    format_hours(item.value)
                    if currency is None
                    else format_currency(item.value, currency, abbreviate=True)
                )
            }
        )
        for item in items
    ]


def _period_info(period: ResolvedPeriod) -> PeriodInfo:
    previous = period.previous
    return PeriodInfo(
        selector=period.selector.value,
        start=period.start,
        end=period.end,
        previous_start=previous.start if previous else None,
        previous_end=previous.end if previous else None,
        granularity=period.granularity.value,
    )
