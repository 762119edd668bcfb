# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Analytics snapshot schemas."""

import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MetricName(str, Enum):
    """Headline metrics shown on the dashboard."""

    TOTAL_CLIENTS = "total_clients"
    ACTIVE_CLIENTS = "active_clients"
    TOTAL_HOURS = "total_hours"
    TOTAL_REVENUE = "total_revenue"
    MONTHLY_COSTS = "monthly_costs"
    YEARLY_COSTS = "yearly_costs"
    TOTAL_PAID_TO_DATE = "total_paid_to_date"
    NET_PROFIT = "net_profit"
    FIXED_PROJECT_REVENUE = "fixed_project_revenue"
    HOURLY_REVENUE = "hourly_revenue"


class SnapshotModel(BaseModel):
    """Snapshots are immutable once built."""

    model_config = ConfigDict(frozen=True)


class Trend(SnapshotModel):
    """Period-over-period change.

    ``available`` is False when there is no usable baseline; in that case
    ``change`` and ``is_increase`` are None rather than a misleading 0%.
    """

    available: bool = False
    change: int | None = None
    is_increase: bool | None = None


class BreakdownItem(SnapshotModel):
    """Contribution of a single client to a metric."""

    client_id: str | None = None
    name: str
    value: float
    formatted: str = ""


class Metric(SnapshotModel):
    """One headline metric with its comparison and breakdown."""

    name: MetricName
    current: float
    previous: float | None = None
    trend: Trend = Field(default_factory=Trend)
    breakdown: list[BreakdownItem] = Field(default_factory=list)
    formatted: str = ""
    formatted_full: str = ""
    subtitle: str = ""
    status_rows: list[str] = Field(default_factory=list)


class PeriodInfo(SnapshotModel):
    """The period a snapshot was computed for."""

    selector: str
    start: datetime.date | None = None
    end: datetime.date | None = None
    previous_start: datetime.date | None = None
    previous_end: datetime.date | None = None
    granularity: str


class AnalyticsSnapshot(SnapshotModel):
    """Complete analytics result for one period and display currency."""

    currency: str
    period: PeriodInfo
    metrics: dict[MetricName, Metric]

    def metric(self, name: MetricName | str) -> Metric:
        return self.metrics[MetricName(name)]

    def value(self, name: MetricName | str) -> float:
        return self.metric(name).current

    @property
    def total_hours(self) -> float:
        return self.value(MetricName.TOTAL_HOURS)

    @property
    def total_revenue(self) -> float:
        return self.value(MetricName.TOTAL_REVENUE)

    @property
    def net_profit(self) -> float:
        return self.value(MetricName.NET_PROFIT)

    @property
    def hours_by_client(self) -> list[BreakdownItem]:
        return self.metric(MetricName.TOTAL_HOURS).breakdown

    @property
    def revenue_by_client(self) -> list[BreakdownItem]:
        return self.metric(MetricName.TOTAL_REVENUE).breakdown

    def truncated(self, top: int) -> "AnalyticsSnapshot":
        """Copy of the snapshot with every breakdown cut to ``top`` items."""
        metrics = {
            name: metric.model_copy(update={"breakdown": metric.breakdown[:top]})
            for name, metric in self.metrics.items()
        }
        return self.model_copy(update={"metrics": metrics})
