# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Pydantic schemas package."""

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
    InvoiceRecord,
    ProjectRecord,
    SubscriptionRecord,
)

__all__ = [
    "AnalyticsSnapshot",
    "BreakdownItem",
    "ClientRecord",
    "HourEntryRecord",
    "InvoiceRecord",
    "Metric",
    "MetricName",
    "PeriodInfo",
    "ProjectRecord",
    "SubscriptionRecord",
    "Trend",
]
