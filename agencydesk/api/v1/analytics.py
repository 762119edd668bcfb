# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Analytics API endpoints."""

import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from agencydesk.api.deps import get_app_settings, get_rate_provider
from agencydesk.config import Settings
from agencydesk.schemas.analytics import AnalyticsSnapshot
from agencydesk.services import analytics_service
from agencydesk.services.period_service import PeriodError, PeriodSelector, resolve
from agencydesk.services.rate_provider import RateProvider

router = APIRouter()


class AnalyticsRequest(BaseModel):
    """Records and options for an analytics snapshot.

    Records are passed through as-is and normalized by the engine.
    """

    clients: list[dict[str, Any]] = Field(default_factory=list)
    projects: list[dict[str, Any]] = Field(default_factory=list)
    hour_entries: list[dict[str, Any]] = Field(default_factory=list)
    subscriptions: list[dict[str, Any]] = Field(default_factory=list)
    period: PeriodSelector = PeriodSelector.ALL_TIME
    start: datetime.date | None = None
    end: datetime.date | None = None
    currency: str | None = Field(None, min_length=3, max_length=3)
    top: int | None = Field(None, ge=1)


@router.post("/snapshot", response_model=AnalyticsSnapshot)
async def create_snapshot(
    data: AnalyticsRequest,
    provider: RateProvider = Depends(get_rate_provider),
    settings: Settings = Depends(get_app_settings),
) -> AnalyticsSnapshot:
    """Compute an analytics snapshot in the requested display currency.

    The display currency is an explicit parameter of every request; callers
    re-request when the user switches currency.
    """
    try:
        period = resolve(data.period, data.start, data.end)
    except PeriodError as e:
        raise HTTPException(
            status_code=422,
            detail=str(e),
        ) from e

    rates = await provider.get_rates()
    snapshot = analytics_service.aggregate(
        data.clients,
        data.projects,
        data.hour_entries,
        data.subscriptions,
        period,
        data.currency or settings.default_currency,
        rates,
        default_currency=settings.default_currency,
    )
    if data.top is not None:
        snapshot = snapshot.truncated(data.top)
    return snapshot
