# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Currency API endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from agencydesk.api.deps import get_rate_provider
from agencydesk.services.currency_service import convert, format_currency
from agencydesk.services.rate_provider import RateProvider

router = APIRouter()


class RatesResponse(BaseModel):
    """Current exchange rate table."""

    base_currency: str
    currencies: list[str]
    rates: dict[str, dict[str, float]]
    source: str
    fetched_at: datetime | None


class ConversionResponse(BaseModel):
    """Result of a single conversion."""

    amount: float
    from_currency: str
    to_currency: str
    converted_amount: float
    formatted: str


@router.get("/currencies/rates", response_model=RatesResponse)
async def get_rates(
    provider: RateProvider = Depends(get_rate_provider),
) -> RatesResponse:
    """Get the current best exchange rate table.

    Served from cache while fresh; otherwise fetched live, falling back to
    static rates when the feed is unavailable.
    """
    lookup = await provider.lookup()
    return RatesResponse(
        base_currency=provider.base_currency,
        currencies=sorted(lookup.table),
        rates=lookup.table,
        source=lookup.source,
        fetched_at=lookup.fetched_at,
    )


@router.get("/currencies/convert", response_model=ConversionResponse)
def convert_amount(
    amount: float = Query(...),
    from_currency: str = Query(..., min_length=3, max_length=3, alias="from"),
    to_currency: str = Query(..., min_length=3, max_length=3, alias="to"),
    provider: RateProvider = Depends(get_rate_provider),
) -> ConversionResponse:
    """Convert an amount with the currently cached (or fallback) rates."""
    from_currency = from_currency.upper()
    to_currency = to_currency.upper()
    converted = convert(amount, from_currency, to_currency, provider.current_rates())
    return ConversionResponse(
        amount=amount,
        from_currency=from_currency,
        to_currency=to_currency,
        converted_amount=converted,
        formatted=format_currency(converted, to_currency),
    )
