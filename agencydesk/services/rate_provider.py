# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Exchange rate provider backed by the currencylayer live endpoint.

Rates are fetched for a single base currency and expanded into a full
cross-rate table. The last good table is persisted through a
:class:`KeyValueStore` together with its fetch timestamp; when the feed is
unreachable a static fallback table is served instead.
"""

import asyncio
import contextlib
import json
import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal

import httpx

from agencydesk.config import Settings, get_settings
from agencydesk.services.rate_store import KeyValueStore

logger = logging.getLogger(__name__)

RateTable = dict[str, dict[str, float]]
RateSource = Literal["live", "cache", "fallback"]

RATES_KEY = "exchange_rates"
FETCHED_AT_KEY = "exchange_rates_fetched_at"

# EUR-based quotes used when the feed is unavailable
FALLBACK_BASE_CURRENCY = "EUR"
FALLBACK_QUOTES: dict[str, float] = {
    "USD": 1.08,
    "RON": 4.97,
    "GBP": 0.85,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateProviderError(Exception):
    """Base exception for rate provider errors."""


class RateFetchError(RateProviderError):
    """The live feed could not produce a usable rate table."""


def build_cross_rates(
    base_currency: str,
    quotes: dict[str, float],
) -> RateTable:
    """Expand base->X quotes into a full currency x currency table.

    base->X is taken from the quotes, X->base is its reciprocal and X->Y
    for two non-base currencies is ``rate(base->Y) / rate(base->X)``.
    """
    from_base = {base_currency: 1.0, **quotes}
    table: RateTable = {}
    for source, source_rate in from_base.items():
        row: dict[str, float] = {}
        for target, target_rate in from_base.items():
            row[target] = 1.0 if source == target else target_rate / source_rate
        table[source] = row
    return table


def _is_rate_table(table: object) -> bool:
    """A mapping of currency rows, each mapping currencies to finite numbers."""
    if not isinstance(table, dict):
        return False
    for row in table.values():
        if not isinstance(row, dict):
            return False
        for rate in row.values():
            if isinstance(rate, bool) or not isinstance(rate, (int, float)):
                return False
            if not math.isfinite(rate):
                return False
    return True


def fallback_rate_table(currencies: Iterable[str] | None = None) -> RateTable:
    """Return the static table, restricted to ``currencies`` when given."""
    quotes = dict(FALLBACK_QUOTES)
    if currencies is not None:
        wanted = {c.upper() for c in currencies}
        quotes = {code: rate for code, rate in quotes.items() if code in wanted}
    return build_cross_rates(FALLBACK_BASE_CURRENCY, quotes)


@dataclass(frozen=True)
class CachedRates:
    """A rate table together with the moment it was fetched."""

    table: RateTable
    fetched_at: datetime

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.fetched_at < ttl


@dataclass(frozen=True)
class RateLookup:
    """Result of a rate lookup, with provenance for display."""

    table: RateTable
    source: RateSource
    fetched_at: datetime | None = None


class RateProvider:
    """Serves the current best exchange rate table."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        api_key: str | None,
        api_url: str = "https://api.currencylayer.com",
        base_currency: str = "EUR",
        currencies: Iterable[str] = ("USD", "EUR", "RON", "GBP"),
        ttl: timedelta = timedelta(hours=24),
        timeout: float = 10.0,
        clock: Callable[[], datetime] = _utcnow,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            store: Durable key/value store holding the cached table.
            api_key: currencylayer access key. A missing key makes every
                fetch fail, so the fallback table is served.
            api_url: Base URL of the feed.
            base_currency: Currency the feed is queried against.
            currencies: Supported currency set.
            ttl: Age after which a cached table is ignored.
            timeout: HTTP timeout in seconds.
            clock: Returns the current aware UTC time.
            http_client: Optional pre-built client (used in tests).
        """
        self.store = store
        self.api_key = api_key
        self.api_url = api_url
        self.base_currency = base_currency.upper()
        self.currencies = [c.upper() for c in currencies]
        self.ttl = ttl
        self.timeout = timeout
        self._clock = clock
        self._http_client = http_client

    @classmethod
    def from_settings(
        cls,
        store: KeyValueStore,
        settings: Settings | None = None,
    ) -> "RateProvider":
        """Build a provider from application settings."""
        settings = settings or get_settings()
        return cls(
            store,
            api_key=settings.currencylayer_api_key,
            api_url=settings.rate_api_url,
            base_currency=settings.rate_base_currency,
            currencies=settings.supported_currencies,
            ttl=timedelta(hours=settings.rate_cache_ttl_hours),
            timeout=settings.rate_request_timeout_seconds,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                base_url=self.api_url,
                timeout=self.timeout,
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def fallback_table(self) -> RateTable:
        return fallback_rate_table(self.currencies)

    def load_cached(self) -> CachedRates | None:
        """Read the persisted table, or None when absent or unreadable."""
        try:
            raw_table = self.store.get(RATES_KEY)
            raw_fetched_at = self.store.get(FETCHED_AT_KEY)
        except Exception as e:
            logger.error(f"Could not read cached exchange rates: {e}")
            return None
        if raw_table is None or raw_fetched_at is None:
            return None

        try:
            table = json.loads(raw_table)
            fetched_at = datetime.fromisoformat(raw_fetched_at)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable cached rates: {e}")
            return None

        if not _is_rate_table(table):
            logger.warning("Ignoring cached rates: malformed rate table")
            return None
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        return CachedRates(table=table, fetched_at=fetched_at)

    def _fresh_cache(self) -> CachedRates | None:
        cached = self.load_cached()
        if cached is not None and cached.is_fresh(self._clock(), self.ttl):
            return cached
        return None

    def current_rates(self) -> RateTable:
        """Return the fresh cached table, else the fallback. Never fetches."""
        cached = self._fresh_cache()
        if cached is not None:
            return cached.table
        return self.fallback_table()

    async def get_rates(self) -> RateTable:
        """Return the current best rate table, fetching when the cache is stale."""
        lookup = await self.lookup()
        return lookup.table

    async def lookup(self) -> RateLookup:
        """Like :meth:`get_rates` but also reports where the table came from."""
        cached = self._fresh_cache()
        if cached is not None:
            logger.debug("Serving exchange rates from cache")
            return RateLookup(cached.table, "cache", cached.fetched_at)
        return await self.refresh()

    async def refresh(self) -> RateLookup:
        """Attempt one live fetch; persist on success, fall back on failure.

        Never raises: every failure path yields the static table.
        """
        try:
            quotes = await self._fetch_quotes()
        except RateProviderError as e:
            logger.warning(f"Exchange rate fetch failed, using fallback rates: {e}")
            return RateLookup(self.fallback_table(), "fallback")

        table = build_cross_rates(self.base_currency, quotes)
        fetched_at = self._clock()
        try:
            self._save(CachedRates(table=table, fetched_at=fetched_at))
        except Exception as e:
            logger.error(f"Could not persist exchange rates: {e}")
        logger.info(
            f"Fetched exchange rates for {', '.join(sorted(table))} "
            f"(base {self.base_currency})"
        )
        return RateLookup(table, "live", fetched_at)

    def _save(self, cached: CachedRates) -> None:
        self.store.set(RATES_KEY, json.dumps(cached.table))
        self.store.set(FETCHED_AT_KEY, cached.fetched_at.isoformat())

    async def _fetch_quotes(self) -> dict[str, float]:
        """Fetch base->X quotes from the feed.

        Raises:
            RateFetchError: On a missing key, transport or HTTP error, or a
                payload that does not carry every requested quote.
        """
        if not self.api_key:
            raise RateFetchError("API key not configured")

        targets = [c for c in self.currencies if c != self.base_currency]
        logger.info(f"Fetching exchange rates for {self.base_currency} -> {targets}")

        try:
            client = await self._get_client()
            response = await client.get(
                "/live",
                params={
                    "access_key": self.api_key,
                    "source": self.base_currency,
                    "currencies": ",".join(targets),
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise RateFetchError(f"Request failed: {e}") from e
        except ValueError as e:
            raise RateFetchError(f"Invalid JSON response: {e}") from e

        if not isinstance(data, dict) or data.get("success") is not True:
            info = data.get("error") if isinstance(data, dict) else data
            raise RateFetchError(f"API reported failure: {info}")

        raw_quotes = data.get("quotes")
        if not isinstance(raw_quotes, dict):
            raise RateFetchError("Response has no quotes object")

        quotes: dict[str, float] = {}
        for target in targets:
            value = raw_quotes.get(f"{self.base_currency}{target}")
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise RateFetchError(f"Missing quote for {self.base_currency}{target}")
            if not math.isfinite(value) or value <= 0:
                raise RateFetchError(
                    f"Invalid quote for {self.base_currency}{target}: {value}"
                )
            quotes[target] = float(value)
        return quotes


class RateRefresher:
    """Refreshes a :class:`RateProvider` on a fixed interval.

    One attempt per tick; a failed tick is simply retried on the next one.
    """

    def __init__(self, provider: RateProvider, interval: timedelta) -> None:
        self.provider = provider
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="rate-refresher")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def tick(self, first: bool = False) -> RateLookup | None:
        """Run a single refresh; the first tick reuses a fresh cache."""
        try:
            if first:
                return await self.provider.lookup()
            return await self.provider.refresh()
        except Exception as e:
            logger.error(f"Scheduled exchange rate refresh failed: {e}")
            return None

    async def _run(self) -> None:
        first = True
        while True:
            await self.tick(first=first)
            first = False
            await asyncio.sleep(self.interval.total_seconds())
