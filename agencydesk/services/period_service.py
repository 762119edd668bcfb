# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Reporting period resolution.

Named selectors are mapped to inclusive calendar-date bounds relative to
"today". Bounded periods also get a comparable previous period of the same
number of days ending the day before the period starts.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

AVERAGE_DAYS_PER_MONTH = 30.44


class PeriodSelector(str, Enum):
    """Period filter options offered by the dashboard."""

    ALL_TIME = "all-time"
    THIS_MONTH = "this-month"
    LAST_MONTH = "last-month"
    THIS_YEAR = "this-year"
    LAST_YEAR = "last-year"
    CUSTOM = "custom"


class Granularity(str, Enum):
    """How recurring costs are scaled when compared against a period."""

    MONTHLY = "monthly"
    YEARLY = "yearly"
    PRORATED = "prorated"


class PeriodError(ValueError):
    """Invalid period selector or bounds."""


@dataclass(frozen=True)
class DateBounds:
    """Inclusive date bounds; None means unbounded on that side."""

    start: date | None = None
    end: date | None = None

    def contains(self, day: date | None) -> bool:
        """Whether ``day`` falls inside the bounds.

        Undated items only match a fully unbounded range.
        """
        if day is None:
            return self.start is None and self.end is None
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


@dataclass(frozen=True)
class ResolvedPeriod:
    """A concrete period plus its comparison baseline, if any."""

    selector: PeriodSelector
    current: DateBounds
    previous: DateBounds | None = None
    today: date | None = None

    @property
    def start(self) -> date | None:
        return self.current.start

    @property
    def end(self) -> date | None:
        return self.current.end

    @property
    def has_baseline(self) -> bool:
        return self.previous is not None

    def contains(self, day: date | None) -> bool:
        return self.current.contains(day)

    @property
    def granularity(self) -> Granularity:
        if self.selector in (PeriodSelector.THIS_MONTH, PeriodSelector.LAST_MONTH):
            return Granularity.MONTHLY
        if self.selector is PeriodSelector.CUSTOM and self.start is not None:
            return Granularity.PRORATED
        return Granularity.YEARLY

    def months(self) -> float | None:
        """Length in average months, for prorated cost comparisons."""
        if self.start is None:
            return None
        end = self.end or self.today or date.today()
        return max((end - self.start).days, 0) / AVERAGE_DAYS_PER_MONTH

    def previous_period(self) -> "ResolvedPeriod | None":
        """The baseline expressed as a period of its own."""
        if self.previous is None:
            return None
        return ResolvedPeriod(
            selector=self.selector,
            current=self.previous,
            previous=None,
            today=self.today,
        )


def _month_bounds(year: int, month: int) -> DateBounds:
    last_day = monthrange(year, month)[1]
    return DateBounds(date(year, month, 1), date(year, month, last_day))


def _year_bounds(year: int) -> DateBounds:
    return DateBounds(date(year, 1, 1), date(year, 12, 31))


def previous_bounds(bounds: DateBounds, today: date) -> DateBounds | None:
    """Same-length window ending the day before ``bounds.start``.

    An open end is treated as today. Without a start there is no baseline.
    """
    if bounds.start is None:
        return None
    end = bounds.end if bounds.end is not None else max(today, bounds.start)
    length = (end - bounds.start).days + 1
    prev_end = bounds.start - timedelta(days=1)
    return DateBounds(prev_end - timedelta(days=length - 1), prev_end)


def resolve(
    selector: PeriodSelector | str,
    custom_start: date | None = None,
    custom_end: date | None = None,
    today: date | None = None,
) -> ResolvedPeriod:
    """Resolve a selector (and optional custom bounds) to a concrete period.

    Raises:
        PeriodError: On an unknown selector or custom bounds where the
            start is after the end.
    """
    try:
        selector = PeriodSelector(selector)
    except ValueError as e:
        raise PeriodError(f"Unknown period selector: {selector!r}") from e

    today = today or date.today()

    if selector is PeriodSelector.THIS_MONTH:
        current = _month_bounds(today.year, today.month)
    elif selector is PeriodSelector.LAST_MONTH:
        if today.month > 1:
            current = _month_bounds(today.year, today.month - 1)
        else:
            current = _month_bounds(today.year - 1, 12)
    elif selector is PeriodSelector.THIS_YEAR:
        current = _year_bounds(today.year)
    elif selector is PeriodSelector.LAST_YEAR:
        current = _year_bounds(today.year - 1)
    elif selector is PeriodSelector.CUSTOM:
        if custom_start and custom_end and custom_start > custom_end:
            raise PeriodError(
                f"Custom period start {custom_start} is after end {custom_end}"
            )
        current = DateBounds(custom_start, custom_end)
    else:
        current = DateBounds()

    return ResolvedPeriod(
        selector=selector,
        current=current,
        previous=previous_bounds(current, today),
        today=today,
    )
