"""Service helpers to enumerate billing periods."""

from __future__ import annotations

import re
from calendar import monthrange
from datetime import date
from typing import Iterable, Iterator

PeriodKey = tuple[int, int]


class BillingPeriodService:
    """Calendar helpers that decide which months a resident is billed for.

    Periods are identified by ``(year, month)`` tuples internally and by
    ``YYYY-MM`` strings on the wire.
    """

    VALID_PERIOD_PATTERN = re.compile(r"^\d{4}-\d{2}$")

    @staticmethod
    def last_day_of(month: int, year: int) -> date:
        _, last_day = monthrange(year, month)
        return date(year, month, last_day)

    @staticmethod
    def format_key(year: int, month: int) -> str:
        return f"{year:04d}-{month:02d}"

    @staticmethod
    def next_period(year: int, month: int) -> PeriodKey:
        if month == 12:
            return year + 1, 1
        return year, month + 1

    @staticmethod
    def iter_periods(start: PeriodKey, end: PeriodKey) -> Iterator[PeriodKey]:
        """Yield every month from ``start`` to ``end`` inclusive."""

        current = start
        while current <= end:
            yield current
            current = BillingPeriodService.next_period(*current)

    @staticmethod
    def arrears_periods(move_in_date: date, today: date) -> list[PeriodKey]:
        """Months from move-in through the last fully elapsed month.

        Empty when the resident moved in during the current month or later.
        """

        start = (move_in_date.year, move_in_date.month)
        if today.month == 1:
            end = (today.year - 1, 12)
        else:
            end = (today.year, today.month - 1)
        if start > end:
            return []
        return list(BillingPeriodService.iter_periods(start, end))

    @staticmethod
    def advance_periods(
        move_in_date: date,
        today: date,
        covered: Iterable[PeriodKey] = (),
    ) -> list[PeriodKey]:
        """Months from the current one through December not yet backed by a record."""

        covered_keys = set(covered)
        start = max((today.year, today.month), (move_in_date.year, move_in_date.month))
        end = (today.year, 12)
        return [
            key
            for key in BillingPeriodService.iter_periods(start, end)
            if key not in covered_keys
        ]

    @staticmethod
    def parse_key(period_key: str) -> PeriodKey:
        _, starts_on, _ = BillingPeriodService._normalize_period(period_key)
        return starts_on.year, starts_on.month

    @staticmethod
    def _normalize_period(period_key: str) -> tuple[str, date, date]:
        if not period_key:
            raise ValueError("period_key is required")

        sanitized = period_key.strip()
        if not BillingPeriodService.VALID_PERIOD_PATTERN.match(sanitized):
            raise ValueError("Invalid period key format, expected YYYY-MM")

        year_str, month_str = sanitized.split("-", maxsplit=1)
        year = int(year_str)
        month = int(month_str)

        if month < 1 or month > 12:
            raise ValueError("Invalid period key format, expected YYYY-MM")

        starts_on = date(year, month, 1)
        ends_on = BillingPeriodService.last_day_of(month, year)
        normalized_key = BillingPeriodService.format_key(year, month)
        return normalized_key, starts_on, ends_on
