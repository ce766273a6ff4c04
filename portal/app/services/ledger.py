"""Dues ledger reconciliation for residents of the complex."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from math import ceil
from typing import Iterable, Optional, Sequence

from .. import schemas
from ..schemas import LedgerMode, PeriodStatus, quantize_money
from .billing_periods import BillingPeriodService, PeriodKey

LOGGER = logging.getLogger(__name__)

ZERO = Decimal("0.00")
DAYS_PER_SURCHARGE_BLOCK = 30


class LedgerComputationError(ValueError):
    """Raised when the recorded payments cannot produce a consistent ledger."""


@dataclass(frozen=True)
class BillingParameters:
    """Fee schedule applied to months without a backing record."""

    monthly_fee: Decimal
    grace_period_days: int = 0
    surcharge_rate: Decimal = Decimal("0.10")

    @classmethod
    def resolve(
        cls,
        configuration: Optional[schemas.BillingConfiguration],
        *,
        default_fee: Decimal,
        housing_unit: Optional[schemas.HousingUnit] = None,
    ) -> "BillingParameters":
        """Combine the complex configuration with the resident's housing unit.

        The housing unit's maintenance fee wins over the configured monthly fee,
        which in turn wins over ``default_fee``.
        """

        fee = default_fee
        grace_period_days = 0
        surcharge_rate = Decimal("0.10")
        if configuration is not None:
            if configuration.monthly_fee is not None:
                fee = configuration.monthly_fee
            grace_period_days = configuration.grace_period_days
            surcharge_rate = configuration.surcharge_rate
        if housing_unit is not None and housing_unit.maintenance_fee is not None:
            fee = housing_unit.maintenance_fee
        return cls(
            monthly_fee=quantize_money(fee),
            grace_period_days=grace_period_days,
            surcharge_rate=surcharge_rate,
        )


class DuesLedgerService:
    """Classify months into billing periods and aggregate them."""

    @staticmethod
    def days_overdue(due_date: date, today: date, grace_period_days: int = 0) -> int:
        return max(0, (today - (due_date + timedelta(days=grace_period_days))).days)

    @staticmethod
    def surcharge_for(due_amount: Decimal, days_overdue: int, rate: Decimal) -> Decimal:
        """Late fee charged once per started block of 30 days."""

        if days_overdue <= 0:
            return ZERO
        blocks = ceil(days_overdue / DAYS_PER_SURCHARGE_BLOCK)
        return quantize_money(Decimal(due_amount) * rate * blocks)

    @classmethod
    def classify_period(
        cls,
        year: int,
        month: int,
        record: Optional[schemas.PaymentRecord],
        *,
        today: date,
        params: BillingParameters,
        advance: bool = False,
    ) -> schemas.BillingPeriod:
        """Build the billing period for one month."""

        due_date = BillingPeriodService.last_day_of(month, year)
        due_amount = quantize_money(record.due_amount if record else params.monthly_fee)
        amount_paid = quantize_money(record.amount_paid) if record else ZERO
        fields = dict(
            period_key=BillingPeriodService.format_key(year, month),
            month=month,
            year=year,
            due_amount=due_amount,
            amount_paid=amount_paid,
            due_date=due_date,
            source_record_id=record.id if record else None,
            is_advance=advance,
        )

        if record is not None and record.status.is_settled:
            # registrar-pago marks a record Pagado without touching montoPagado.
            fields["amount_paid"] = max(amount_paid, due_amount)
            return schemas.BillingPeriod(status=record.status, **fields)

        remaining = due_amount - amount_paid
        if record is not None and remaining <= 0:
            status = PeriodStatus.PAID if remaining == 0 else PeriodStatus.PAID_WITH_SURPLUS
            return schemas.BillingPeriod(status=status, **fields)

        partial = record is not None and amount_paid > 0
        if advance:
            status = PeriodStatus.PARTIAL if partial else PeriodStatus.PENDING
            return schemas.BillingPeriod(status=status, **fields)

        days_overdue = cls.days_overdue(due_date, today, params.grace_period_days)
        if days_overdue > 0:
            return schemas.BillingPeriod(
                status=PeriodStatus.OVERDUE,
                days_overdue=days_overdue,
                surcharge=cls.surcharge_for(due_amount, days_overdue, params.surcharge_rate),
                **fields,
            )
        if partial:
            return schemas.BillingPeriod(status=PeriodStatus.PARTIAL, **fields)
        return schemas.BillingPeriod(status=PeriodStatus.PENDING, **fields)

    @staticmethod
    def index_records(
        records: Iterable[schemas.PaymentRecord],
        *,
        resident_id: Optional[str] = None,
        move_in_date: Optional[date] = None,
    ) -> dict[PeriodKey, schemas.PaymentRecord]:
        """Map records to their month, rejecting two records for the same month."""

        first_period = (move_in_date.year, move_in_date.month) if move_in_date else None
        indexed: dict[PeriodKey, schemas.PaymentRecord] = {}
        for record in records:
            if resident_id and record.resident_id and record.resident_id != resident_id:
                continue
            key = record.period_key
            if first_period is not None and key < first_period:
                LOGGER.warning(
                    "Ignoring payment record dated before move-in",
                    extra={
                        "record_id": record.id,
                        "period_key": BillingPeriodService.format_key(*key),
                        "resident_id": resident_id,
                    },
                )
                continue
            if key in indexed:
                raise LedgerComputationError(
                    "Duplicate payment records for period "
                    f"{BillingPeriodService.format_key(*key)}: "
                    f"{indexed[key].id}, {record.id}"
                )
            indexed[key] = record
        return indexed

    @classmethod
    def build_ledger(
        cls,
        *,
        move_in_date: date,
        records: Iterable[schemas.PaymentRecord],
        params: BillingParameters,
        today: date,
        mode: LedgerMode = LedgerMode.ARREARS,
        resident_id: Optional[str] = None,
    ) -> list[schemas.BillingPeriod]:
        """Return the billing periods of one resident sorted by ``(year, month)``.

        ``ARREARS`` covers move-in through the last elapsed month, ``ADVANCE``
        covers the current month through December minus the months that
        already have a record, and ``STATEMENT`` combines the arrears window
        with every recorded month on or after move-in.
        """

        if isinstance(move_in_date, datetime):
            move_in_date = move_in_date.date()
        if not isinstance(move_in_date, date) or not isinstance(today, date):
            raise LedgerComputationError("move_in_date and today must be dates")

        indexed = cls.index_records(
            records, resident_id=resident_id, move_in_date=move_in_date
        )

        if mode == LedgerMode.ADVANCE:
            keys = BillingPeriodService.advance_periods(move_in_date, today, indexed.keys())
            return [
                cls.classify_period(year, month, None, today=today, params=params, advance=True)
                for year, month in keys
            ]

        keys = BillingPeriodService.arrears_periods(move_in_date, today)
        if mode == LedgerMode.STATEMENT:
            keys = sorted(set(keys) | set(indexed))

        return [
            cls.classify_period(
                year, month, indexed.get((year, month)), today=today, params=params
            )
            for year, month in keys
        ]

    @classmethod
    def payable_periods(
        cls,
        *,
        move_in_date: date,
        records: Sequence[schemas.PaymentRecord],
        params: BillingParameters,
        today: date,
        resident_id: Optional[str] = None,
    ) -> list[schemas.BillingPeriod]:
        """Open months followed by the months that can be paid in advance."""

        statement = cls.build_ledger(
            move_in_date=move_in_date,
            records=records,
            params=params,
            today=today,
            mode=LedgerMode.STATEMENT,
            resident_id=resident_id,
        )
        advance = cls.build_ledger(
            move_in_date=move_in_date,
            records=records,
            params=params,
            today=today,
            mode=LedgerMode.ADVANCE,
            resident_id=resident_id,
        )
        open_periods = [period for period in statement if not period.status.is_settled]
        return sorted(open_periods + advance, key=lambda period: (period.year, period.month))

    @staticmethod
    def summarize(periods: Iterable[schemas.BillingPeriod]) -> schemas.LedgerSummary:
        """Aggregate periods into totals; the order of ``periods`` is irrelevant."""

        counts = {status: 0 for status in PeriodStatus}
        totals = {
            "total_paid": ZERO,
            "total_pending": ZERO,
            "total_partial": ZERO,
            "total_overdue": ZERO,
            "total_surcharge": ZERO,
            "total_surplus": ZERO,
            "total_paid_on_open": ZERO,
            "total_advance": ZERO,
        }
        advance_count = 0
        max_days_overdue = 0

        for period in periods:
            if period.is_advance:
                advance_count += 1
                if not period.status.is_settled:
                    totals["total_advance"] += period.due_amount - period.amount_paid
                    continue

            counts[period.status] += 1
            totals["total_surcharge"] += period.surcharge
            max_days_overdue = max(max_days_overdue, period.days_overdue)

            if period.status.is_settled:
                totals["total_paid"] += period.amount_paid
                totals["total_surplus"] += max(period.amount_paid - period.due_amount, ZERO)
                continue

            outstanding = period.due_amount - period.amount_paid
            totals["total_paid_on_open"] += period.amount_paid
            if period.status == PeriodStatus.OVERDUE:
                totals["total_overdue"] += outstanding
            elif period.status == PeriodStatus.PARTIAL:
                totals["total_partial"] += outstanding
            else:
                totals["total_pending"] += outstanding

        totals = {key: quantize_money(value) for key, value in totals.items()}
        total_due = (
            totals["total_pending"]
            + totals["total_partial"]
            + totals["total_overdue"]
            + totals["total_surcharge"]
        )
        return schemas.LedgerSummary(
            **totals,
            total_due=total_due,
            counts=counts,
            advance_count=advance_count,
            max_days_overdue=max_days_overdue,
        )
