"""Delinquency and cash-cut reports built from the dues ledger."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .. import schemas
from ..schemas import DelinquencyStatus, PeriodStatus, quantize_money
from .ledger import BillingParameters, DuesLedgerService

LOGGER = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class ReportService:
    """Aggregations consumed by the administration dashboards."""

    @staticmethod
    def delinquency_row(
        resident: schemas.Resident,
        periods: Sequence[schemas.BillingPeriod],
    ) -> schemas.DelinquencyRow:
        summary = DuesLedgerService.summarize(periods)
        overdue_periods = summary.counts.get(PeriodStatus.OVERDUE, 0)
        open_periods = (
            overdue_periods
            + summary.counts.get(PeriodStatus.PENDING, 0)
            + summary.counts.get(PeriodStatus.PARTIAL, 0)
        )
        if overdue_periods:
            status = DelinquencyStatus.OVERDUE
        elif open_periods:
            status = DelinquencyStatus.PENDING
        else:
            status = DelinquencyStatus.CURRENT

        housing_unit = resident.housing_unit
        return schemas.DelinquencyRow(
            resident_id=resident.id,
            resident_name=resident.full_name,
            housing_unit=housing_unit.number if housing_unit else None,
            status=status,
            open_periods=open_periods,
            overdue_periods=overdue_periods,
            max_days_overdue=summary.max_days_overdue,
            overdue_amount=summary.total_overdue,
            pending_amount=summary.total_pending + summary.total_partial,
            surcharge=summary.total_surcharge,
            total_owed=summary.total_due,
        )

    @classmethod
    def delinquency_report(
        cls,
        residents: Iterable[schemas.Resident],
        records: Sequence[schemas.PaymentRecord],
        configuration: Optional[schemas.BillingConfiguration],
        *,
        today: date,
        default_fee: Decimal,
    ) -> schemas.DelinquencyReport:
        """Classify every active resident with a housing unit as of ``today``."""

        records_by_resident: dict[str, list[schemas.PaymentRecord]] = {}
        for record in records:
            if record.resident_id:
                records_by_resident.setdefault(record.resident_id, []).append(record)

        rows: list[schemas.DelinquencyRow] = []
        for resident in residents:
            if not resident.active or resident.housing_unit is None:
                continue
            params = BillingParameters.resolve(
                configuration,
                default_fee=default_fee,
                housing_unit=resident.housing_unit,
            )
            periods = DuesLedgerService.build_ledger(
                move_in_date=resident.move_in_date,
                records=records_by_resident.get(resident.id, []),
                params=params,
                today=today,
                resident_id=resident.id,
            )
            rows.append(cls.delinquency_row(resident, periods))

        rows.sort(key=lambda row: (-row.max_days_overdue, -row.total_owed, row.resident_name))

        overdue = sum(1 for row in rows if row.status == DelinquencyStatus.OVERDUE)
        pending = sum(1 for row in rows if row.status == DelinquencyStatus.PENDING)
        rate = (
            (Decimal(overdue) * 100 / Decimal(len(rows))).quantize(Decimal("0.1"))
            if rows
            else Decimal("0.0")
        )
        LOGGER.info(
            "Delinquency report computed",
            extra={"residents": len(rows), "overdue": overdue, "reference_date": today.isoformat()},
        )
        return schemas.DelinquencyReport(
            reference_date=today,
            total_residents=len(rows),
            overdue_residents=overdue,
            pending_residents=pending,
            current_residents=len(rows) - overdue - pending,
            total_overdue_amount=quantize_money(sum((row.overdue_amount for row in rows), ZERO)),
            total_surcharge=quantize_money(sum((row.surcharge for row in rows), ZERO)),
            delinquency_rate=rate,
            rows=rows,
        )

    @staticmethod
    def daily_cut(
        records: Iterable[schemas.PaymentRecord],
        day: date,
        *,
        method: Optional[schemas.PaymentMethod] = None,
    ) -> schemas.DailyCutReport:
        """Summarize the settled payments the backend reports for ``day``.

        Totals per method always cover every payment of the day; ``method``
        only narrows the listed entries and the headline totals.
        """

        paid = [record for record in records if record.status.is_settled]
        totals_by_method: dict[schemas.PaymentMethod, Decimal] = {}
        for record in paid:
            payment_method = record.payment_method or schemas.PaymentMethod.CASH
            totals_by_method[payment_method] = quantize_money(
                totals_by_method.get(payment_method, ZERO) + record.amount_paid
            )

        selected = [
            record
            for record in paid
            if method is None
            or (record.payment_method or schemas.PaymentMethod.CASH) == method
        ]
        selected.sort(
            key=lambda record: (record.payment_date is not None, record.payment_date),
            reverse=True,
        )

        total = quantize_money(sum((record.amount_paid for record in selected), ZERO))
        average = quantize_money(total / len(selected)) if selected else ZERO
        return schemas.DailyCutReport(
            day=day,
            method=method,
            entries=[
                schemas.DailyCutEntry(
                    record_id=record.id,
                    resident_id=record.resident_id,
                    month=record.month,
                    year=record.year,
                    amount_paid=quantize_money(record.amount_paid),
                    payment_method=record.payment_method,
                    reference=record.reference,
                    payment_date=record.payment_date,
                )
                for record in selected
            ],
            payment_count=len(selected),
            total_collected=total,
            average_payment=average,
            totals_by_method=totals_by_method,
        )
