from __future__ import annotations

import random
from datetime import date
from decimal import Decimal

from portal.app import schemas
from portal.app.schemas import LedgerMode, PeriodStatus
from portal.app.services import BillingParameters, DuesLedgerService


def _record(month: int, year: int, *, paid: float, estado: str = "Pendiente"):
    return schemas.PaymentRecord.model_validate(
        {
            "_id": f"pago-{month}",
            "residente": "res-1",
            "mes": month,
            "año": year,
            "monto": 200,
            "montoPagado": paid,
            "estado": estado,
        }
    )


def _ledger(today: date = date(2024, 4, 10)):
    params = BillingParameters(
        monthly_fee=Decimal("200"), grace_period_days=15, surcharge_rate=Decimal("0.10")
    )
    records = [
        _record(1, 2024, paid=200, estado="Pagado"),
        _record(2, 2024, paid=50),
    ]
    return DuesLedgerService.build_ledger(
        move_in_date=date(2024, 1, 1), records=records, params=params, today=today
    )


def test_summary_totals_by_status():
    periods = _ledger()

    summary = DuesLedgerService.summarize(periods)

    assert [period.status for period in periods] == [
        PeriodStatus.PAID,
        PeriodStatus.OVERDUE,
        PeriodStatus.PENDING,
    ]
    assert summary.total_paid == Decimal("200.00")
    assert summary.total_overdue == Decimal("150.00")
    assert summary.total_pending == Decimal("200.00")
    assert summary.total_surcharge == Decimal("20.00")
    assert summary.total_paid_on_open == Decimal("50.00")
    assert summary.total_due == Decimal("370.00")
    assert summary.counts[PeriodStatus.PAID] == 1
    assert summary.counts[PeriodStatus.OVERDUE] == 1
    assert summary.counts[PeriodStatus.PENDING] == 1
    assert summary.counts[PeriodStatus.PARTIAL] == 0
    assert summary.max_days_overdue == 26


def test_summary_principal_identity_holds():
    periods = _ledger()
    summary = DuesLedgerService.summarize(periods)

    principal = (
        summary.total_paid
        - summary.total_surplus
        + summary.total_paid_on_open
        + summary.total_partial
        + summary.total_pending
        + summary.total_overdue
    )

    assert principal == sum(period.due_amount for period in periods)


def test_conservation_without_partial_payments():
    params = BillingParameters(monthly_fee=Decimal("200"), surcharge_rate=Decimal("0.10"))
    periods = DuesLedgerService.build_ledger(
        move_in_date=date(2023, 6, 1),
        records=[_record(7, 2023, paid=200, estado="Pagado"), _record(9, 2023, paid=200)],
        params=params,
        today=date(2024, 1, 10),
    )
    summary = DuesLedgerService.summarize(periods)
    today = date(2024, 1, 10)

    due_before_today = sum(
        period.due_amount
        for period in periods
        if not period.is_advance and period.due_date <= today
    )

    assert summary.total_paid + summary.total_pending + summary.total_overdue == due_before_today


def test_settled_record_without_amount_counts_as_fully_paid():
    params = BillingParameters(monthly_fee=Decimal("200"), surcharge_rate=Decimal("0.10"))
    today = date(2024, 3, 10)
    periods = DuesLedgerService.build_ledger(
        move_in_date=date(2024, 1, 1),
        records=[_record(1, 2024, paid=0, estado="Pagado")],
        params=params,
        today=today,
    )
    summary = DuesLedgerService.summarize(periods)

    january = periods[0]
    assert january.status == PeriodStatus.PAID
    assert january.amount_paid == january.due_amount == Decimal("200.00")
    assert summary.total_surplus == Decimal("0.00")
    assert summary.total_paid + summary.total_pending + summary.total_overdue == sum(
        period.due_amount for period in periods
    )


def test_summary_is_order_independent():
    periods = _ledger()
    shuffled = list(periods)
    random.Random(7).shuffle(shuffled)

    assert DuesLedgerService.summarize(shuffled) == DuesLedgerService.summarize(periods)


def test_summary_keeps_advance_months_apart():
    params = BillingParameters(monthly_fee=Decimal("200"))
    periods = DuesLedgerService.build_ledger(
        move_in_date=date(2024, 1, 1),
        records=[],
        params=params,
        today=date(2024, 11, 5),
        mode=LedgerMode.ADVANCE,
    )

    summary = DuesLedgerService.summarize(periods)

    assert summary.advance_count == 2
    assert summary.total_advance == Decimal("400.00")
    assert summary.total_pending == Decimal("0.00")
    assert summary.total_due == Decimal("0.00")
