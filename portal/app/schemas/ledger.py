"""Schemas for the dues ledger of a resident."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .payment import PaymentMethod, PeriodStatus


class LedgerMode(str, Enum):
    """Which months a ledger covers."""

    ARREARS = "arrears"
    ADVANCE = "advance"
    STATEMENT = "statement"


class BillingPeriod(BaseModel):
    """One calendar month of maintenance dues for a resident."""

    model_config = ConfigDict(frozen=True)

    period_key: str = Field(..., description="Month identifier in YYYY-MM format")
    month: int = Field(..., ge=1, le=12)
    year: int
    due_amount: Decimal = Field(..., ge=0)
    amount_paid: Decimal = Field(default=Decimal("0.00"), ge=0)
    status: PeriodStatus
    due_date: date = Field(..., description="Last day of the month")
    days_overdue: int = Field(default=0, ge=0)
    surcharge: Decimal = Field(default=Decimal("0.00"), ge=0)
    source_record_id: Optional[str] = Field(
        default=None, description="Backend record backing the period, if any"
    )
    is_advance: bool = Field(
        default=False, description="Month paid ahead of its due date (esAdelanto)"
    )

    @property
    def remaining(self) -> Decimal:
        return max(self.due_amount - self.amount_paid, Decimal("0.00"))

    @property
    def amount_owed(self) -> Decimal:
        """Remaining principal plus the late-payment surcharge."""

        return self.remaining + self.surcharge


class LedgerSummary(BaseModel):
    """Totals derived from a list of billing periods."""

    total_paid: Decimal = Decimal("0.00")
    total_pending: Decimal = Decimal("0.00")
    total_partial: Decimal = Decimal("0.00")
    total_overdue: Decimal = Decimal("0.00")
    total_surcharge: Decimal = Decimal("0.00")
    total_surplus: Decimal = Decimal("0.00")
    total_paid_on_open: Decimal = Decimal("0.00")
    total_advance: Decimal = Decimal("0.00")
    total_due: Decimal = Field(
        default=Decimal("0.00"),
        description="Open principal plus surcharges, excluding advance months",
    )
    counts: dict[PeriodStatus, int] = Field(default_factory=dict)
    advance_count: int = 0
    max_days_overdue: int = 0


class LedgerResponse(BaseModel):
    resident_id: str
    mode: LedgerMode
    reference_date: date
    periods: list[BillingPeriod]
    summary: LedgerSummary


class PayablePeriodsResponse(BaseModel):
    """Months offered on the "pay selected months" screen."""

    resident_id: str
    reference_date: date
    periods: list[BillingPeriod]
    total_owed: Decimal = Field(
        ..., description="Amount owed for every open month, surcharges included"
    )


class MultiPaymentOutcome(BaseModel):
    """Result of applying one payment to several months."""

    resident_id: str
    method: PaymentMethod
    reference: Optional[str] = None
    periods: list[BillingPeriod] = Field(..., description="Settled months, oldest first")
    record_ids: list[str]
    created_record_ids: list[str] = Field(default_factory=list)
    total_due: Decimal
    total_surcharge: Decimal
    amount_tendered: Decimal
    surplus: Decimal = Field(..., description="Amount tendered beyond what was owed (excedente)")
