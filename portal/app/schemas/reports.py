"""Schemas for the delinquency report and the daily cash cut."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .payment import PaymentMethod


class DelinquencyStatus(str, Enum):
    OVERDUE = "moroso"
    PENDING = "pendiente"
    CURRENT = "al_corriente"


class DelinquencyRow(BaseModel):
    resident_id: str
    resident_name: str
    housing_unit: Optional[str] = None
    status: DelinquencyStatus
    open_periods: int = 0
    overdue_periods: int = 0
    max_days_overdue: int = 0
    overdue_amount: Decimal = Decimal("0.00")
    pending_amount: Decimal = Decimal("0.00")
    surcharge: Decimal = Decimal("0.00")
    total_owed: Decimal = Decimal("0.00")


class DelinquencyReport(BaseModel):
    """Delinquency overview (ReporteMorosidad) for the whole complex."""

    reference_date: date
    total_residents: int
    overdue_residents: int
    pending_residents: int
    current_residents: int
    total_overdue_amount: Decimal
    total_surcharge: Decimal
    delinquency_rate: Decimal = Field(
        ..., description="Percentage of residents with overdue months, one decimal"
    )
    rows: list[DelinquencyRow]


class DailyCutEntry(BaseModel):
    record_id: str
    resident_id: Optional[str] = None
    month: int
    year: int
    amount_paid: Decimal
    payment_method: Optional[PaymentMethod] = None
    reference: Optional[str] = None
    payment_date: Optional[datetime] = None


class DailyCutReport(BaseModel):
    """Cash cut (CorteDiario) of the payments received on one day."""

    day: date
    method: Optional[PaymentMethod] = None
    entries: list[DailyCutEntry]
    payment_count: int
    total_collected: Decimal
    average_payment: Decimal
    totals_by_method: dict[PaymentMethod, Decimal] = Field(
        default_factory=dict,
        description="Amount collected per method over every payment of the day",
    )
