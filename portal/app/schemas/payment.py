from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .common import extract_reference_id, parse_backend_date


class PeriodStatus(str, Enum):
    """Status of a billing period using the backend vocabulary."""

    PAID = "Pagado"
    PAID_WITH_SURPLUS = "Pagado con excedente"
    PARTIAL = "Parcial"
    PENDING = "Pendiente"
    OVERDUE = "Vencido"

    @property
    def is_settled(self) -> bool:
        return self in {PeriodStatus.PAID, PeriodStatus.PAID_WITH_SURPLUS}


class PaymentMethod(str, Enum):
    """Payment methods accepted by the cashier."""

    CASH = "Efectivo"
    TRANSFER = "Transferencia"
    CARD = "Tarjeta"
    CHECK = "Cheque"
    OTHER = "Otro"


class PaymentRecord(BaseModel):
    """Payment record (Pago) as stored by the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    resident_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("resident_id", "residentId", "residente"),
        description="Resident owning the record",
    )
    housing_unit_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("housing_unit_id", "housingUnitId", "vivienda"),
    )
    month: int = Field(..., ge=1, le=12, validation_alias=AliasChoices("month", "mes"))
    year: int = Field(..., ge=1900, validation_alias=AliasChoices("year", "año", "anio"))
    due_amount: Decimal = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("due_amount", "dueAmount", "monto"),
        description="Amount owed for the month when the record was created",
    )
    amount_paid: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        validation_alias=AliasChoices("amount_paid", "amountPaid", "montoPagado"),
    )
    status: PeriodStatus = Field(
        default=PeriodStatus.PENDING,
        validation_alias=AliasChoices("status", "estado"),
    )
    payment_date: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("payment_date", "paymentDate", "fechaPago")
    )
    payment_method: Optional[PaymentMethod] = Field(
        default=None,
        validation_alias=AliasChoices("payment_method", "paymentMethod", "metodoPago"),
    )
    reference: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("reference", "referenciaPago"),
    )
    due_date: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("due_date", "dueDate", "fechaLimite")
    )

    @field_validator("resident_id", "housing_unit_id", mode="before")
    @classmethod
    def _unwrap_reference(cls, value):
        return extract_reference_id(value)

    @field_validator("due_date", mode="before")
    @classmethod
    def _trim_due_date(cls, value):
        return parse_backend_date(value)

    @field_validator("amount_paid", mode="before")
    @classmethod
    def _default_amount_paid(cls, value):
        return Decimal("0") if value is None else value

    @field_validator("payment_method", mode="before")
    @classmethod
    def _blank_method(cls, value):
        return None if value == "" else value

    @property
    def period_key(self) -> tuple[int, int]:
        return (self.year, self.month)


class PaymentRecordCreate(BaseModel):
    """Data required to create a Pendiente record for a month without one."""

    resident_id: str
    housing_unit_id: str
    month: int = Field(..., ge=1, le=12)
    year: int
    due_amount: Decimal = Field(..., ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH

    def to_backend(self) -> dict:
        starts_on = date(self.year, self.month, 1)
        ends_on = date(self.year, self.month, monthrange(self.year, self.month)[1])
        return {
            "vivienda": self.housing_unit_id,
            "residente": self.resident_id,
            "mes": self.month,
            "año": self.year,
            "monto": float(self.due_amount),
            "montoPagado": 0,
            "estado": PeriodStatus.PENDING.value,
            "metodoPago": self.payment_method.value,
            "fechaInicioPeriodo": starts_on.isoformat(),
            "fechaFinPeriodo": ends_on.isoformat(),
            "fechaLimite": ends_on.isoformat(),
        }


class MultiPaymentResult(BaseModel):
    """Backend answer to a multi-period payment."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    records: list[PaymentRecord] = Field(
        default_factory=list, validation_alias=AliasChoices("records", "pagos")
    )
    total_paid: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("total_paid", "totalPagado")
    )
    surplus: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("surplus", "excedente")
    )


class PeriodSelection(BaseModel):
    """A month chosen on the "pay selected months" screen."""

    month: int = Field(..., ge=1, le=12, validation_alias=AliasChoices("month", "mes"))
    year: int = Field(..., validation_alias=AliasChoices("year", "año"))


class MultiPaymentRequest(BaseModel):
    """Payload received when a cashier pays several months at once."""

    periods: list[PeriodSelection] = Field(
        ..., description="Months to settle; missing records are created first"
    )
    amount: Decimal = Field(..., description="Amount tendered by the resident")
    method: PaymentMethod = Field(..., description="Payment method used")
    reference: Optional[str] = Field(
        default=None, description="Transfer, card or check reference"
    )
