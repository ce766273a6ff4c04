from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class BillingConfiguration(BaseModel):
    """Complex-wide billing settings (Configuracion)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    complex_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("complex_name", "nombreFraccionamiento"),
    )
    monthly_fee: Optional[Decimal] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("monthly_fee", "cuotaMantenimientoMensual"),
    )
    grace_period_days: int = Field(
        default=5, ge=0, validation_alias=AliasChoices("grace_period_days", "diasGraciaPago")
    )
    surcharge_percent: Decimal = Field(
        default=Decimal("10"),
        ge=0,
        le=100,
        validation_alias=AliasChoices("surcharge_percent", "porcentajeRecargo"),
        description="Percentage of the monthly fee charged per 30 days overdue",
    )

    @property
    def surcharge_rate(self) -> Decimal:
        return self.surcharge_percent / Decimal("100")
