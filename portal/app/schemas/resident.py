"""Schemas describing residents and their housing units."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .common import parse_backend_date


class HousingUnit(BaseModel):
    """Housing unit (Vivienda) a resident lives in."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("number", "numero")
    )
    maintenance_fee: Optional[Decimal] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("maintenance_fee", "cuotaMantenimiento"),
        description="Monthly fee overriding the complex-wide fee",
    )

    @field_validator("number", mode="before")
    @classmethod
    def _stringify_number(cls, value):
        return None if value is None else str(value)


class Resident(BaseModel):
    """Resident (Residente) as returned by the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    first_name: str = Field(default="", validation_alias=AliasChoices("first_name", "nombre"))
    last_name: str = Field(
        default="", validation_alias=AliasChoices("last_name", "apellidos")
    )
    move_in_date: date = Field(
        ...,
        validation_alias=AliasChoices("move_in_date", "moveInDate", "fechaIngreso"),
        description="First day the resident owes maintenance",
    )
    housing_unit: Optional[HousingUnit] = Field(
        default=None, validation_alias=AliasChoices("housing_unit", "vivienda")
    )
    active: bool = Field(default=True, validation_alias=AliasChoices("active", "activo"))

    @field_validator("move_in_date", mode="before")
    @classmethod
    def _trim_move_in(cls, value):
        return parse_backend_date(value)

    @field_validator("housing_unit", mode="before")
    @classmethod
    def _wrap_bare_unit(cls, value):
        if value is None or value == "":
            return None
        if isinstance(value, str):
            return {"_id": value}
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
