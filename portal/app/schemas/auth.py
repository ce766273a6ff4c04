"""Pydantic schemas for authentication endpoints."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


class LoginRequest(BaseModel):
    """Credentials forwarded to the backend login endpoints.

    Staff accounts log in with an email or phone number and a password;
    residents use the access key printed on their receipts.
    """

    email: Optional[str] = Field(default=None, min_length=3)
    telefono: Optional[str] = Field(default=None, min_length=7)
    password: Optional[str] = Field(default=None, min_length=1)
    clave_acceso: Optional[str] = Field(default=None, min_length=4)

    @model_validator(mode="after")
    def validate_credentials(self):
        if self.clave_acceso:
            return self
        if not self.password:
            raise ValueError("Contraseña requerida")
        if not self.email and not self.telefono:
            raise ValueError("Debes indicar un correo o un teléfono")
        return self


class SessionInfo(BaseModel):
    """Session returned upon successful authentication."""

    access_token: str
    token_type: str = "bearer"
    is_resident: bool = False
    resident_id: Optional[str] = None
    user: dict[str, Any] = Field(default_factory=dict)
