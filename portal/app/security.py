"""Session handling for requests forwarded to the complex backend."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

LOGGER = logging.getLogger(__name__)

RESIDENT_ROLE = "Residente"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def _b64url_decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def read_token_claims(token: str) -> dict[str, Any]:
    """Return the claims carried by an upstream token without verifying them.

    Verification belongs to the backend that issued the token. The claims are
    only used to scope resident sessions to their own data. Administrator
    tokens are JWTs with ``{id, rol, residente}``; resident access tokens are the
    base64 encoding of ``"<residenteId>:<claveAcceso>"``.
    """

    if not token:
        return {}

    parts = token.split(".")
    try:
        if len(parts) == 3:
            payload = json.loads(_b64url_decode(parts[1]))
            return payload if isinstance(payload, dict) else {}
        decoded = _b64url_decode(token).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        LOGGER.debug("Token claims could not be decoded")
        return {}

    resident_id, separator, _ = decoded.partition(":")
    if not separator or not resident_id:
        return {}
    return {"rol": RESIDENT_ROLE, "residente": resident_id}


@dataclass
class SessionContext:
    """Explicit authentication state for one caller of the backend."""

    token: Optional[str] = None
    is_resident: bool = False
    resident_id: Optional[str] = None
    user: dict[str, Any] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return bool(self.token)

    def start(
        self,
        token: str,
        *,
        is_resident: bool = False,
        resident_id: Optional[str] = None,
        user: Optional[dict[str, Any]] = None,
    ) -> None:
        """Record a successful login."""

        if not token:
            raise ValueError("A session requires a token")
        self.token = token
        self.is_resident = is_resident
        self.resident_id = resident_id
        self.user = dict(user or {})

    def end(self) -> None:
        """Forget the credentials after a logout or an upstream 401."""

        if self.token:
            LOGGER.info(
                "Ending portal session",
                extra={"is_resident": self.is_resident, "resident_id": self.resident_id},
            )
        self.token = None
        self.is_resident = False
        self.resident_id = None
        self.user = {}

    @classmethod
    def from_token(cls, token: str) -> "SessionContext":
        claims = read_token_claims(token)
        is_resident = claims.get("rol") == RESIDENT_ROLE
        resident_id = claims.get("residente")
        if isinstance(resident_id, dict):
            resident_id = resident_id.get("_id") or resident_id.get("id")
        session = cls()
        session.start(
            token,
            is_resident=is_resident,
            resident_id=str(resident_id) if resident_id else None,
            user=claims,
        )
        return session

    def can_access_resident(self, resident_id: str) -> bool:
        if not self.is_resident:
            return True
        return self.resident_id is not None and self.resident_id == resident_id


def require_session(token: str = Depends(oauth2_scheme)) -> SessionContext:
    """FastAPI dependency that turns the bearer token into a session."""

    return SessionContext.from_token(token)


def require_staff(session: SessionContext = Depends(require_session)) -> SessionContext:
    """Reject resident sessions and tokens without a role on administration endpoints."""

    if session.is_resident or not session.user.get("rol"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acceso restringido al personal de administración",
        )
    return session


def ensure_resident_access(session: SessionContext, resident_id: str) -> None:
    if not session.can_access_resident(resident_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No tienes acceso a la información de este residente",
        )


__all__ = [
    "RESIDENT_ROLE",
    "SessionContext",
    "ensure_resident_access",
    "oauth2_scheme",
    "read_token_claims",
    "require_session",
    "require_staff",
]
