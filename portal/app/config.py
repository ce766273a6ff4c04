"""Runtime configuration for the portal service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache

BACKEND_URL_ENV = "PORTAL_BACKEND_URL"
BACKEND_TIMEOUT_ENV = "PORTAL_BACKEND_TIMEOUT"
DEFAULT_MONTHLY_FEE_ENV = "PORTAL_DEFAULT_MONTHLY_FEE"
BACKEND_TOKEN_ENV = "PORTAL_BACKEND_TOKEN"

DEFAULT_BACKEND_URL = "http://localhost:5000"
DEFAULT_BACKEND_TIMEOUT = 10.0
DEFAULT_MONTHLY_FEE = Decimal("500")


def _read_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero")
    return value


def _read_decimal_env(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal amount") from exc
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return value


def _read_url_env(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    return raw.rstrip("/")


@dataclass(frozen=True)
class PortalSettings:
    """Settings used to reach the residential complex backend."""

    backend_url: str
    backend_timeout: float
    default_monthly_fee: Decimal


@lru_cache(maxsize=1)
def get_settings() -> PortalSettings:
    """Load settings from the environment once per process."""

    return PortalSettings(
        backend_url=_read_url_env(BACKEND_URL_ENV, DEFAULT_BACKEND_URL),
        backend_timeout=_read_float_env(BACKEND_TIMEOUT_ENV, DEFAULT_BACKEND_TIMEOUT),
        default_monthly_fee=_read_decimal_env(DEFAULT_MONTHLY_FEE_ENV, DEFAULT_MONTHLY_FEE),
    )
