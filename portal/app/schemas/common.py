"""Shared schema helpers."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Round an amount to cents the way receipts are printed."""

    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def extract_reference_id(value: Any) -> Optional[str]:
    """Return the id of a populated backend document or a bare id."""

    if value is None or value == "":
        return None
    if isinstance(value, dict):
        nested = value.get("_id") or value.get("id")
        return str(nested) if nested else None
    return str(value)


def parse_backend_date(value: Any) -> Any:
    """Accept ISO timestamps where only the calendar date matters."""

    if isinstance(value, str) and len(value) > 10 and value[4] == "-":
        return value[:10]
    return value
