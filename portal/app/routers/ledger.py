"""Router exposing the dues ledger of a resident."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .. import schemas
from ..schemas import LedgerMode
from ..security import SessionContext, ensure_resident_access, require_session
from ..services import (
    BackendClient,
    BackendError,
    BillingParameters,
    DuesLedgerService,
    LedgerComputationError,
)
from ..upstream import backend_http_error, get_backend_client

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/residents", tags=["ledger"])


async def load_account(
    client: BackendClient, resident_id: str
) -> tuple[schemas.Resident, list[schemas.PaymentRecord], BillingParameters]:
    """Fetch what the ledger needs for one resident."""

    try:
        resident, records, configuration = await client.fetch_resident_account(resident_id)
    except BackendError as exc:
        raise backend_http_error(exc) from exc

    params = BillingParameters.resolve(
        configuration,
        default_fee=client.settings.default_monthly_fee,
        housing_unit=resident.housing_unit,
    )
    return resident, records, params


def _ledger_conflict(exc: LedgerComputationError, resident_id: str) -> HTTPException:
    LOGGER.error(
        "Ledger computation failed",
        extra={"resident_id": resident_id, "error": str(exc)},
    )
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


async def compute_payable_periods(
    client: BackendClient, resident_id: str, *, today: date
) -> tuple[schemas.Resident, list[schemas.BillingPeriod]]:
    resident, records, params = await load_account(client, resident_id)
    try:
        periods = DuesLedgerService.payable_periods(
            move_in_date=resident.move_in_date,
            records=records,
            params=params,
            today=today,
            resident_id=resident.id,
        )
    except LedgerComputationError as exc:
        raise _ledger_conflict(exc, resident_id) from exc
    return resident, periods


async def _compute_ledger(
    client: BackendClient,
    resident_id: str,
    *,
    mode: LedgerMode,
    today: date,
) -> list[schemas.BillingPeriod]:
    resident, records, params = await load_account(client, resident_id)
    try:
        return DuesLedgerService.build_ledger(
            move_in_date=resident.move_in_date,
            records=records,
            params=params,
            today=today,
            mode=mode,
            resident_id=resident.id,
        )
    except LedgerComputationError as exc:
        raise _ledger_conflict(exc, resident_id) from exc


@router.get("/{resident_id}/ledger", response_model=schemas.LedgerResponse)
async def read_ledger(
    resident_id: str,
    mode: LedgerMode = Query(LedgerMode.ARREARS, description="Months covered by the ledger"),
    reference_date: Optional[date] = Query(
        default=None, description="Day used as today when classifying the months"
    ),
    session: SessionContext = Depends(require_session),
    client: BackendClient = Depends(get_backend_client),
) -> schemas.LedgerResponse:
    ensure_resident_access(session, resident_id)
    today = reference_date or date.today()
    periods = await _compute_ledger(client, resident_id, mode=mode, today=today)
    return schemas.LedgerResponse(
        resident_id=resident_id,
        mode=mode,
        reference_date=today,
        periods=periods,
        summary=DuesLedgerService.summarize(periods),
    )


@router.get("/{resident_id}/ledger/summary", response_model=schemas.LedgerSummary)
async def read_ledger_summary(
    resident_id: str,
    mode: LedgerMode = Query(LedgerMode.ARREARS, description="Months covered by the ledger"),
    reference_date: Optional[date] = Query(default=None),
    session: SessionContext = Depends(require_session),
    client: BackendClient = Depends(get_backend_client),
) -> schemas.LedgerSummary:
    ensure_resident_access(session, resident_id)
    periods = await _compute_ledger(
        client, resident_id, mode=mode, today=reference_date or date.today()
    )
    return DuesLedgerService.summarize(periods)


@router.get("/{resident_id}/ledger/payable", response_model=schemas.PayablePeriodsResponse)
async def read_payable_periods(
    resident_id: str,
    reference_date: Optional[date] = Query(default=None),
    session: SessionContext = Depends(require_session),
    client: BackendClient = Depends(get_backend_client),
) -> schemas.PayablePeriodsResponse:
    """List open months plus the months of the year that can be paid ahead."""

    ensure_resident_access(session, resident_id)
    today = reference_date or date.today()
    _, periods = await compute_payable_periods(client, resident_id, today=today)
    return schemas.PayablePeriodsResponse(
        resident_id=resident_id,
        reference_date=today,
        periods=periods,
        total_owed=sum(
            (period.amount_owed for period in periods if not period.is_advance),
            schemas.quantize_money(0),
        ),
    )
