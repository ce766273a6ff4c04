"""Administration reports: delinquency and daily cash cut."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .. import schemas
from ..security import require_staff
from ..services import BackendClient, BackendError, LedgerComputationError, ReportService
from ..upstream import backend_http_error, get_backend_client

router = APIRouter(prefix="/reports", tags=["reports"], dependencies=[Depends(require_staff)])


@router.get("/delinquency", response_model=schemas.DelinquencyReport)
async def delinquency_report(
    reference_date: Optional[date] = Query(
        default=None, description="Day used as today when classifying the months"
    ),
    client: BackendClient = Depends(get_backend_client),
) -> schemas.DelinquencyReport:
    try:
        residents, records, configuration = await client.fetch_directory()
    except BackendError as exc:
        raise backend_http_error(exc) from exc

    try:
        return ReportService.delinquency_report(
            residents,
            records,
            configuration,
            today=reference_date or date.today(),
            default_fee=client.settings.default_monthly_fee,
        )
    except LedgerComputationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.get("/daily-cut/{day}", response_model=schemas.DailyCutReport)
async def daily_cut(
    day: date,
    method: Optional[schemas.PaymentMethod] = Query(
        default=None, description="Only list payments made with this method"
    ),
    client: BackendClient = Depends(get_backend_client),
) -> schemas.DailyCutReport:
    try:
        records = await client.daily_cut_records(day)
    except BackendError as exc:
        raise backend_http_error(exc) from exc
    return ReportService.daily_cut(records, day, method=method)
