"""Router exposing payment related operations."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status

from .. import schemas
from ..security import SessionContext, ensure_resident_access, require_session
from ..services import (
    BackendClient,
    MultiPaymentWorkflow,
    PaymentApplicationService,
    PaymentInputError,
    PaymentWorkflowError,
    SessionExpiredError,
)
from ..upstream import backend_http_error, get_backend_client
from .ledger import compute_payable_periods

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/residents", tags=["payments"])


def current_day() -> date:
    """Day used to price a payment; surcharges accrue against the real clock."""

    return date.today()


def _bad_request(exc: PaymentInputError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post(
    "/{resident_id}/payments/multi",
    response_model=schemas.MultiPaymentOutcome,
    status_code=status.HTTP_201_CREATED,
)
async def apply_multi_payment(
    resident_id: str,
    payload: schemas.MultiPaymentRequest,
    session: SessionContext = Depends(require_session),
    client: BackendClient = Depends(get_backend_client),
    today: date = Depends(current_day),
) -> schemas.MultiPaymentOutcome:
    """Settle several months of a resident with a single payment."""

    ensure_resident_access(session, resident_id)
    try:
        PaymentApplicationService.validate_selection(payload.periods, payload.amount)
    except PaymentInputError as exc:
        raise _bad_request(exc) from exc

    resident, payable = await compute_payable_periods(client, resident_id, today=today)
    payable_by_key = {(period.year, period.month): period for period in payable}

    selected: list[schemas.BillingPeriod] = []
    for selection in payload.periods:
        period = payable_by_key.get((selection.year, selection.month))
        if period is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"El periodo {selection.year:04d}-{selection.month:02d} "
                    "no está disponible para pago"
                ),
            )
        selected.append(period)

    workflow = MultiPaymentWorkflow(client=client, resident=resident)
    try:
        plan = PaymentApplicationService.plan(
            selected,
            amount=payload.amount,
            method=payload.method,
            reference=payload.reference,
        )
        return await workflow.submit(plan)
    except PaymentInputError as exc:
        raise _bad_request(exc) from exc
    except PaymentWorkflowError as exc:
        if isinstance(exc.__cause__, SessionExpiredError):
            raise backend_http_error(exc.__cause__) from exc
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": str(exc),
                "state": exc.state.value,
                "created_record_ids": exc.created_record_ids,
            },
        ) from exc
