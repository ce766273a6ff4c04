"""Authentication endpoints forwarding credentials to the complex backend."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status

from .. import schemas
from ..security import SessionContext, require_session
from ..services import BackendClient, BackendError
from ..upstream import backend_http_error, get_anonymous_backend_client

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=schemas.SessionInfo)
async def login(
    payload: schemas.LoginRequest,
    client: BackendClient = Depends(get_anonymous_backend_client),
) -> schemas.SessionInfo:
    """Authenticate staff or residents and return the upstream token."""

    try:
        if payload.clave_acceso:
            await client.resident_login(payload.clave_acceso)
        else:
            await client.login(
                password=payload.password,
                email=payload.email,
                telefono=payload.telefono,
            )
    except BackendError as exc:
        raise backend_http_error(exc) from exc

    session = client.session
    return schemas.SessionInfo(
        access_token=session.token,
        is_resident=session.is_resident,
        resident_id=session.resident_id,
        user=session.user,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(session: SessionContext = Depends(require_session)) -> Response:
    """Acknowledge a logout.

    Backend tokens are stateless and the portal keeps no sessions, so logging
    out means the client discards its token. Nothing is sent upstream.
    """

    LOGGER.info("Client logged out", extra={"is_resident": session.is_resident})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
