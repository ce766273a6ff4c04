"""Access to the complex backend for routers and scripts."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from fastapi import Depends, HTTPException, status

from .config import get_settings
from .security import SessionContext, require_session
from .services.backend_client import BackendClient, BackendError, SessionExpiredError

ClientFactory = Callable[[SessionContext], BackendClient]


def get_client_factory() -> ClientFactory:
    """Return the callable used to build backend clients for a session."""

    settings = get_settings()

    def factory(session: SessionContext) -> BackendClient:
        return BackendClient(session, settings=settings)

    return factory


async def get_backend_client(
    session: SessionContext = Depends(require_session),
    factory: ClientFactory = Depends(get_client_factory),
) -> AsyncIterator[BackendClient]:
    """Yield a client bound to the caller's session and close it afterwards."""

    client = factory(session)
    try:
        yield client
    finally:
        await client.aclose()


async def get_anonymous_backend_client(
    factory: ClientFactory = Depends(get_client_factory),
) -> AsyncIterator[BackendClient]:
    client = factory(SessionContext())
    try:
        yield client
    finally:
        await client.aclose()


@asynccontextmanager
async def client_scope(token: Optional[str] = None) -> AsyncIterator[BackendClient]:
    """Provide a backend client for operations outside of FastAPI dependencies."""

    session = SessionContext.from_token(token) if token else SessionContext()
    client = BackendClient(session, settings=get_settings())
    try:
        yield client
    finally:
        await client.aclose()


def backend_http_error(exc: BackendError) -> HTTPException:
    """Translate a backend failure into the response sent to the caller."""

    if isinstance(exc, SessionExpiredError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message or "Sesión expirada",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
