"""Routers package."""

from .auth import router as auth_router
from .ledger import router as ledger_router
from .payments import router as payments_router
from .reports import router as reports_router

__all__ = [
    "auth_router",
    "ledger_router",
    "payments_router",
    "reports_router",
]
