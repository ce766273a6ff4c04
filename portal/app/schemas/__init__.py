"""Expose Pydantic schemas for convenient imports."""

from .auth import LoginRequest, SessionInfo
from .common import extract_reference_id, quantize_money
from .configuration import BillingConfiguration
from .ledger import (
    BillingPeriod,
    LedgerMode,
    LedgerResponse,
    LedgerSummary,
    MultiPaymentOutcome,
    PayablePeriodsResponse,
)
from .payment import (
    MultiPaymentRequest,
    MultiPaymentResult,
    PaymentMethod,
    PaymentRecord,
    PaymentRecordCreate,
    PeriodSelection,
    PeriodStatus,
)
from .reports import (
    DailyCutEntry,
    DailyCutReport,
    DelinquencyReport,
    DelinquencyRow,
    DelinquencyStatus,
)
from .resident import HousingUnit, Resident

__all__ = [
    "BillingConfiguration",
    "BillingPeriod",
    "DailyCutEntry",
    "DailyCutReport",
    "DelinquencyReport",
    "DelinquencyRow",
    "DelinquencyStatus",
    "HousingUnit",
    "LedgerMode",
    "LedgerResponse",
    "LedgerSummary",
    "LoginRequest",
    "MultiPaymentOutcome",
    "MultiPaymentRequest",
    "MultiPaymentResult",
    "PayablePeriodsResponse",
    "PaymentMethod",
    "PaymentRecord",
    "PaymentRecordCreate",
    "PeriodSelection",
    "PeriodStatus",
    "Resident",
    "SessionInfo",
    "extract_reference_id",
    "quantize_money",
]
