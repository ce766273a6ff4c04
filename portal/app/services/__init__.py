"""Service layer encapsulating business logic for API routers."""

from .backend_client import (
    BackendClient,
    BackendError,
    BackendUnavailableError,
    SessionExpiredError,
)
from .billing_periods import BillingPeriodService
from .ledger import BillingParameters, DuesLedgerService, LedgerComputationError
from .payment_application import (
    MultiPaymentWorkflow,
    PaymentApplicationService,
    PaymentInputError,
    PaymentPlan,
    PaymentWorkflowError,
    WorkflowState,
)
from .reports import ReportService

__all__ = [
    "BackendClient",
    "BackendError",
    "BackendUnavailableError",
    "BillingParameters",
    "BillingPeriodService",
    "DuesLedgerService",
    "LedgerComputationError",
    "MultiPaymentWorkflow",
    "PaymentApplicationService",
    "PaymentInputError",
    "PaymentPlan",
    "PaymentWorkflowError",
    "ReportService",
    "SessionExpiredError",
    "WorkflowState",
]
