"""Apply one payment to several billing periods of a resident."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Sequence

from .. import schemas
from ..schemas import PeriodStatus, quantize_money
from .backend_client import BackendClient, BackendError

LOGGER = logging.getLogger(__name__)


class PaymentInputError(ValueError):
    """Raised when a payment request is rejected before any network call."""


class WorkflowState(str, Enum):
    SELECTING = "selecting"
    CREATING_MISSING_RECORDS = "creating_missing_records"
    APPLYING_PAYMENT = "applying_payment"
    DONE = "done"
    FAILED = "failed"


class PaymentWorkflowError(RuntimeError):
    """Raised when the payment chain stops half way.

    ``state`` is the step that failed and ``created_record_ids`` lists the
    records that were already created on the backend. Those records stay as
    Pendiente and show up in the next ledger computation.
    """

    def __init__(
        self,
        message: str,
        *,
        state: WorkflowState,
        created_record_ids: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.state = state
        self.created_record_ids = list(created_record_ids)


@dataclass(frozen=True)
class PeriodAllocation:
    period: schemas.BillingPeriod
    principal: Decimal
    surcharge: Decimal

    @property
    def amount(self) -> Decimal:
        return self.principal + self.surcharge


@dataclass(frozen=True)
class PaymentPlan:
    """Allocation of a tendered amount to the selected periods, oldest first."""

    allocations: tuple[PeriodAllocation, ...]
    amount_tendered: Decimal
    method: schemas.PaymentMethod
    reference: Optional[str] = None

    @property
    def total_due(self) -> Decimal:
        return sum((allocation.amount for allocation in self.allocations), Decimal("0.00"))

    @property
    def total_surcharge(self) -> Decimal:
        return sum((allocation.surcharge for allocation in self.allocations), Decimal("0.00"))

    @property
    def surplus(self) -> Decimal:
        return self.amount_tendered - self.total_due

    @property
    def missing_periods(self) -> list[schemas.BillingPeriod]:
        return [
            allocation.period
            for allocation in self.allocations
            if allocation.period.source_record_id is None
        ]


class PaymentApplicationService:
    """Validation and allocation rules for multi-period payments."""

    @staticmethod
    def _normalize_amount(value: Decimal | float | str) -> Decimal:
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise PaymentInputError("El monto pagado debe ser numérico.") from exc
        if not amount.is_finite() or amount <= 0:
            raise PaymentInputError("El monto pagado debe ser mayor a cero.")
        return quantize_money(amount)

    @classmethod
    def validate_selection(
        cls, selections: Sequence, amount: Decimal | float | str
    ) -> Decimal:
        """Check what can be checked without the ledger and return the amount."""

        if not selections:
            raise PaymentInputError("Selecciona al menos un periodo para pagar.")

        tendered = cls._normalize_amount(amount)

        seen: set[tuple[int, int]] = set()
        for selection in selections:
            key = (selection.year, selection.month)
            if key in seen:
                raise PaymentInputError(
                    f"El periodo {selection.year:04d}-{selection.month:02d} está duplicado."
                )
            seen.add(key)
        return tendered

    @classmethod
    def plan(
        cls,
        periods: Sequence[schemas.BillingPeriod],
        *,
        amount: Decimal | float | str,
        method: schemas.PaymentMethod,
        reference: Optional[str] = None,
    ) -> PaymentPlan:
        """Validate the selection and allocate ``amount`` to it."""

        tendered = cls.validate_selection(periods, amount)
        for period in periods:
            if period.status.is_settled:
                raise PaymentInputError(f"El periodo {period.period_key} ya está pagado.")

        ordered = sorted(periods, key=lambda period: (period.year, period.month))
        allocations = tuple(
            PeriodAllocation(
                period=period,
                principal=quantize_money(period.remaining),
                surcharge=quantize_money(period.surcharge),
            )
            for period in ordered
        )
        plan = PaymentPlan(
            allocations=allocations,
            amount_tendered=tendered,
            method=method,
            reference=(reference or "").strip() or None,
        )
        if tendered < plan.total_due:
            raise PaymentInputError(
                f"El monto pagado ({tendered}) es menor al total requerido ({plan.total_due})."
            )
        return plan

    @staticmethod
    def settle(period: schemas.BillingPeriod, record_id: str) -> schemas.BillingPeriod:
        """Return ``period`` as it reads once the payment is applied."""

        return period.model_copy(
            update={
                "status": PeriodStatus.PAID,
                "amount_paid": period.due_amount,
                "days_overdue": 0,
                "surcharge": Decimal("0.00"),
                "source_record_id": record_id,
            }
        )


@dataclass
class MultiPaymentWorkflow:
    """Explicit state machine for one multi-period payment.

    ``SELECTING -> CREATING_MISSING_RECORDS -> APPLYING_PAYMENT -> DONE``; any
    backend failure moves the workflow to ``FAILED`` and raises
    :class:`PaymentWorkflowError`. The chain is not atomic.
    """

    client: BackendClient
    resident: schemas.Resident
    state: WorkflowState = WorkflowState.SELECTING
    created_record_ids: list[str] = field(default_factory=list)
    history: list[WorkflowState] = field(default_factory=list)

    def _transition(self, state: WorkflowState) -> None:
        LOGGER.debug(
            "Multi-payment state change",
            extra={
                "resident_id": self.resident.id,
                "from_state": self.state.value,
                "to_state": state.value,
            },
        )
        self.history.append(self.state)
        self.state = state

    def _fail(self, message: str, exc: BaseException) -> PaymentWorkflowError:
        failed_state = self.state
        LOGGER.error(
            "Multi-payment failed",
            extra={
                "resident_id": self.resident.id,
                "state": failed_state.value,
                "created_record_ids": list(self.created_record_ids),
                "error": str(exc),
            },
        )
        self._transition(WorkflowState.FAILED)
        return PaymentWorkflowError(
            message,
            state=failed_state,
            created_record_ids=self.created_record_ids,
        )

    async def submit(self, plan: PaymentPlan) -> schemas.MultiPaymentOutcome:
        if self.state != WorkflowState.SELECTING:
            raise RuntimeError(f"Cannot submit a payment from state {self.state.value}")

        missing = plan.missing_periods
        if missing and self.resident.housing_unit is None:
            raise PaymentInputError("El residente no tiene una vivienda asignada.")

        record_ids: dict[tuple[int, int], str] = {
            (allocation.period.year, allocation.period.month): allocation.period.source_record_id
            for allocation in plan.allocations
            if allocation.period.source_record_id
        }

        self._transition(WorkflowState.CREATING_MISSING_RECORDS)
        for period in missing:
            try:
                record = await self.client.create_payment_record(
                    schemas.PaymentRecordCreate(
                        resident_id=self.resident.id,
                        housing_unit_id=self.resident.housing_unit.id,
                        month=period.month,
                        year=period.year,
                        due_amount=period.due_amount,
                        payment_method=plan.method,
                    )
                )
            except BackendError as exc:
                raise self._fail(
                    f"No se pudo crear el pago de {period.period_key}: {exc}", exc
                ) from exc
            self.created_record_ids.append(record.id)
            record_ids[(period.year, period.month)] = record.id

        ordered_ids = [
            record_ids[(allocation.period.year, allocation.period.month)]
            for allocation in plan.allocations
        ]

        self._transition(WorkflowState.APPLYING_PAYMENT)
        try:
            result = await self.client.apply_multi_payment(
                ordered_ids,
                method=plan.method,
                amount_paid=plan.amount_tendered,
                reference=plan.reference,
            )
        except BackendError as exc:
            raise self._fail(f"No se pudo aplicar el pago: {exc}", exc) from exc

        if quantize_money(result.surplus) != plan.surplus:
            LOGGER.warning(
                "Backend surplus differs from the local allocation",
                extra={
                    "resident_id": self.resident.id,
                    "backend_surplus": str(result.surplus),
                    "local_surplus": str(plan.surplus),
                },
            )

        self._transition(WorkflowState.DONE)
        LOGGER.info(
            "Multi-payment applied",
            extra={
                "resident_id": self.resident.id,
                "periods": len(ordered_ids),
                "amount": str(plan.amount_tendered),
            },
        )
        return schemas.MultiPaymentOutcome(
            resident_id=self.resident.id,
            method=plan.method,
            reference=plan.reference,
            periods=[
                PaymentApplicationService.settle(allocation.period, record_id)
                for allocation, record_id in zip(plan.allocations, ordered_ids)
            ],
            record_ids=ordered_ids,
            created_record_ids=list(self.created_record_ids),
            total_due=plan.total_due,
            total_surcharge=plan.total_surcharge,
            amount_tendered=plan.amount_tendered,
            surplus=plan.surplus,
        )
