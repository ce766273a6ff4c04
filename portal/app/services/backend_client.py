"""Async client for the REST backend of the residential complex."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

import httpx

from .. import schemas
from ..config import PortalSettings, get_settings
from ..security import RESIDENT_ROLE, SessionContext

LOGGER = logging.getLogger(__name__)


class BackendError(RuntimeError):
    """Raised when the backend answers a request with an error status."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SessionExpiredError(BackendError):
    """Raised when the backend rejects the session token (HTTP 401)."""


class BackendUnavailableError(BackendError):
    """Raised when the backend cannot be reached or times out."""


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        if payload.get("message"):
            return str(payload["message"])
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            return "; ".join(
                str(error.get("msg", error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
    return f"HTTP {response.status_code}"


def _unwrap_list(payload: Any, *keys: str) -> list:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    raise BackendError("Respuesta inesperada del servidor")


class BackendClient:
    """Thin async wrapper around ``httpx.AsyncClient``.

    Every request carries the bearer token of ``session``. A 401 answer ends
    the session before :class:`SessionExpiredError` is raised. Requests are
    never retried.
    """

    def __init__(
        self,
        session: SessionContext,
        *,
        settings: Optional[PortalSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self._http = httpx.AsyncClient(
            base_url=self.settings.backend_url,
            timeout=self.settings.backend_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        headers = {}
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"

        try:
            response = await self._http.request(
                method, path, json=json, params=params, headers=headers
            )
        except httpx.HTTPError as exc:
            LOGGER.error(
                "Backend request failed",
                extra={"method": method, "path": path, "error": str(exc)},
            )
            raise BackendUnavailableError(
                f"No fue posible contactar al servidor: {exc}"
            ) from exc

        if response.status_code == 401:
            self.session.end()
            raise SessionExpiredError(_error_message(response), status_code=401)
        if response.status_code >= 400:
            message = _error_message(response)
            LOGGER.warning(
                "Backend rejected request",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "backend_message": message,
                },
            )
            raise BackendError(message, status_code=response.status_code)

        if not response.content:
            return None
        return response.json()

    async def login(
        self,
        *,
        password: str,
        email: Optional[str] = None,
        telefono: Optional[str] = None,
    ) -> dict[str, Any]:
        """Authenticate a staff user and start the session."""

        credentials: dict[str, Any] = {"password": password}
        if email:
            credentials["email"] = email
        if telefono:
            credentials["telefono"] = telefono
        payload = await self._request("POST", "/api/usuarios/login", json=credentials)
        token = (payload or {}).get("token")
        if not token:
            raise BackendError("El servidor no devolvió un token de acceso")
        user = payload.get("usuario") or {}
        is_resident = user.get("rol") == RESIDENT_ROLE
        resident_id = schemas.extract_reference_id(user.get("residente"))
        self.session.start(token, is_resident=is_resident, resident_id=resident_id, user=user)
        LOGGER.info("Staff session started", extra={"rol": user.get("rol")})
        return payload

    async def resident_login(self, access_key: str) -> dict[str, Any]:
        """Authenticate a resident with the access key of the resident portal."""

        payload = await self._request(
            "POST", "/api/residentes/login", json={"claveAcceso": access_key}
        )
        token = (payload or {}).get("token")
        if not token:
            raise BackendError("El servidor no devolvió un token de acceso")
        resident = payload.get("residente") or {}
        resident_id = schemas.extract_reference_id(resident)
        self.session.start(token, is_resident=True, resident_id=resident_id, user=resident)
        LOGGER.info("Resident session started", extra={"resident_id": resident_id})
        return payload

    def logout(self) -> None:
        self.session.end()

    async def list_residents(self) -> list[schemas.Resident]:
        payload = await self._request("GET", "/api/residentes")
        return [
            schemas.Resident.model_validate(item)
            for item in _unwrap_list(payload, "residentes", "data")
        ]

    async def get_resident(self, resident_id: str) -> schemas.Resident:
        payload = await self._request("GET", f"/api/residentes/{resident_id}")
        return schemas.Resident.model_validate(payload)

    async def list_payment_records(
        self,
        *,
        resident_id: Optional[str] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
        status: Optional[schemas.PeriodStatus] = None,
    ) -> list[schemas.PaymentRecord]:
        params: dict[str, Any] = {}
        if resident_id:
            params["residente"] = resident_id
        if month:
            params["mes"] = month
        if year:
            params["año"] = year
        if status:
            params["estado"] = status.value
        payload = await self._request("GET", "/api/pagos", params=params or None)
        return [
            schemas.PaymentRecord.model_validate(item)
            for item in _unwrap_list(payload, "pagos", "data")
        ]

    async def create_payment_record(
        self, data: schemas.PaymentRecordCreate
    ) -> schemas.PaymentRecord:
        payload = await self._request("POST", "/api/pagos", json=data.to_backend())
        record = schemas.PaymentRecord.model_validate(payload)
        LOGGER.info(
            "Payment record created",
            extra={"record_id": record.id, "month": record.month, "year": record.year},
        )
        return record

    async def apply_multi_payment(
        self,
        record_ids: Sequence[str],
        *,
        method: schemas.PaymentMethod,
        amount_paid: Decimal,
        reference: Optional[str] = None,
    ) -> schemas.MultiPaymentResult:
        body: dict[str, Any] = {
            "pagoIds": list(record_ids),
            "metodoPago": method.value,
            "montoPagado": float(amount_paid),
        }
        if reference:
            body["referenciaPago"] = reference
        payload = await self._request("POST", "/api/pagos/pago-multiple", json=body)
        return schemas.MultiPaymentResult.model_validate(payload or {})

    async def get_configuration(self) -> schemas.BillingConfiguration:
        payload = await self._request("GET", "/api/configuracion")
        return schemas.BillingConfiguration.model_validate(payload or {})

    async def daily_cut_records(self, day: date) -> list[schemas.PaymentRecord]:
        payload = await self._request("GET", f"/api/pagos/corte-diario/{day.isoformat()}")
        return [
            schemas.PaymentRecord.model_validate(item)
            for item in _unwrap_list(payload, "pagos", "data")
        ]

    async def fetch_resident_account(
        self, resident_id: str
    ) -> tuple[
        schemas.Resident, list[schemas.PaymentRecord], schemas.BillingConfiguration
    ]:
        """Fetch a resident, their records and the configuration concurrently."""

        resident, records, configuration = await asyncio.gather(
            self.get_resident(resident_id),
            self.list_payment_records(resident_id=resident_id),
            self.get_configuration(),
        )
        return resident, records, configuration

    async def fetch_directory(
        self,
    ) -> tuple[
        list[schemas.Resident],
        list[schemas.PaymentRecord],
        schemas.BillingConfiguration,
    ]:
        """Fetch every resident with every payment record, joined once both resolve."""

        residents, records, configuration = await asyncio.gather(
            self.list_residents(),
            self.list_payment_records(),
            self.get_configuration(),
        )
        return residents, records, configuration
