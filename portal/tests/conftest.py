from __future__ import annotations

import base64
import json
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Generator, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

# Ensure the project root (which exposes the ``portal`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from portal.app.config import PortalSettings
from portal.app.main import app
from portal.app.security import SessionContext
from portal.app.services import BackendClient
from portal.app.upstream import get_client_factory

BACKEND_URL = "http://backend.test"


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def make_jwt(payload: dict) -> str:
    header = _b64url(json.dumps({"alg": "HS256", "typ": "JWT"}).encode())
    body = _b64url(json.dumps(payload).encode())
    return f"{header}.{body}.firma"


ADMIN_TOKEN = make_jwt({"id": "usr-1", "rol": "Administrador"})
RESIDENT_TOKEN = make_jwt({"id": "usr-2", "rol": "Residente", "residente": "res-1"})
RESIDENT_ACCESS_KEY = "ABC123"
RESIDENT_ACCESS_TOKEN = base64.b64encode(f"res-1:{RESIDENT_ACCESS_KEY}".encode()).decode()

PAID_STATUSES = {"Pagado", "Pagado con excedente"}
REQUIRED_RECORD_FIELDS = (
    "vivienda",
    "mes",
    "año",
    "monto",
    "metodoPago",
    "fechaInicioPeriodo",
    "fechaFinPeriodo",
    "fechaLimite",
)


class FakeBackend:
    """In-memory stand-in for the complex REST backend."""

    def __init__(self) -> None:
        self.residents: dict[str, dict[str, Any]] = {}
        self.records: list[dict[str, Any]] = []
        self.configuration: dict[str, Any] = {
            "nombreFraccionamiento": "Fraccionamiento Demo",
            "cuotaMantenimientoMensual": 200,
            "diasGraciaPago": 0,
            "porcentajeRecargo": 10,
        }
        self.valid_tokens = {ADMIN_TOKEN, RESIDENT_TOKEN, RESIDENT_ACCESS_TOKEN}
        self.failures: dict[tuple[str, str], int] = {}
        self.requests: list[tuple[str, str, Any]] = []
        self._next_id = 1

    def add_resident(
        self,
        resident_id: str,
        *,
        move_in: str = "2024-01-15T00:00:00.000Z",
        housing_unit: Optional[str] = "viv-1",
        numero: str = "101",
        nombre: str = "Ana",
        apellidos: str = "López",
        activo: bool = True,
    ) -> dict[str, Any]:
        resident = {
            "_id": resident_id,
            "nombre": nombre,
            "apellidos": apellidos,
            "fechaIngreso": move_in,
            "activo": activo,
            "vivienda": {"_id": housing_unit, "numero": numero} if housing_unit else None,
        }
        self.residents[resident_id] = resident
        return resident

    def add_record(
        self,
        resident_id: str,
        month: int,
        year: int,
        *,
        monto: float = 200,
        monto_pagado: float = 0,
        estado: str = "Pendiente",
        fecha_pago: Optional[str] = None,
        metodo_pago: Optional[str] = None,
        vivienda: str = "viv-1",
    ) -> dict[str, Any]:
        record = {
            "_id": f"pago-{self._next_id}",
            "residente": {"_id": resident_id, "nombre": "Ana", "apellidos": "López"},
            "vivienda": {"_id": vivienda, "numero": "101"},
            "mes": month,
            "año": year,
            "monto": monto,
            "montoPagado": monto_pagado,
            "estado": estado,
            "fechaPago": fecha_pago,
            "metodoPago": metodo_pago,
            "fechaLimite": f"{year:04d}-{month:02d}-28T23:59:59.999Z",
        }
        self._next_id += 1
        self.records.append(record)
        return record

    def fail(self, method: str, path_prefix: str, status_code: int = 500) -> None:
        self.failures[(method, path_prefix)] = status_code

    def calls(self, method: str, path: str) -> list[Any]:
        return [body for m, p, body in self.requests if m == method and p == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.requests.append((method, path, body))

        for (fail_method, prefix), status_code in self.failures.items():
            if method == fail_method and path.startswith(prefix):
                return httpx.Response(status_code, json={"message": "Error simulado"})

        if path == "/api/usuarios/login":
            if body.get("password") != "secreto":
                return httpx.Response(401, json={"message": "Credenciales inválidas"})
            return httpx.Response(
                200,
                json={
                    "token": ADMIN_TOKEN,
                    "usuario": {"id": "usr-1", "nombre": "Admin", "rol": "Administrador"},
                },
            )
        if path == "/api/residentes/login":
            if body.get("claveAcceso") != RESIDENT_ACCESS_KEY:
                return httpx.Response(401, json={"message": "Clave de acceso inválida"})
            return httpx.Response(
                200,
                json={
                    "message": "Acceso exitoso",
                    "token": RESIDENT_ACCESS_TOKEN,
                    "residente": {"id": "res-1", "nombre": "Ana", "apellidos": "López"},
                },
            )

        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token not in self.valid_tokens:
            return httpx.Response(401, json={"message": "Token inválido"})

        if path == "/api/residentes" and method == "GET":
            return httpx.Response(200, json=list(self.residents.values()))
        if path.startswith("/api/residentes/") and method == "GET":
            resident = self.residents.get(path.rsplit("/", 1)[-1])
            if resident is None:
                return httpx.Response(404, json={"message": "Residente no encontrado"})
            return httpx.Response(200, json=resident)
        if path == "/api/configuracion":
            return httpx.Response(200, json=self.configuration)
        if path.startswith("/api/pagos/corte-diario/"):
            day = path.rsplit("/", 1)[-1]
            return httpx.Response(
                200,
                json=[
                    record
                    for record in self.records
                    if record["estado"] in PAID_STATUSES
                    and (record["fechaPago"] or "").startswith(day)
                ],
            )
        if path == "/api/pagos/pago-multiple" and method == "POST":
            return self._apply_multi_payment(body)
        if path == "/api/pagos" and method == "GET":
            return httpx.Response(200, json=self._filter_records(request.url.params))
        if path == "/api/pagos" and method == "POST":
            missing = [name for name in REQUIRED_RECORD_FIELDS if body.get(name) is None]
            if missing:
                return httpx.Response(
                    500,
                    json={"message": f"Pago validation failed: {', '.join(missing)} required"},
                )
            record = {"_id": f"pago-{self._next_id}", "fechaPago": None, **body}
            self._next_id += 1
            self.records.append(record)
            return httpx.Response(201, json=record)

        return httpx.Response(404, json={"message": "Ruta no encontrada"})

    def _filter_records(self, params: httpx.QueryParams) -> list[dict[str, Any]]:
        records = self.records
        resident_id = params.get("residente")
        if resident_id:
            records = [
                record
                for record in records
                if (record["residente"]["_id"] if isinstance(record["residente"], dict) else record["residente"])
                == resident_id
            ]
        return records

    def _apply_multi_payment(self, body: dict[str, Any]) -> httpx.Response:
        by_id = {record["_id"]: record for record in self.records}
        selected = [by_id[record_id] for record_id in body["pagoIds"] if record_id in by_id]
        if len(selected) != len(body["pagoIds"]):
            return httpx.Response(404, json={"message": "Algunos pagos no fueron encontrados"})
        total = sum(record["monto"] for record in selected)
        for record in selected:
            record["estado"] = "Pagado"
            record["montoPagado"] = record["monto"]
            record["metodoPago"] = body["metodoPago"]
            record["fechaPago"] = "2024-04-10T15:00:00.000Z"
        return httpx.Response(
            200,
            json={
                "pagos": selected,
                "totalPagado": total,
                "excedente": body["montoPagado"] - total,
            },
        )


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def backend() -> FakeBackend:
    fake = FakeBackend()
    fake.add_resident("res-1")
    return fake


@pytest.fixture
def settings() -> PortalSettings:
    return PortalSettings(
        backend_url=BACKEND_URL,
        backend_timeout=5.0,
        default_monthly_fee=Decimal("500"),
    )


@pytest.fixture
def make_client(backend: FakeBackend, settings: PortalSettings):
    def factory(session: SessionContext) -> BackendClient:
        return BackendClient(
            session,
            settings=settings,
            transport=httpx.MockTransport(backend.handler),
        )

    return factory


@pytest.fixture
def api(make_client) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_client_factory] = lambda: make_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_client_factory, None)


@pytest.fixture
def admin_api(api: TestClient) -> TestClient:
    api.headers.update({"Authorization": f"Bearer {ADMIN_TOKEN}"})
    return api


@pytest.fixture
def resident_api(api: TestClient) -> TestClient:
    api.headers.update({"Authorization": f"Bearer {RESIDENT_TOKEN}"})
    return api
