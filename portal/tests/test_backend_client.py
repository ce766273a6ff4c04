from __future__ import annotations

from datetime import date
from decimal import Decimal

import httpx
import pytest

from portal.app import schemas
from portal.app.security import SessionContext
from portal.app.services import (
    BackendClient,
    BackendError,
    BackendUnavailableError,
    SessionExpiredError,
)

from conftest import ADMIN_TOKEN, RESIDENT_ACCESS_KEY


@pytest.mark.anyio
async def test_requests_carry_bearer_token(backend, make_client):
    seen = []
    original = backend.handler

    def spy(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization"))
        return original(request)

    backend.handler = spy
    async with make_client(SessionContext.from_token(ADMIN_TOKEN)) as client:
        await client.get_configuration()

    assert seen == [f"Bearer {ADMIN_TOKEN}"]


@pytest.mark.anyio
async def test_login_starts_session(make_client):
    session = SessionContext()

    async with make_client(session) as client:
        await client.login(email="admin@example.com", password="secreto")

    assert session.is_active
    assert session.token == ADMIN_TOKEN
    assert session.is_resident is False
    assert session.user["rol"] == "Administrador"


@pytest.mark.anyio
async def test_resident_login_scopes_session(make_client):
    session = SessionContext()

    async with make_client(session) as client:
        await client.resident_login(RESIDENT_ACCESS_KEY)

    assert session.is_resident is True
    assert session.resident_id == "res-1"


@pytest.mark.anyio
async def test_logout_drops_credentials(backend, make_client):
    session = SessionContext()

    async with make_client(session) as client:
        await client.login(email="admin@example.com", password="secreto")
        client.logout()
        with pytest.raises(SessionExpiredError):
            await client.get_configuration()

    assert session.is_active is False
    assert backend.requests[-1][:2] == ("GET", "/api/configuracion")


@pytest.mark.anyio
async def test_unauthorized_response_ends_session(make_client):
    session = SessionContext()
    session.start("token-vencido")

    async with make_client(session) as client:
        with pytest.raises(SessionExpiredError) as excinfo:
            await client.list_residents()

    assert excinfo.value.status_code == 401
    assert session.is_active is False
    assert session.token is None


@pytest.mark.anyio
async def test_backend_error_carries_status_and_message(backend, make_client):
    async with make_client(SessionContext.from_token(ADMIN_TOKEN)) as client:
        with pytest.raises(BackendError) as excinfo:
            await client.get_resident("no-existe")

    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "Residente no encontrado"


@pytest.mark.anyio
async def test_validation_errors_are_joined(backend, make_client):
    def reject(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"errors": [{"msg": "Método de pago inválido"}, {"msg": "Monto inválido"}]},
        )

    backend.handler = reject
    async with make_client(SessionContext.from_token(ADMIN_TOKEN)) as client:
        with pytest.raises(BackendError, match="Método de pago inválido; Monto inválido"):
            await client.apply_multi_payment(
                ["pago-1"], method=schemas.PaymentMethod.CASH, amount_paid=Decimal("100")
            )


@pytest.mark.anyio
async def test_transport_failures_raise_unavailable(settings):
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = BackendClient(
        SessionContext.from_token(ADMIN_TOKEN),
        settings=settings,
        transport=httpx.MockTransport(boom),
    )
    async with client:
        with pytest.raises(BackendUnavailableError):
            await client.get_configuration()


@pytest.mark.anyio
async def test_fetch_directory_joins_residents_and_records(backend, make_client):
    backend.add_resident("res-2", nombre="Luis", numero="102", housing_unit="viv-2")
    backend.add_record("res-1", 1, 2024, monto_pagado=200, estado="Pagado")
    backend.add_record("res-2", 1, 2024, vivienda="viv-2")

    async with make_client(SessionContext.from_token(ADMIN_TOKEN)) as client:
        residents, records, configuration = await client.fetch_directory()

    assert sorted(resident.id for resident in residents) == ["res-1", "res-2"]
    assert residents[0].move_in_date == date(2024, 1, 15)
    assert [record.resident_id for record in records] == ["res-1", "res-2"]
    assert records[0].status == schemas.PeriodStatus.PAID
    assert configuration.monthly_fee == Decimal("200")


@pytest.mark.anyio
async def test_list_payment_records_filters_by_resident(backend, make_client):
    backend.add_resident("res-2")
    backend.add_record("res-1", 1, 2024)
    backend.add_record("res-2", 1, 2024)

    async with make_client(SessionContext.from_token(ADMIN_TOKEN)) as client:
        records = await client.list_payment_records(resident_id="res-2")

    assert [record.resident_id for record in records] == ["res-2"]
    assert records[0].due_date == date(2024, 1, 28)
