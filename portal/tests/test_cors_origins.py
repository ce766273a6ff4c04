from fastapi.testclient import TestClient

from portal.app.main import (
    LOCAL_DEVELOPMENT_ORIGIN,
    _load_allowed_origins_from_env,
    _resolve_allowed_origins,
    _split_raw_origins,
    app,
)


def test_split_raw_origins_accepts_commas_and_whitespace():
    raw = "http://localhost:3000, http://127.0.0.1:3000 http://0.0.0.0:3000"
    assert _split_raw_origins(raw) == [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://0.0.0.0:3000",
    ]


def test_load_allowed_origins_from_env_accepts_space_separated_values(monkeypatch):
    monkeypatch.setenv(
        "BACKEND_ALLOWED_ORIGINS",
        "https://portal.example.com/ https://admin.example.com",
    )

    origins = _load_allowed_origins_from_env()

    assert origins == [
        "https://admin.example.com",
        "https://portal.example.com",
    ]


def test_local_development_origins_are_always_allowed(monkeypatch):
    monkeypatch.setenv("BACKEND_ALLOWED_ORIGINS", "https://portal.example.com")

    origins = _resolve_allowed_origins()

    assert "https://portal.example.com" in origins
    assert LOCAL_DEVELOPMENT_ORIGIN in origins


def test_ledger_endpoint_includes_cors_headers_for_local_dev_origin():
    client = TestClient(app)

    response = client.options(
        "/residents/res-1/ledger",
        headers={
            "Origin": LOCAL_DEVELOPMENT_ORIGIN,
            "Access-Control-Request-Method": "GET",
        },
    )

    assert response.status_code == 200
    assert response.headers.get("access-control-allow-origin") == LOCAL_DEVELOPMENT_ORIGIN
