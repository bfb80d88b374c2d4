"""HTTP-level tests: limiter dependencies wired into a FastAPI app."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from quiniela_api.api.scopes import limited_router
from quiniela_api.core.app_factory import create_app
from quiniela_api.core.config import settings
from quiniela_api.core.rate_limit import RateLimitRegistry, get_registry


def _business_routers():
    auth = limited_router("auth", prefix="/auth", tags=["Auth"])
    reset = limited_router("password_reset", prefix="/auth", tags=["Auth"])
    pools = limited_router("create_resource", prefix="/pools", tags=["Pools"])

    @auth.post("/login")
    def login() -> dict:
        return {"token": "t"}

    @reset.post("/forgot-password")
    def forgot_password() -> dict:
        return {"sent": True}

    @pools.post("")
    def create_pool() -> dict:
        return {"id": 1}

    return [auth, reset, pools]


@pytest.fixture
def app(registry: RateLimitRegistry) -> FastAPI:
    return create_app(registry=registry, routers=_business_routers())


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def test_health_is_never_limited(client: TestClient, registry: RateLimitRegistry) -> None:
    for _ in range(1000):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert "RateLimit-Limit" not in resp.headers

    assert registry.store.stats()["keys"] == 0


def test_admitted_response_carries_standard_headers(client: TestClient) -> None:
    resp = client.post("/pools")

    assert resp.status_code == 200
    assert resp.headers["RateLimit-Limit"] == "20"
    assert resp.headers["RateLimit-Remaining"] == "19"
    assert "RateLimit-Reset" in resp.headers
    assert "X-RateLimit-Limit" not in resp.headers


def test_login_rejected_after_ten_attempts(client: TestClient, clock: Mock) -> None:
    for _ in range(10):
        assert client.post("/auth/login").status_code == 200

    clock.return_value += 60_000
    resp = client.post("/auth/login")

    assert resp.status_code == 429
    assert resp.json() == {
        "error": "TOO_MANY_LOGIN_ATTEMPTS",
        "message": "Demasiados intentos de inicio de sesión. Intenta de nuevo en 15 minutos.",
    }
    assert resp.headers["RateLimit-Limit"] == "10"
    assert resp.headers["RateLimit-Remaining"] == "0"
    assert resp.headers["Retry-After"] == "840"
    assert resp.headers.get("X-Request-ID")


def test_password_reset_and_login_counted_separately(client: TestClient) -> None:
    for _ in range(5):
        assert client.post("/auth/forgot-password").status_code == 200

    rejected = client.post("/auth/forgot-password")
    assert rejected.status_code == 429
    assert rejected.json()["error"] == "TOO_MANY_RESET_REQUESTS"

    assert client.post("/auth/login").status_code == 200


def test_general_api_limit_applies_to_every_route(client: TestClient) -> None:
    for _ in range(100):
        client.post("/pools")  # create_resource rejects after 20

    resp = client.post("/pools")

    assert resp.status_code == 429
    assert resp.json()["error"] == "RATE_LIMIT_EXCEEDED"


def test_window_expiry_admits_again(client: TestClient, clock: Mock) -> None:
    for _ in range(20):
        client.post("/pools")
    assert client.post("/pools").status_code == 429

    clock.return_value += 3_600_000

    resp = client.post("/pools")
    assert resp.status_code == 200
    assert resp.headers["RateLimit-Remaining"] == "19"


def test_disabled_rate_limiting(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.rate_limit, "enabled", False)

    for _ in range(15):
        resp = client.post("/auth/login")
        assert resp.status_code == 200
        assert "RateLimit-Limit" not in resp.headers


def test_registry_lazily_created_without_injection() -> None:
    app = create_app()
    client = TestClient(app)

    assert client.get("/health").status_code == 200
    registry = get_registry(app)
    assert registry.names()[0] == "api"


def test_lifespan_closes_registry_on_shutdown(registry: RateLimitRegistry) -> None:
    app = create_app(registry=registry)

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert get_registry(app) is registry

    assert registry.closed is True
    assert registry.store.stats()["closed"] is True
    assert get_registry(app) is registry


def test_closed_injected_registry_is_not_silently_replaced(registry: RateLimitRegistry) -> None:
    app = create_app(registry=registry)
    with TestClient(app):
        pass

    with pytest.raises(RuntimeError):
        with TestClient(app):
            pass

    assert get_registry(app) is registry


def test_app_without_injected_registry_restarts_with_fresh_one() -> None:
    app = create_app()
    with TestClient(app):
        first = get_registry(app)

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        second = get_registry(app)

    assert first is not second
    assert first.closed and second.closed


def test_openapi_documents_429(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    assert "429" in schema["paths"]["/auth/login"]["post"]["responses"]
    assert "429" not in schema["paths"]["/health"]["get"]["responses"]


def test_limited_router_requires_a_policy() -> None:
    with pytest.raises(ValueError):
        limited_router(prefix="/feedback")


def test_feedback_route_group(registry: RateLimitRegistry) -> None:
    feedback = limited_router("feedback", prefix="/feedback")

    @feedback.post("")
    def submit_feedback() -> dict:
        return {"ok": True}

    client = TestClient(create_app(registry=registry, routers=[feedback]))
    statuses = [client.post("/feedback").status_code for _ in range(6)]

    assert statuses == [200] * 5 + [429]
    assert client.post("/feedback").json()["error"] == "RATE_LIMITED"


def test_headers_reach_routes_returning_their_own_response(registry: RateLimitRegistry) -> None:
    pools = limited_router("create_resource", prefix="/pools")

    @pools.post("")
    def create_pool() -> JSONResponse:
        return JSONResponse({"id": 1}, status_code=201, headers={"Location": "/pools/1"})

    client = TestClient(create_app(registry=registry, routers=[pools]))
    resp = client.post("/pools")

    assert resp.status_code == 201
    assert resp.headers["RateLimit-Limit"] == "20"
    assert resp.headers["RateLimit-Remaining"] == "19"
    assert "RateLimit-Reset" in resp.headers
    assert resp.headers["Location"] == "/pools/1"


def test_most_specific_policy_headers_win(client: TestClient) -> None:
    resp = client.post("/auth/login")

    assert resp.status_code == 200
    assert resp.headers["RateLimit-Limit"] == "10"
    assert resp.headers["RateLimit-Remaining"] == "9"


def test_general_api_headers_on_unscoped_routes(registry: RateLimitRegistry) -> None:
    catalog = APIRouter(prefix="/catalog")

    @catalog.get("")
    def list_tournaments() -> list:
        return []

    client = TestClient(create_app(registry=registry, routers=[catalog]))
    resp = client.get("/catalog")

    assert resp.status_code == 200
    assert resp.headers["RateLimit-Limit"] == "100"
    assert resp.headers["RateLimit-Remaining"] == "99"
