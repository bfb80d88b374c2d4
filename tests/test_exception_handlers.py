"""Tests for global exception handlers.

Rate limit rejections must keep their flat external contract; unexpected
errors never leak.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from quiniela_api.core.errors import AppError, RateLimitExceeded
from quiniela_api.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestRateLimitExceededHandler:
    def test_returns_429_with_flat_payload(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.post("/test-reset")
        async def test_endpoint():
            raise RateLimitExceeded(
                code="TOO_MANY_RESET_REQUESTS",
                message="Demasiadas solicitudes de recuperación. Intenta de nuevo en 1 hora.",
                policy="password_reset",
                retry_after_seconds=3599,
                headers={
                    "RateLimit-Limit": "5",
                    "RateLimit-Remaining": "0",
                    "RateLimit-Reset": "3599",
                    "Retry-After": "3599",
                },
            )

        response = client.post("/test-reset")

        assert response.status_code == 429
        assert response.json() == {
            "error": "TOO_MANY_RESET_REQUESTS",
            "message": "Demasiadas solicitudes de recuperación. Intenta de nuevo en 1 hora.",
        }
        assert response.headers["Retry-After"] == "3599"
        assert response.headers["RateLimit-Limit"] == "5"

    def test_without_headers(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-no-headers")
        async def test_endpoint():
            raise RateLimitExceeded(code="RATE_LIMITED", message="Demasiados envíos.", policy="feedback")

        response = client.get("/test-no-headers")

        assert response.status_code == 429
        assert "RateLimit-Limit" not in response.headers
        assert "Retry-After" not in response.headers

    def test_is_an_app_error(self):
        exc = RateLimitExceeded(code="RATE_LIMIT_EXCEEDED", message="msg", policy="api")

        assert isinstance(exc, AppError)
        assert str(exc) == "msg"


class TestGeneralExceptionHandler:
    def test_general_exception_handler_hides_internals(self):
        request = AsyncMock()
        request.url.path = "/pools"
        request.method = "POST"

        exc = RuntimeError("Unexpected error: database connection failed")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "database connection" not in data["error"]["message"]
        assert "RuntimeError" not in bytes(response.body).decode()


def test_setup_registers_rate_limit_and_fallback_handlers():
    app = FastAPI()

    setup_exception_handlers(app)
    setup_exception_handlers(app)

    assert RateLimitExceeded in app.exception_handlers
    assert AppError not in app.exception_handlers
    assert Exception in app.exception_handlers
