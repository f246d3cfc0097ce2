"""Tests for global exception handlers.

Validates that domain and unexpected errors are rendered with a consistent
body, the right status code, and no internals leaked.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ratekeeper.adapters.rate_limit.token_bucket import TokenBucketRateLimiter
from ratekeeper.core.errors import AppError, ConfigurationAppError
from ratekeeper.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Handler for AppError and subclasses."""

    def test_limiter_misconfiguration_returns_500_with_details(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        """A limiter built with bad parameters surfaces as a server fault."""

        @app_with_handlers.get("/misconfigured")
        async def endpoint():
            TokenBucketRateLimiter(capacity=0, refill_rate=1)

        response = client.get("/misconfigured")

        assert response.status_code == 500
        data = response.json()
        assert data["error"]["code"] == "invalid_capacity"
        assert data["error"]["details"]["parameter"] == "capacity"
        assert data["error"]["details"]["actual_value"] == 0

    def test_details_are_omitted_when_empty(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/bare")
        async def endpoint():
            raise AppError(code="bare", message="bare")

        response = client.get("/bare")

        assert response.status_code == 500
        data = response.json()
        assert data["error"]["code"] == "bare"
        assert "details" not in data["error"]


def test_configuration_error_is_also_a_value_error():
    exc = ConfigurationAppError(code="invalid_rate", message="Rate must be >= 0")

    assert isinstance(exc, ValueError)
    assert str(exc) == "Rate must be >= 0"


class TestGeneralExceptionHandler:
    """Fallback handler for unexpected exceptions."""

    def test_unexpected_exception_returns_generic_500(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/boom")
        async def endpoint():
            raise RuntimeError("state store corrupted at key api_key:secret")

        response = client.get("/boom")

        assert response.status_code == 500
        data = response.json()
        assert data["error"]["code"] == "internal_server_error"
        assert "secret" not in response.text

    def test_handler_never_leaks_stack_trace(self):
        request = AsyncMock()
        request.url.path = "/v1/ping"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("boom")))

        body = bytes(response.body).decode()
        assert json.loads(body)["error"]["code"] == "internal_server_error"
        assert "Traceback" not in body
        assert "ValueError" not in body

    def test_handlers_registered(self, app_with_handlers: FastAPI):
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers
