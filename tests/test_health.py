"""Tests for the health endpoint.

Covers:
- Reachable database → 200 with the fixed success body
- Any probe failure → 500 with the fixed error body, logged
- Repeated calls return identical bodies
- Router is mounted under the configured API prefix
- Unreachable database through the real lifespan → 500, never raises
- Missing database handle and out-of-range pool size → 500 JSON body
- run() binds 0.0.0.0 and logs the configured port
"""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from app import main
from app.config import Settings
from app.core.database import get_database
from app.core.exceptions import (
    DatabaseUnavailableError,
    PoolExhaustedError,
)
from app.main import create_app

SUCCESS_BODY = {"status": "ok", "db": "connected"}
ERROR_BODY = {"status": "error", "error": "Database unreachable"}


class FakeDatabase:
    """Records probe calls and optionally fails them."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    async def verify(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


def _settings(**overrides: object) -> Settings:
    return Settings(_env_file=None, **overrides)


def _client_for(database: FakeDatabase, **overrides: object) -> TestClient:
    """Build a TestClient whose handlers receive ``database``."""
    app = create_app(_settings(**overrides))
    app.dependency_overrides[get_database] = lambda: database
    return TestClient(app, raise_server_exceptions=False)


# =============================================================================
#  Success
# =============================================================================


class TestHealthy:
    def test_returns_200_with_fixed_body(self) -> None:
        database = FakeDatabase()
        response = _client_for(database).get("/api/health")

        assert response.status_code == 200
        assert response.json() == SUCCESS_BODY
        assert response.headers["content-type"] == "application/json"
        assert database.calls == 1

    def test_repeated_calls_identical(self) -> None:
        database = FakeDatabase()
        client = _client_for(database)

        bodies = [client.get("/api/health").content for _ in range(3)]

        assert bodies[0] == bodies[1] == bodies[2]
        assert database.calls == 3

    def test_custom_prefix(self) -> None:
        client = _client_for(FakeDatabase(), api_prefix="/v2")

        assert client.get("/v2/health").status_code == 200
        assert client.get("/api/health").status_code == 404


# =============================================================================
#  Failure
# =============================================================================


class TestUnhealthy:
    @pytest.mark.parametrize(
        "error",
        [
            DatabaseUnavailableError("Access denied for user"),
            PoolExhaustedError(queue_limit=5),
            RuntimeError("unexpected"),
        ],
    )
    def test_probe_failure_returns_500(self, error: Exception) -> None:
        response = _client_for(FakeDatabase(error)).get("/api/health")

        assert response.status_code == 500
        assert response.json() == ERROR_BODY

    def test_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        client = _client_for(FakeDatabase(DatabaseUnavailableError("timeout")))

        with caplog.at_level(logging.ERROR, logger="app.api.health"):
            client.get("/api/health")

        assert "Database health check failed" in caplog.text
        assert "timeout" in caplog.text

    def test_repeated_failures_identical(self) -> None:
        client = _client_for(FakeDatabase(DatabaseUnavailableError("down")))

        first = client.get("/api/health")
        second = client.get("/api/health")

        assert first.status_code == second.status_code == 500
        assert first.content == second.content


# =============================================================================
#  Real lifespan against an unreachable server
# =============================================================================


class TestUnreachableDatabase:
    def test_closed_port_returns_500(self) -> None:
        settings = _settings(db_host="127.0.0.1", db_port=1, db_pool_timeout=2.0)

        with TestClient(create_app(settings), raise_server_exceptions=False) as client:
            response = client.get("/api/health")

        assert response.status_code == 500
        assert response.json() == ERROR_BODY

    def test_negative_pool_size_still_serves_500(self) -> None:
        settings = _settings(db_host="127.0.0.1", db_port=1, db_pool_size=-1, db_pool_timeout=2.0)

        with TestClient(create_app(settings), raise_server_exceptions=False) as client:
            response = client.get("/api/health")

        assert response.status_code == 500
        assert response.json() == ERROR_BODY

    def test_missing_handle_returns_fixed_body(self) -> None:
        """Without the lifespan there is no handle; the body is still JSON."""
        client = TestClient(create_app(_settings()), raise_server_exceptions=False)

        response = client.get("/api/health")

        assert response.status_code == 500
        assert response.json() == ERROR_BODY

    def test_lifespan_owns_database_handle(self) -> None:
        settings = _settings(db_host="127.0.0.1", db_port=1)
        app = create_app(settings)

        with TestClient(app):
            database = app.state.database
            assert database.is_connected

        assert not database.is_connected


# =============================================================================
#  Bootstrap
# =============================================================================


class TestRun:
    def test_binds_all_interfaces_and_logs_port(
        self,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        calls: list[dict[str, object]] = []
        monkeypatch.setattr(main, "get_settings", lambda: _settings(port=4321))
        monkeypatch.setattr(main.uvicorn, "run", lambda target, **kwargs: calls.append(kwargs))

        with caplog.at_level(logging.INFO, logger="app.main"):
            main.run()

        assert calls[0]["host"] == "0.0.0.0"
        assert calls[0]["port"] == 4321
        assert "Server running on port 4321" in caplog.text

    def test_lifespan_does_not_claim_bound_port(self, caplog: pytest.LogCaptureFixture) -> None:
        settings = _settings(db_host="127.0.0.1", db_port=1)

        with caplog.at_level(logging.INFO, logger="app.main"):
            with TestClient(create_app(settings)):
                pass

        assert "Server running on port" not in caplog.text
