"""
HTTP tests for the metrics middleware, security headers and monitoring routes.
"""

import re
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from storefront.main import create_app
from storefront.monitoring import collector as collector_module
from storefront.monitoring.sanitize import REDACTED

pytestmark = pytest.mark.integration


class TestResponseHeaders:
    def test_metrics_headers_on_every_response(self, client):
        response = client.get("/health")

        assert re.fullmatch(r"req_\d{13}_[0-9a-z]{9}", response.headers["X-Request-ID"])
        assert re.fullmatch(r"\d+ms", response.headers["X-Response-Time"])
        assert response.headers["X-API-Version"] == "1.0.0"
        assert response.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"
        assert response.headers["Pragma"] == "no-cache"
        assert response.headers["Expires"] == "0"

    def test_request_ids_differ_between_requests(self, client):
        first = client.get("/health").headers["X-Request-ID"]
        second = client.get("/health").headers["X-Request-ID"]
        assert first != second

    def test_security_headers(self, client):
        headers = client.get("/health").headers

        assert headers["X-Content-Type-Options"] == "nosniff"
        assert headers["X-Frame-Options"] == "DENY"
        assert headers["Referrer-Policy"] == "no-referrer"
        assert headers["Cross-Origin-Opener-Policy"] == "same-origin"
        assert "default-src 'self'" in headers["Content-Security-Policy"]
        assert "Strict-Transport-Security" not in headers

    def test_docs_are_served_without_csp(self, client):
        response = client.get("/docs")

        assert response.status_code == 200
        assert "Content-Security-Policy" not in response.headers
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_error_responses_carry_headers_too(self, client):
        response = client.get("/auth/profile")

        assert response.status_code == 401
        assert "X-Request-ID" in response.headers
        assert "X-Response-Time" in response.headers


class TestMetricsEndpoint:
    def test_counts_by_route_template(self, client):
        client.get("/products/1")
        client.get("/products/2")

        data = client.get("/api/monitoring/metrics").json()["data"]

        assert data["requests"]["byEndpoint"]["/products/{product_id}"] == 2
        assert data["errors"]["byType"]["AuthenticationRequiredError"] == 2
        assert set(data) == {"requests", "errors", "performance", "system", "timestamp"}
        assert data["system"]["environment"] == "test"

    def test_unknown_routes_count_by_raw_path(self, client):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"
        data = client.get("/api/monitoring/metrics").json()["data"]
        assert data["requests"]["byEndpoint"]["/nope"] == 1

    def test_reset(self, client):
        client.get("/health")

        response = client.post("/api/monitoring/reset")

        assert response.status_code == 200
        assert response.json()["success"] is True
        data = client.get("/api/monitoring/metrics").json()["data"]
        assert data["requests"]["byEndpoint"] == {"/api/monitoring/metrics": 1}
        assert data["errors"]["total"] == 0


class TestUnhandledErrors:
    def test_unexpected_exception_becomes_500_envelope(self, app):
        async def explode():
            raise RuntimeError("database exploded: password=hunter2")

        app.add_api_route("/explode", explode)

        with TestClient(app) as client:
            response = client.get("/explode")
            metrics = client.get("/api/monitoring/metrics").json()["data"]

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "Internal server error",
            "error": "INTERNAL_ERROR",
        }
        assert "X-Request-ID" in response.headers
        assert metrics["errors"]["byType"] == {"RuntimeError": 1}

    def test_500_envelope_carries_security_headers(self, app):
        async def explode():
            raise RuntimeError("boom")

        app.add_api_route("/explode", explode)

        with TestClient(app) as client:
            response = client.get("/explode")

        assert response.status_code == 500
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "default-src 'self'" in response.headers["Content-Security-Policy"]


class TestLogRedaction:
    @pytest.fixture
    def collector_logger(self, monkeypatch):
        fake = Mock()
        monkeypatch.setattr(collector_module, "logger", fake)
        return fake

    @staticmethod
    def events(fake, name):
        return [
            call.kwargs
            for method in (fake.info, fake.error)
            for call in method.call_args_list
            if call.args == (name,)
        ]

    def test_failed_registration_never_logs_the_password(self, client, collector_logger):
        response = client.post(
            "/auth/register", json={"username": "alice", "password": "TopSecret99"}
        )

        assert response.status_code == 400
        (failed,) = self.events(collector_logger, "request.failed")
        assert failed["error_type"] == "RequestValidationError"
        assert {"loc": "body.email", "msg": "Field required", "type": "missing"} in failed[
            "validation_errors"
        ]
        assert "TopSecret99" not in repr(collector_logger.mock_calls)

    def test_form_encoded_login_is_redacted_in_development(
        self, settings_factory, collector_logger
    ):
        app = create_app(settings_factory(environment="development"))

        with TestClient(app) as client:
            client.post("/auth/login", data={"username": "alice", "password": "TopSecret99"})

        (received,) = self.events(collector_logger, "request.received")
        assert received["body"] == {"username": "alice", "password": REDACTED}
        assert "TopSecret99" not in repr(collector_logger.mock_calls)


class TestHealthEndpoints:
    def test_liveness(self, client):
        body = client.get("/health").json()

        assert body["success"] is True
        assert body["status"] == "healthy"
        assert body["version"] == "1.0.0"
        assert body["environment"] == "test"
        assert "timestamp" in body

    def test_health_detailed(self, app, client):
        app.state.health_aggregator.memory_reader = lambda: {"rss": 64, "vms": 128}

        response = client.get("/api/monitoring/health-detailed")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "healthy"

    def test_health_detailed_reports_store_failure(self, app, client):
        async def failing_probe():
            raise ConnectionError("store unreachable")

        app.state.health_aggregator.probe = failing_probe

        response = client.get("/api/monitoring/health-detailed")

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["status"] == "unhealthy"
