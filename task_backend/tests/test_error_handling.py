import logging

import pytest
from fastapi.testclient import TestClient

from src.api.errors import NotFoundError, StoreError, ValidationError
from src.api.main import create_app


@pytest.fixture
def memory_client(settings_factory):
    def build(raise_server_exceptions=True, **overrides):
        app = create_app(settings_factory("memory", **overrides))
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)

    return build


class TestErrorTaxonomy:
    def test_validation_error_payload(self):
        err = ValidationError.single("title must not be empty", ["title"])
        assert err.to_dict() == {
            "error": "Validation error",
            "statusCode": 400,
            "details": [{"message": "title must not be empty", "path": ["title"]}],
        }

    def test_not_found_payload_names_the_resource(self):
        assert NotFoundError("Task").to_dict() == {"error": "Task not found", "statusCode": 404}

    def test_store_error_hides_cause(self):
        err = StoreError("create")
        assert err.to_dict() == {"error": "Internal Server Error", "statusCode": 500}
        assert "create" in str(err)


class TestFrameworkErrors:
    def test_unknown_route(self, client):
        res = client.get("/api/v1/unknown")
        assert res.status_code == 404
        assert res.json() == {"error": "Not Found", "statusCode": 404}

    def test_method_not_allowed(self, client):
        res = client.delete("/api/v1/tasks")
        assert res.status_code == 405
        assert res.json() == {"error": "Method Not Allowed", "statusCode": 405}

    def test_malformed_json_body(self, client):
        res = client.post(
            "/api/v1/tasks",
            content=b'{"title": ',
            headers={"Content-Type": "application/json"},
        )
        assert res.status_code == 400
        body = res.json()
        assert body["error"] == "Validation error"
        assert body["details"]


class TestServerErrors:
    def test_store_failure_is_generic_500(self, client, monkeypatch, caplog):
        def failing_list(query=None):
            try:
                raise RuntimeError("could not connect to secret-db-host")
            except RuntimeError as exc:
                raise StoreError("list") from exc

        monkeypatch.setattr(client.app.state.repository, "list", failing_list)
        with caplog.at_level(logging.ERROR):
            res = client.get("/api/v1/tasks")

        assert res.status_code == 500
        assert res.json() == {"error": "Internal Server Error", "statusCode": 500}
        assert "secret-db-host" not in res.text
        assert "secret-db-host" in caplog.text

    def test_unexpected_exception_is_generic_500(self, memory_client, monkeypatch):
        with memory_client(raise_server_exceptions=False) as c:
            def broken_get(task_id):
                raise KeyError("internal detail")

            monkeypatch.setattr(c.app.state.repository, "get", broken_get)
            res = c.get("/api/v1/tasks/3f0c1d2e-8a4b-4c5d-9e6f-7a8b9c0d1e2f")

        assert res.status_code == 500
        assert res.json() == {"error": "Internal Server Error", "statusCode": 500}
        assert "internal detail" not in res.text


class TestMiddleware:
    def test_security_headers(self, client):
        res = client.get("/api/health")
        assert res.headers["x-content-type-options"] == "nosniff"
        assert res.headers["x-frame-options"] == "DENY"
        assert "content-security-policy" in res.headers

    def test_cors_allows_any_origin_by_default(self, client):
        res = client.get("/api/health", headers={"Origin": "https://example.com"})
        assert res.headers["access-control-allow-origin"] == "*"

    def test_oversized_body_rejected(self, memory_client):
        with memory_client(max_body_bytes=64) as c:
            res = c.post("/api/v1/tasks", json={"title": "x" * 200})
        assert res.status_code == 413
        assert res.json() == {"error": "Payload Too Large", "statusCode": 413}

    def test_oversized_chunked_body_rejected(self, memory_client):
        chunks = [b'{"title": "', b"x" * 100, b"x" * 100, b'"}']
        with memory_client(max_body_bytes=64) as c:
            res = c.post(
                "/api/v1/tasks",
                content=iter(chunks),
                headers={"Content-Type": "application/json"},
            )
        assert res.status_code == 413
        assert res.json() == {"error": "Payload Too Large", "statusCode": 413}

    def test_small_chunked_body_reaches_handler(self, memory_client):
        chunks = [b'{"title": ', b'"Chunked"}']
        with memory_client(max_body_bytes=64) as c:
            res = c.post(
                "/api/v1/tasks",
                content=iter(chunks),
                headers={"Content-Type": "application/json"},
            )
        assert res.status_code == 201
        assert res.json()["title"] == "Chunked"

    def test_rate_limit(self, memory_client):
        with memory_client(rate_limit_enabled=True, rate_limit="2/minute") as c:
            codes = [c.get("/api/health").status_code for _ in range(3)]
            last = c.get("/api/health")
        assert codes == [200, 200, 429]
        assert last.json() == {"error": "Too Many Requests", "statusCode": 429}
