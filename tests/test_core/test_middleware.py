import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from pydantic import BaseModel

from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.middleware import (
    CorrelationMiddleware,
    ErrorHandlingMiddleware,
    PerformanceMiddleware,
    RequestValidationMiddleware,
    get_client_ip,
    register_exception_handlers,
)


class Item(BaseModel):
    name: str


def build_app(expose_details: bool = True) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestValidationMiddleware, max_request_size=1024)
    app.add_middleware(ErrorHandlingMiddleware, expose_details=expose_details)
    app.add_middleware(PerformanceMiddleware)
    app.add_middleware(CorrelationMiddleware)
    register_exception_handlers(app)

    @app.get("/test")
    async def test_endpoint(request: Request):
        return {"correlation_id": request.state.correlation_id}

    @app.get("/missing")
    async def missing():
        raise NotFoundError("Prompt")

    @app.get("/conflict")
    async def conflict():
        raise ConflictError("Already exists", ["email"])

    @app.get("/invalid")
    async def invalid():
        raise ValidationError.for_field("title", "Title is required")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @app.post("/items")
    async def create_item(item: Item):
        return {"name": item.name}

    @app.patch("/items/like")
    async def like():
        return {"liked": True}

    return app


@pytest.fixture
def client():
    return TestClient(build_app())


class TestCorrelationMiddleware:
    """Test CorrelationMiddleware functionality."""

    def test_correlation_id_generation(self, client):
        response = client.get("/test")

        assert response.status_code == 200
        data = response.json()
        assert len(data["correlation_id"]) > 0
        assert response.headers["X-Correlation-ID"] == data["correlation_id"]

    def test_existing_correlation_id_preserved(self, client):
        response = client.get("/test", headers={"X-Correlation-ID": "existing-id-123"})
        assert response.json()["correlation_id"] == "existing-id-123"

    def test_request_id_header_is_accepted(self, client):
        response = client.get("/test", headers={"X-Request-ID": "request-7"})
        assert response.headers["X-Correlation-ID"] == "request-7"


class TestExceptionHandlers:
    """Test translation of errors into the error envelope."""

    def test_not_found(self, client):
        response = client.get("/missing")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Prompt not found"}

    def test_conflict(self, client):
        response = client.get("/conflict")
        assert response.status_code == 409
        assert response.json()["error"] == "Already exists"

    def test_validation(self, client):
        response = client.get("/invalid")
        assert response.status_code == 400
        assert response.json()["details"] == [
            {"field": "title", "message": "Title is required"}
        ]

    def test_request_validation_is_400(self, client):
        response = client.post("/items", json={})
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Validation error",
            "details": [{"field": "name", "message": "Field required"}],
        }

    def test_unknown_route(self, client):
        response = client.get("/nowhere")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Not Found"}

    def test_errors_keep_correlation_header(self, client):
        response = client.get("/missing", headers={"X-Correlation-ID": "trace-1"})
        assert response.headers["X-Correlation-ID"] == "trace-1"


class TestErrorHandlingMiddleware:
    """Test the 500 fallback."""

    def test_unexpected_error_with_details(self, client):
        response = client.get("/boom", headers={"X-Correlation-ID": "trace-2"})

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Internal server error"
        assert body["details"]["message"] == "kaboom"
        assert "RuntimeError" in body["details"]["stack"]
        assert response.headers["X-Correlation-ID"] == "trace-2"

    def test_production_hides_details(self):
        client = TestClient(build_app(expose_details=False))
        response = client.get("/boom")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}


class TestPerformanceMiddleware:
    """Test PerformanceMiddleware functionality."""

    def test_process_time_header(self, client):
        response = client.get("/test")
        assert float(response.headers["X-Process-Time"]) >= 0


class TestRequestValidationMiddleware:
    """Test RequestValidationMiddleware functionality."""

    def test_request_too_large(self, client):
        response = client.post("/items", json={"name": "x" * 2048})
        assert response.status_code == 413
        assert response.json()["success"] is False

    def test_unsupported_content_type(self, client):
        response = client.post(
            "/items", content=b"name=x", headers={"Content-Type": "text/plain"}
        )
        assert response.status_code == 415
        assert "text/plain" in response.json()["error"]

    def test_bodiless_patch_is_allowed(self, client):
        response = client.patch("/items/like")
        assert response.status_code == 200
        assert response.json() == {"liked": True}


class TestGetClientIp:
    """Test client IP resolution."""

    def test_forwarded_for(self):
        scope = {
            "type": "http",
            "headers": [(b"x-forwarded-for", b"203.0.113.5, 10.0.0.1")],
            "client": ("127.0.0.1", 1234),
        }
        assert get_client_ip(Request(scope)) == "203.0.113.5"

    def test_real_ip(self):
        scope = {"type": "http", "headers": [(b"x-real-ip", b"198.51.100.7")], "client": None}
        assert get_client_ip(Request(scope)) == "198.51.100.7"

    def test_direct_client(self):
        scope = {"type": "http", "headers": [], "client": ("192.0.2.1", 80)}
        assert get_client_ip(Request(scope)) == "192.0.2.1"
