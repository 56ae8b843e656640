from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from app.middleware.rate_limit_headers import RateLimitHeadersMiddleware


def test_rate_limit_headers_middleware():
    app = FastAPI()
    app.add_middleware(RateLimitHeadersMiddleware)

    @app.get("/limited")
    async def limited(request: Request):
        request.state.rate_limit_info = {
            "allowed": True,
            "limit": 10,
            "remaining": 9,
            "retry_after": None,
        }
        return {"ok": True}

    client = TestClient(app)
    response = client.get("/limited")

    assert response.status_code == 200
    assert response.headers["X-RateLimit-Limit"] == "10"
    assert response.headers["X-RateLimit-Remaining"] == "9"
    assert "Retry-After" not in response.headers


def test_blocked_request_gets_retry_headers():
    app = FastAPI()
    app.add_middleware(RateLimitHeadersMiddleware)

    @app.get("/limited")
    async def limited(request: Request):
        request.state.rate_limit_info = {"allowed": False, "limit": 5, "remaining": 0, "retry_after": 7}
        return {"ok": False}

    response = TestClient(app).get("/limited")

    assert response.headers["Retry-After"] == "7"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert int(response.headers["X-RateLimit-Reset"]) > 0


def test_no_headers_without_rate_limit_info():
    app = FastAPI()
    app.add_middleware(RateLimitHeadersMiddleware)

    @app.get("/open")
    async def open_route():
        return {"ok": True}

    response = TestClient(app).get("/open")

    assert "X-RateLimit-Limit" not in response.headers
