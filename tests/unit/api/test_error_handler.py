import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from app.api.exceptions import register_error_handler
from app.core.middleware.request_id import RequestIdMiddleware, resolve_request_id
from app.domain.exceptions import NotFound, Forbidden, AlreadyUsed, InvalidState, Unclaimed, DecodeError, \
    UpstreamError, Unauthorized, Conflict


def _client(exc: Exception) -> TestClient:
    app = FastAPI()
    register_error_handler(app)
    app.add_middleware(RequestIdMiddleware, header_name="X-Request-ID")

    @app.get("/boom")
    async def boom():
        raise exc

    return TestClient(app)


@pytest.mark.parametrize("exc, status_code, title", [
    (NotFound("Purchase not found"), 404, "Not Found"),
    (Forbidden("Invalid ticket signature"), 403, "Forbidden"),
    (AlreadyUsed("Ticket already used"), 409, "Already Used"),
    (Conflict("Coupon usage limit reached"), 409, "Conflict"),
    (Unclaimed("Coupon not claimed by user"), 400, "Invalid State"),
    (InvalidState("Coupon is not currently valid"), 400, "Invalid State"),
    (DecodeError("Invalid external id format"), 400, "Malformed Input"),
])
def test_app_errors_render_as_problem_json(exc, status_code, title):
    r = _client(exc).get("/boom", headers={"X-Request-ID": "req-1"})

    assert r.status_code == status_code
    assert r.headers["content-type"].startswith("application/problem+json")
    body = r.json()
    assert body["title"] == title
    assert body["detail"] == str(exc)
    assert body["trace_id"] == "req-1"


def test_upstream_error_is_opaque():
    r = _client(UpstreamError("Payment gateway rejected the request", ctx={"status_code": 400})).get("/boom")

    assert r.status_code == 502
    body = r.json()
    assert body["detail"] is None
    assert "context" not in body


def test_unauthorized_sets_www_authenticate():
    r = _client(Unauthorized("Invalid callback token")).get("/boom")

    assert r.status_code == 401
    assert r.headers["www-authenticate"].startswith("Bearer")


@pytest.mark.parametrize("value, kept", [
    ("abc-123", True),
    ("inv_1:retry.2", True),
    ("bad id with spaces", False),
    ("x" * 129, False),
    (None, False),
])
def test_resolve_request_id(value, kept):
    rid = resolve_request_id(value)

    assert (rid == value) is kept
    assert rid
