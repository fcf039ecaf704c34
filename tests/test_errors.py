"""
Boundary translator tests: every error leaves the API with the same shape.
"""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.errors import (
    BadRequest,
    Conflict,
    Forbidden,
    InvalidTable,
    NotFound,
    TokenExpired,
    TokenMalformed,
    Unauthorized,
    register_error_handlers,
)


@pytest.fixture
def error_client():
    app = FastAPI()
    register_error_handlers(app)
    errors = {
        "bad": BadRequest("Bad input", meta={"field": "x"}),
        "table": InvalidTable("pg_shadow"),
        "unauth": Unauthorized("Missing bearer token"),
        "expired": TokenExpired(),
        "malformed": TokenMalformed(),
        "forbidden": Forbidden("Nope"),
        "missing": NotFound("User not found"),
        "conflict": Conflict("Taken"),
    }

    @app.get("/raise/{kind}")
    def raise_error(kind: str):
        if kind == "crash":
            raise RuntimeError("db password is hunter2")
        raise errors[kind]

    @app.get("/typed/{n}")
    def typed(n: int):
        return {"n": n}

    return TestClient(app, raise_server_exceptions=False)


class TestAppErrors:
    @pytest.mark.parametrize("kind,status,code,message", [
        ("bad", 400, "bad_request", "Bad input"),
        ("table", 400, "invalid_table", "Invalid table name: pg_shadow"),
        ("unauth", 401, "unauthorized", "Missing bearer token"),
        ("expired", 401, "unauthorized", "Token has expired"),
        ("malformed", 401, "unauthorized", "Invalid token"),
        ("forbidden", 403, "forbidden", "Nope"),
        ("missing", 404, "not_found", "User not found"),
        ("conflict", 409, "conflict", "Taken"),
    ])
    def test_shape(self, error_client, kind, status, code, message):
        res = error_client.get(f"/raise/{kind}")
        assert res.status_code == status
        detail = res.json()["detail"]
        assert detail["code"] == code
        assert detail["message"] == message

    def test_meta_passed_through(self, error_client):
        assert error_client.get("/raise/bad").json()["detail"]["meta"] == {"field": "x"}

    def test_401_advertises_bearer(self, error_client):
        assert error_client.get("/raise/unauth").headers["www-authenticate"] == "Bearer"


class TestFrameworkErrors:
    def test_validation_error(self, error_client):
        res = error_client.get("/typed/abc")
        assert res.status_code == 400
        detail = res.json()["detail"]
        assert detail["code"] == "validation_error"
        assert detail["meta"]["errors"][0]["loc"] == ["path", "n"]

    def test_unknown_route(self, error_client):
        res = error_client.get("/nowhere")
        assert res.status_code == 404
        assert res.json()["detail"]["code"] == "not_found"

    def test_unhandled_error_hides_internals(self, error_client):
        res = error_client.get("/raise/crash")
        assert res.status_code == 500
        assert res.json() == {"detail": {"code": "internal_error", "message": "Internal server error"}}
        assert "hunter2" not in res.text
