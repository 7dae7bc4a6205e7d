"""GraphQL endpoint: queries, mutations and per-request context."""

import asyncio

import pyotp
import strawberry

from app import admin_auth_service
from models.activity_logs import ActivityLog
from models.admin_sessions import AdminSession
from routers.admin_graphql import MASKED_ERROR_MESSAGE, build_schema
from tests.helpers import (
    ADMIN_PASSWORD,
    LOGIN_QUERY,
    LOGOUT_MUTATION,
    SECURITY_QUESTION_QUERY,
    VALIDATE_QUERY,
    VERIFY_2FA_MUTATION,
)


def _graphql(client, query, variables=None, headers=None):
    response = client.post(
        "/graphql",
        json={"query": query, "variables": variables or {}},
        headers=headers or {},
    )
    assert response.status_code == 200
    body = response.json()
    assert body.get("errors") is None, body.get("errors")
    return body["data"]


def _login(client, username="superuser", password=ADMIN_PASSWORD, headers=None):
    data = _graphql(
        client, LOGIN_QUERY, {"username": username, "password": password}, headers=headers,
    )
    return data["adminLogin"]


def test_admin_login_returns_token_and_profile(client, admin):
    payload = _login(client)

    assert payload["success"] is True
    assert payload["message"] == "Login successful"
    assert payload["requires2FA"] is False
    assert payload["admin"]["username"] == "superuser"
    assert payload["admin"]["fullName"] == "Super User"
    assert payload["admin"]["isActive"] is True
    assert payload["admin"]["role"]["name"] == "editor"
    assert payload["admin"]["permissions"] == ["events:read", "events:write"]
    assert payload["session"]["token"]
    assert payload["session"]["expiresAt"]


def test_admin_login_wrong_password(client, admin):
    payload = _login(client, password="nope")

    assert payload["success"] is False
    assert payload["message"] == "Invalid username or password"
    assert payload["admin"] is None
    assert payload["session"] is None


def test_admin_login_records_forwarded_client_ip(client, db, admin):
    _login(
        client,
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "admin-panel/1.0"},
    )

    session = db.query(AdminSession).one()
    assert session.ip_address == "203.0.113.7"
    assert session.user_agent == "admin-panel/1.0"
    assert db.query(ActivityLog).one().ip_address == "203.0.113.7"


def test_admin_login_uses_real_ip_header_without_forwarded_for(client, db, admin):
    _login(client, headers={"X-Real-IP": "198.51.100.4"})
    assert db.query(AdminSession).one().ip_address == "198.51.100.4"


def test_validate_session_roundtrip(client, admin):
    token = _login(client)["session"]["token"]

    data = _graphql(client, VALIDATE_QUERY, {"token": token})

    assert data["adminValidateSession"]["isValid"] is True
    assert data["adminValidateSession"]["admin"]["username"] == "superuser"
    assert data["adminValidateSession"]["expiresAt"]


def test_validate_session_invalid_token(client, admin):
    data = _graphql(client, VALIDATE_QUERY, {"token": "garbage"})
    assert data["adminValidateSession"] == {"isValid": False, "expiresAt": None, "admin": None}


def test_get_admin_by_username(client, admin):
    data = _graphql(client, SECURITY_QUESTION_QUERY, {"username": "superuser"})
    assert data["getAdminByUsername"] == {"securityQuestion": "What is your favourite venue?"}

    data = _graphql(client, SECURITY_QUESTION_QUERY, {"username": "ghost"})
    assert data["getAdminByUsername"] is None


def test_two_factor_flow(client, make_admin):
    guarded = make_admin("guarded", enable_2fa=True)
    secret = guarded.two_factor_secret

    first = _login(client, username="guarded")
    assert first["success"] is True
    assert first["requires2FA"] is True
    assert first["session"] is None

    data = _graphql(
        client,
        VERIFY_2FA_MUTATION,
        {"username": "guarded", "password": ADMIN_PASSWORD, "code": pyotp.TOTP(secret).now()},
    )
    assert data["adminVerify2FA"]["success"] is True
    assert data["adminVerify2FA"]["session"]["token"]


def test_logout_with_bearer_token(client, admin):
    token = _login(client)["session"]["token"]
    auth_header = {"Authorization": f"Bearer {token}"}

    data = _graphql(client, LOGOUT_MUTATION, headers=auth_header)
    assert data["adminLogout"] == {"success": True, "message": "Logged out successfully"}

    data = _graphql(client, VALIDATE_QUERY, {"token": token})
    assert data["adminValidateSession"]["isValid"] is False


def test_logout_without_any_token(client, admin):
    data = _graphql(client, LOGOUT_MUTATION)
    assert data["adminLogout"]["success"] is False


def test_production_schema_disables_introspection():
    schema = build_schema(production=True)

    result = schema.execute_sync("{ __schema { types { name } } }")

    assert result.errors
    assert result.data is None


def test_development_schema_allows_introspection():
    schema = build_schema(production=False)

    result = schema.execute_sync("{ __schema { queryType { name } } }")

    assert result.errors is None
    assert result.data["__schema"]["queryType"]["name"] == "Query"


def test_service_calls_run_off_the_event_loop(client, admin, monkeypatch):
    seen = {}

    def record(name, fn):
        def wrapper(*args, **kwargs):
            try:
                asyncio.get_running_loop()
                seen[name] = "event-loop"
            except RuntimeError:
                seen[name] = "worker-thread"
            return fn(*args, **kwargs)
        return wrapper

    monkeypatch.setattr(
        admin_auth_service, "admin_login", record("login", admin_auth_service.admin_login),
    )
    monkeypatch.setattr(
        admin_auth_service, "authenticate_token",
        record("context", admin_auth_service.authenticate_token),
    )

    assert _login(client)["success"] is True
    assert seen == {"login": "worker-thread", "context": "worker-thread"}


@strawberry.type
class FailingQuery:
    @strawberry.field
    def crash(self) -> str:
        raise RuntimeError("relation admin_sessions does not exist")

    @strawberry.field
    def missing(self) -> str:
        raise ValueError("Event not found")

    @strawberry.field
    def forbidden(self) -> str:
        raise PermissionError("Missing permission events:write")


def test_production_schema_masks_internal_errors():
    schema = build_schema(production=True, query=FailingQuery, mutation=None)

    result = schema.execute_sync("{ crash }")

    assert [e.message for e in result.errors] == [MASKED_ERROR_MESSAGE]


def test_production_schema_keeps_not_found_and_permission_errors():
    schema = build_schema(production=True, query=FailingQuery, mutation=None)

    assert schema.execute_sync("{ missing }").errors[0].message == "Event not found"
    assert (
        schema.execute_sync("{ forbidden }").errors[0].message
        == "Missing permission events:write"
    )


def test_development_schema_does_not_mask_errors():
    schema = build_schema(production=False, query=FailingQuery, mutation=None)

    result = schema.execute_sync("{ crash }")

    assert result.errors[0].message == "relation admin_sessions does not exist"
