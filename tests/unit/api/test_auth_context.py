import jwt
import pytest
from fastapi import HTTPException

from dms_submission.api.auth.context import (
    AuthContextV1,
    Permission,
    get_auth_context,
    require_permission,
)
from dms_submission.config import config


class MockRequest:
    pass


@pytest.fixture(autouse=True)
def strict_auth(monkeypatch):
    monkeypatch.setattr(config.auth, "jwt_secret", "secret")
    monkeypatch.setattr(config.auth, "jwt_issuer", None)
    monkeypatch.setattr(config.auth, "jwt_audience", None)
    monkeypatch.setattr(config.auth, "env", "prod")
    monkeypatch.setattr(config.auth, "allow_insecure_headers", False)


def _bearer(claims: dict) -> str:
    return "Bearer " + jwt.encode(claims, "secret", algorithm="HS256")


def test_missing_token_fails_closed_401():
    with pytest.raises(HTTPException) as exc:
        get_auth_context(MockRequest(), authorization=None, x_principal="svc", x_permissions=None)
    assert exc.value.status_code == 401


def test_invalid_token_401():
    with pytest.raises(HTTPException) as exc:
        get_auth_context(MockRequest(), authorization="Bearer invalid.token.here")
    assert exc.value.status_code == 401
    assert "invalid token" in str(exc.value.detail).lower()


def test_token_without_subject_401():
    with pytest.raises(HTTPException) as exc:
        get_auth_context(MockRequest(), authorization=_bearer({"permissions": []}))
    assert exc.value.status_code == 401


def test_valid_token_threads_principal_and_permissions():
    ctx = get_auth_context(
        MockRequest(),
        authorization=_bearer({
            "sub": "test-service",
            "permissions": ["dms-submission/submit/WRITE", "dms-submission/test-service/READ"],
        }),
    )
    assert ctx.principal == "test-service"
    assert ctx.auth_type == "jwt"
    assert ctx.has_permission(Permission("dms-submission", "submit", "WRITE"))
    assert ctx.has_permission(Permission("dms-submission", "test-service", "READ"))
    assert not ctx.has_permission(Permission("dms-submission", "test-service", "WRITE"))


def test_header_fallback_only_in_dev(monkeypatch):
    monkeypatch.setattr(config.auth, "allow_insecure_headers", True)
    monkeypatch.setattr(config.auth, "env", "dev")

    ctx = get_auth_context(
        MockRequest(),
        authorization=None,
        x_principal="svc",
        x_permissions="dms-submission/*/READ",
    )
    assert ctx.auth_type == "header"
    assert ctx.has_permission(Permission("dms-submission", "anyone", "READ"))


def test_permission_parse_rejects_malformed():
    assert Permission.parse("dms-submission/submit") is None
    assert Permission.parse("dms-submission/submit/DELETE") is None
    assert Permission.parse("dms-submission/submit/write") == Permission("dms-submission", "submit", "WRITE")


def test_wildcard_does_not_cross_resource_types():
    granted = Permission("other-service", "*", "READ")
    assert not granted.grants(Permission("dms-submission", "owner", "READ"))


def test_require_permission_403():
    ctx = AuthContextV1(principal="svc", permissions=["dms-submission/svc/READ"], auth_type="header")
    with pytest.raises(HTTPException) as exc:
        require_permission(ctx, "other", "READ")
    assert exc.value.status_code == 403
    require_permission(ctx, "svc", "READ")
