"""Middleware de sessão e dependências de papel/permissão."""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from conftest import bearer
from timewise_auth.api.deps import get_current_identity, get_request_auth
from timewise_auth.core.auth_middleware import AuthState, RequestAuth, parse_bearer
from timewise_auth.core.errors import AuthenticationError, AuthorizationError
from timewise_auth.core.rbac import ensure_can_grant, require_min_role, require_permissions, require_roles
from timewise_auth.schemas.identity import Identity


@pytest.mark.parametrize(
    "header,expected",
    [
        (None, (None, False)),
        ("", (None, False)),
        ("Bearer abc", ("abc", False)),
        ("bearer abc", ("abc", False)),
        ("Basic abc", (None, True)),
        ("Bearer", (None, True)),
        ("Bearer a b", (None, True)),
    ],
)
def test_parse_bearer(header, expected):
    assert parse_bearer(header) == expected


@pytest.fixture
def guarded_app(app):
    @app.get("/_test/public")
    def public(auth: RequestAuth = Depends(get_request_auth)):
        return {"state": auth.state.value, "subject": auth.subject_id}

    @app.get("/_test/any")
    def any_user(identity: Identity = Depends(get_current_identity)):
        return {"id": identity.id}

    @app.get("/_test/admin")
    def admin_only(identity: Identity = Depends(require_roles("admin", "superadmin"))):
        return {"id": identity.id}

    @app.get("/_test/min-user")
    def min_user(identity: Identity = Depends(require_min_role("user"))):
        return {"id": identity.id}

    @app.get("/_test/perm")
    def perm(identity: Identity = Depends(require_permissions("reports:read"))):
        return {"id": identity.id}

    return app


@pytest.fixture
def gclient(guarded_app):
    with TestClient(guarded_app) as c:
        yield c


@pytest.fixture
def tokens(guarded_app):
    service = guarded_app.state.token_service

    def _for(roles, permissions=None):
        return service.issue(Identity(id="42", email="t@example.com", roles=roles, permissions=permissions)).access_token
    return _for


class TestMiddlewareState:
    def test_public_route_without_token(self, gclient):
        assert gclient.get("/_test/public").json() == {"state": "no_token", "subject": None}

    def test_public_route_with_valid_token(self, gclient, tokens):
        resp = gclient.get("/_test/public", headers=bearer(tokens(["user"])))

        assert resp.json() == {"state": "verified", "subject": "42"}

    def test_public_route_with_bad_token_still_passes(self, gclient):
        resp = gclient.get("/_test/public", headers=bearer("garbage"))

        assert resp.status_code == 200
        assert resp.json()["state"] == "rejected"

    def test_protected_route_rejects_revoked_token(self, gclient, guarded_app, tokens):
        token = tokens(["user"])
        guarded_app.state.token_service.revoke(token)

        resp = gclient.get("/_test/any", headers=bearer(token))

        assert resp.status_code == 401
        assert resp.json()["code"] == "INVALID_TOKEN"


class TestRoleGuards:
    @pytest.mark.parametrize("roles,status", [(["admin"], 200), (["superadmin"], 200), (["user"], 403), ([], 403)])
    def test_require_roles(self, gclient, tokens, roles, status):
        resp = gclient.get("/_test/admin", headers=bearer(tokens(roles)))

        assert resp.status_code == status

    def test_forbidden_body(self, gclient, tokens):
        resp = gclient.get("/_test/admin", headers=bearer(tokens(["user"])))

        assert resp.json() == {"code": "FORBIDDEN", "message": "Insufficient privileges", "details": None}

    def test_role_guard_without_token_is_401(self, gclient):
        resp = gclient.get("/_test/admin")

        assert resp.status_code == 401
        assert resp.json()["code"] == "AUTHENTICATION_REQUIRED"

    @pytest.mark.parametrize("roles,status", [(["guest"], 403), (["user"], 200), (["admin"], 200), (["unknown"], 403)])
    def test_require_min_role(self, gclient, tokens, roles, status):
        assert gclient.get("/_test/min-user", headers=bearer(tokens(roles))).status_code == status

    @pytest.mark.parametrize(
        "roles,permissions,status",
        [
            (["user"], ["reports:read"], 200),
            (["user"], ["reports:read", "x"], 200),
            (["user"], ["x"], 403),
            (["admin"], None, 403),
            (["superadmin"], None, 200),
        ],
    )
    def test_require_permissions(self, gclient, tokens, roles, permissions, status):
        resp = gclient.get("/_test/perm", headers=bearer(tokens(roles, permissions)))

        assert resp.status_code == status
        if status == 403:
            assert resp.json()["message"] == "Insufficient permissions"


class TestGuardTransitions:
    def _auth(self, roles):
        identity = Identity(id="1", roles=roles)
        return identity, RequestAuth(state=AuthState.VERIFIED, token="t", identity=identity)

    def test_authorized(self):
        identity, auth = self._auth(["admin"])

        assert require_roles("admin")(identity=identity, auth=auth) is identity
        assert auth.state == AuthState.AUTHORIZED

    def test_forbidden(self):
        identity, auth = self._auth(["user"])

        with pytest.raises(AuthorizationError):
            require_roles("admin")(identity=identity, auth=auth)
        assert auth.state == AuthState.FORBIDDEN

    def test_role_names_are_case_insensitive_on_the_guard(self):
        identity, auth = self._auth(["admin"])

        require_roles("ADMIN")(identity=identity, auth=auth)

        assert auth.state == AuthState.AUTHORIZED

    def test_empty_role_list_is_a_programming_error(self):
        with pytest.raises(RuntimeError):
            require_roles()

    def test_unknown_min_role_is_a_programming_error(self):
        with pytest.raises(RuntimeError):
            require_min_role("root")


def test_dependency_resolves_without_middleware(guarded_app):
    # app montada sem o middleware: a dependência resolve sozinha
    bare = FastAPI()
    bare.state.token_service = guarded_app.state.token_service

    @bare.get("/who")
    def who(identity: Identity = Depends(get_current_identity)):
        return {"id": identity.id}

    token = guarded_app.state.token_service.issue(Identity(id="9", roles=["user"])).access_token
    with TestClient(bare) as c:
        assert c.get("/who", headers=bearer(token)).json() == {"id": "9"}
        # sem handler registrado a exceção sobe crua
        with pytest.raises(AuthenticationError):
            c.get("/who")


@pytest.mark.parametrize(
    "caller,roles,allowed",
    [
        (["admin"], ["user", "admin"], True),
        (["admin"], ["superadmin"], False),
        (["user", "superadmin"], ["superadmin"], True),
        (["guest"], ["user"], False),
        (["admin"], [], True),
    ],
)
def test_ensure_can_grant(caller, roles, allowed):
    identity = Identity(id="1", roles=caller)

    if allowed:
        ensure_can_grant(identity, roles)
    else:
        with pytest.raises(AuthorizationError):
            ensure_can_grant(identity, roles)


def test_store_failure_during_verify_returns_store_error(settings, engine, db):
    from timewise_auth.main import create_app

    app = create_app(settings.model_copy(update={"TOKEN_STORE_BACKEND": "database"}), engine=engine)
    token = app.state.token_service.issue(Identity(id="7", roles=["user"])).access_token
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE revoked_tokens")

    with TestClient(app) as c:
        resp = c.get("/healthz", headers=bearer(token))

    assert resp.status_code == 500
    assert resp.json() == {"code": "STORE_ERROR", "message": "Token store failure.", "details": {"op": "is_revoked"}}
