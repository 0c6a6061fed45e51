"""Registration, login, logout and the request gate over HTTP."""

from datetime import datetime, timedelta, timezone

import pytest
import redis

from blogadmin.core.permissions import Role, permission_matrix
from blogadmin.services.audit_service import audit_service
from blogadmin.services.cache_service import cache_service
from tests.conftest import PASSWORD, auth_header, token_for


class TestRegister:
    def test_default_role_is_lead(self, client):
        resp = client.post("/api/register", json={
            "name": "New", "email": "new@example.com", "password": "secret1",
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["user"]["role"] == "lead"
        assert "password" not in data["user"]
        assert data["token"]

    def test_anonymous_role_override_is_forbidden(self, client):
        resp = client.post("/api/register", json={
            "name": "Sneaky", "email": "sneaky@example.com", "password": "secret1", "role": "admin",
        })
        assert resp.status_code == 403
        assert resp.json()["code"] == "forbidden"

    def test_unknown_role_is_invalid_role(self, client):
        resp = client.post("/api/register", json={
            "name": "X", "email": "x@example.com", "password": "secret1", "role": "owner",
        })
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_role"

    def test_user_manager_can_override_role(self, client, super_admin, headers_for):
        resp = client.post(
            "/api/register",
            json={"name": "Ed", "email": "ed@example.com", "password": "secret1", "role": "admin"},
            headers=headers_for(super_admin),
        )
        assert resp.status_code == 201
        assert resp.json()["user"]["role"] == "admin"

    def test_duplicate_email_conflicts(self, client, lead):
        resp = client.post("/api/register", json={
            "name": "Dup", "email": lead.email, "password": "secret1",
        })
        assert resp.status_code == 409


class TestLogin:
    def test_login_returns_token_and_summary(self, client, admin, db_session):
        resp = client.post("/api/login", json={"email": admin.email, "password": PASSWORD})
        assert resp.status_code == 200
        data = resp.json()
        assert data["user"] == {
            "id": admin.id, "name": admin.name, "email": admin.email, "role": "admin",
        }
        me = client.get("/api/me", headers=auth_header(data["token"]))
        assert me.status_code == 200
        assert me.json()["email"] == admin.email

        actions = [e.action for e in audit_service.query_logs(db_session, action="user.login")]
        assert actions == ["user.login"]

    @pytest.mark.parametrize("password", ["wrong", ""])
    def test_bad_credentials(self, client, admin, password):
        resp = client.post("/api/login", json={"email": admin.email, "password": password or "x"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid credentials"

    def test_unknown_email(self, client):
        resp = client.post("/api/login", json={"email": "ghost@example.com", "password": PASSWORD})
        assert resp.status_code == 401


class TestRequestGate:
    def test_missing_token(self, client):
        resp = client.get("/api/blogs")
        assert resp.status_code == 401
        assert resp.json()["reason"] == "missing"
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    def test_malformed_token(self, client):
        resp = client.get("/api/blogs", headers=auth_header("not-a-token"))
        assert resp.status_code == 401
        assert resp.json()["reason"] == "malformed"

    def test_expired_token(self, client, lead):
        token = token_for(lead.id, lead.role, issued_at=datetime.now(timezone.utc) - timedelta(hours=25))
        resp = client.get("/api/blogs", headers=auth_header(token))
        assert resp.status_code == 401
        assert resp.json()["reason"] == "expired"

    def test_tampered_token(self, client, lead):
        token = token_for(lead.id, lead.role)
        head, body, sig = token.split(".")
        tampered = ".".join([head, body, ("A" if sig[0] != "A" else "B") + sig[1:]])
        resp = client.get("/api/blogs", headers=auth_header(tampered))
        assert resp.status_code == 401
        assert resp.json()["reason"] == "invalid_signature"

    def test_logout_revokes_token(self, client, lead, fake_redis):
        token = token_for(lead.id, lead.role)
        assert client.get("/api/blogs", headers=auth_header(token)).status_code == 200

        resp = client.post("/api/logout", headers=auth_header(token))
        assert resp.status_code == 200
        assert len(fake_redis.store) == 1
        assert 0 < next(iter(fake_redis.ttls.values())) <= 24 * 3600

        resp = client.get("/api/blogs", headers=auth_header(token))
        assert resp.status_code == 401
        assert resp.json()["reason"] == "revoked"

    def test_other_tokens_survive_logout(self, client, lead):
        first = token_for(lead.id, lead.role)
        second = token_for(lead.id, lead.role)
        client.post("/api/logout", headers=auth_header(first))
        assert client.get("/api/blogs", headers=auth_header(second)).status_code == 200


def test_permission_matrix_endpoint(client):
    resp = client.get("/api/permissions")
    assert resp.status_code == 200
    assert resp.json() == {
        "roles": [r.value for r in Role],
        "permissions": permission_matrix(),
    }


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


class UnreachableRedis:
    def setex(self, key, ttl, value):
        raise redis.ConnectionError("connection refused")

    def exists(self, key):
        raise redis.ConnectionError("connection refused")


def test_logout_reports_unrecorded_revocation(client, lead, db_session, monkeypatch):
    monkeypatch.setattr(cache_service, "_client", UnreachableRedis())
    token = token_for(lead.id, lead.role)

    resp = client.post("/api/logout", headers=auth_header(token))
    assert resp.status_code == 503
    assert resp.json()["code"] == "revocation_unavailable"
    assert audit_service.query_logs(db_session, action="user.logout") == []
