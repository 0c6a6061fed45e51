"""User management endpoints."""

import pytest

from blogadmin.core.permissions import Role
from blogadmin.services.audit_service import audit_service
from tests.conftest import PASSWORD, auth_header


def test_list_users_hides_password(client, super_admin, lead, headers_for):
    resp = client.get("/api/users", headers=headers_for(super_admin))
    assert resp.status_code == 200
    users = resp.json()
    assert [u["email"] for u in users] == [super_admin.email, lead.email]
    for user in users:
        assert set(user) == {"id", "name", "email", "role", "is_active", "created_at"}


@pytest.mark.parametrize("role", [Role.lead, Role.admin])
def test_list_users_requires_manage_users(client, make_user, headers_for, role):
    resp = client.get("/api/users", headers=headers_for(make_user(role)))
    assert resp.status_code == 403


def test_change_role(client, super_admin, lead, headers_for, db_session):
    resp = client.put(
        f"/api/users/{lead.id}/role", json={"role": "admin"}, headers=headers_for(super_admin),
    )
    assert resp.status_code == 200
    assert resp.json() == {"id": lead.id, "name": lead.name, "role": "admin"}

    entry = audit_service.query_logs(db_session, action="user.role_changed")[0]
    assert entry.actor_id == super_admin.id
    assert entry.resource_id == str(lead.id)
    assert '"lead"' in entry.old_value_json
    assert '"admin"' in entry.new_value_json


@pytest.mark.parametrize("requested", ["lead", "admin", "super_admin", "owner"])
def test_self_role_change_is_forbidden(client, super_admin, headers_for, requested):
    resp = client.put(
        f"/api/users/{super_admin.id}/role",
        json={"role": requested},
        headers=headers_for(super_admin),
    )
    assert resp.status_code == 403
    me = client.get("/api/me", headers=headers_for(super_admin)).json()
    assert me["role"] == "super_admin"


@pytest.mark.parametrize("requested", ["owner", "", "Admin", None, 3])
def test_invalid_role_is_rejected(client, super_admin, lead, headers_for, requested):
    resp = client.put(
        f"/api/users/{lead.id}/role", json={"role": requested}, headers=headers_for(super_admin),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_role"


def test_missing_target_is_404(client, super_admin, headers_for):
    resp = client.put("/api/users/999/role", json={"role": "admin"}, headers=headers_for(super_admin))
    assert resp.status_code == 404


def test_admin_cannot_change_roles(client, admin, lead, headers_for):
    resp = client.put(f"/api/users/{lead.id}/role", json={"role": "super_admin"}, headers=headers_for(admin))
    assert resp.status_code == 403


def test_promoted_user_needs_fresh_login(client, super_admin, lead, headers_for):
    old_headers = headers_for(lead)
    client.put(f"/api/users/{lead.id}/role", json={"role": "admin"}, headers=headers_for(super_admin))

    resp = client.post("/api/blogs", data={"title": "t", "content": "c"}, headers=old_headers)
    assert resp.status_code == 403

    token = client.post("/api/login", json={"email": lead.email, "password": PASSWORD}).json()["token"]
    resp = client.post("/api/blogs", data={"title": "t", "content": "c"}, headers=auth_header(token))
    assert resp.status_code == 201
