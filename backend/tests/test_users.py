# tests/test_users.py
from __future__ import annotations

import pytest

from cowork.auth.errors import InvalidRoleAssignment, NotAuthorized, ResourceNotFound, Unauthenticated
from cowork.auth.identity import resolve_token
from cowork.auth.subject import Subject
from cowork.core.roles import Role
from cowork.crud.user import change_role, deactivate_user
from cowork.models.user import User

from conftest import auth_headers, create_tenant, create_user, make_token


async def _tenant_with(db, *roles: Role):
    tenant = await create_tenant(db)
    users = [await create_user(db, role, tenant) for role in roles]
    await db.commit()
    return tenant, users


@pytest.mark.asyncio
async def test_admin_promotes_member_to_staff(db):
    _, (admin, member) = await _tenant_with(db, Role.COWORK_ADMIN, Role.END_USER)

    updated = await change_role(db, Subject.from_user(admin), member.id, Role.COWORK_USER)
    assert updated.role == "COWORK_USER"


@pytest.mark.asyncio
async def test_admin_cannot_grant_platform_roles(db):
    _, (admin, member) = await _tenant_with(db, Role.COWORK_ADMIN, Role.END_USER)

    for target in (Role.COWORK_ADMIN, Role.SUPER_ADMIN):
        with pytest.raises(InvalidRoleAssignment):
            await change_role(db, Subject.from_user(admin), member.id, target)

    await db.refresh(member)
    assert member.role == "END_USER"


@pytest.mark.asyncio
async def test_admin_cannot_demote_a_peer(db):
    _, (admin, peer) = await _tenant_with(db, Role.COWORK_ADMIN, Role.COWORK_ADMIN)

    with pytest.raises(InvalidRoleAssignment):
        await change_role(db, Subject.from_user(admin), peer.id, Role.END_USER)


@pytest.mark.asyncio
async def test_nobody_changes_their_own_role(db):
    _, (admin,) = await _tenant_with(db, Role.COWORK_ADMIN)

    with pytest.raises(InvalidRoleAssignment):
        await change_role(db, Subject.from_user(admin), admin.id, Role.END_USER)


@pytest.mark.asyncio
async def test_staff_cannot_change_roles(db):
    _, (staff, member) = await _tenant_with(db, Role.COWORK_USER, Role.END_USER)

    with pytest.raises(NotAuthorized):
        await change_role(db, Subject.from_user(staff), member.id, Role.CLIENT_ADMIN)


@pytest.mark.asyncio
async def test_users_of_other_tenants_are_not_found(db):
    _, (admin,) = await _tenant_with(db, Role.COWORK_ADMIN)
    _, (stranger,) = await _tenant_with(db, Role.END_USER)

    with pytest.raises(ResourceNotFound):
        await change_role(db, Subject.from_user(admin), stranger.id, Role.COWORK_USER)
    with pytest.raises(ResourceNotFound):
        await deactivate_user(db, Subject.from_user(admin), stranger.id)


@pytest.mark.asyncio
async def test_super_admin_promotion_clears_tenant(db):
    tenant, (member,) = await _tenant_with(db, Role.END_USER)
    root = await create_user(db, Role.SUPER_ADMIN)
    await db.commit()

    updated = await change_role(db, Subject.from_user(root), member.id, Role.SUPER_ADMIN)
    assert updated.role == "SUPER_ADMIN"
    assert updated.tenant_id is None


@pytest.mark.asyncio
async def test_deactivated_user_can_no_longer_sign_in(db):
    _, (admin, member) = await _tenant_with(db, Role.COWORK_ADMIN, Role.END_USER)

    updated = await deactivate_user(db, Subject.from_user(admin), member.id)
    assert updated.is_active is False

    with pytest.raises(Unauthenticated):
        await resolve_token(db, make_token(member.external_id, member.email))

    # deactivated, not deleted
    assert await db.get(User, member.id) is not None


@pytest.mark.asyncio
async def test_role_change_over_http(client, db):
    _, (admin, member) = await _tenant_with(db, Role.COWORK_ADMIN, Role.END_USER)

    r = await client.patch(
        f"/api/v1/users/{member.id}/role",
        json={"role": "CLIENT_ADMIN"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200, r.text
    assert r.json()["role"] == "CLIENT_ADMIN"

    r = await client.patch(
        f"/api/v1/users/{member.id}/role",
        json={"role": "SUPER_ADMIN"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "invalid_role_assignment"

    r = await client.patch(
        f"/api/v1/users/{member.id}/role",
        json={"role": "OWNER"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_user_listing_is_tenant_scoped(client, db):
    tenant, (admin, member) = await _tenant_with(db, Role.COWORK_ADMIN, Role.END_USER)
    await _tenant_with(db, Role.END_USER, Role.END_USER)

    r = await client.get("/api/v1/users", headers=auth_headers(admin))
    assert r.status_code == 200
    assert {u["id"] for u in r.json()} == {str(admin.id), str(member.id)}
    assert {u["tenant_id"] for u in r.json()} == {str(tenant.id)}

    r = await client.post(f"/api/v1/users/{member.id}/deactivate", headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.json()["is_active"] is False

    r = await client.get("/api/v1/auth/me", headers=auth_headers(member))
    assert r.status_code == 401
