# tests/test_rls.py
"""
The SQL predicates and can_access must agree. The policy text is checked
for shape; the predicates themselves are evaluated against real rows in
SQLite with bound claims, over every role, tenant, resource and action.
"""
from __future__ import annotations

import importlib.util
import itertools
import uuid
from pathlib import Path

import pytest
from sqlalchemy import select

from cowork.auth.permissions import Action, ResourceType
from cowork.auth.policy import can_access
from cowork.auth.rls import (
    CLAIM_ROLE,
    CLAIM_TENANT_ID,
    CLAIM_USER_ID,
    claim_settings,
    create_policy_sql,
    literal_claims,
    policy_name,
    policy_predicate,
    policy_roles,
    render_disable_statements,
    render_enable_statements,
    scoped_select,
)
from cowork.auth.scoping import TABLE_SCOPES, describe_row, scope_for
from cowork.auth.subject import Subject
from cowork.core.roles import Role

from conftest import seed_world


# ---------------------------------------------------------
# DDL
# ---------------------------------------------------------
def test_every_table_gets_rls_and_four_policies():
    statements = render_enable_statements()
    assert len(statements) == len(TABLE_SCOPES) * (2 + len(Action))

    for resource, scope in TABLE_SCOPES.items():
        table = scope.table_name
        assert f'ALTER TABLE "{table}" ENABLE ROW LEVEL SECURITY' in statements
        assert f'ALTER TABLE "{table}" FORCE ROW LEVEL SECURITY' in statements
        for action in Action:
            assert any(f'"{policy_name(resource, action)}" ON "{table}"' in s for s in statements)


def test_disable_reverses_enable():
    statements = render_disable_statements()
    for resource, scope in TABLE_SCOPES.items():
        assert f'ALTER TABLE "{scope.table_name}" DISABLE ROW LEVEL SECURITY' in statements
        for action in Action:
            assert f'DROP POLICY IF EXISTS "{policy_name(resource, action)}" ON "{scope.table_name}"' in statements


def _load_revision(filename: str):
    path = Path(__file__).resolve().parents[1] / "alembic" / "versions" / filename
    spec = importlib.util.spec_from_file_location(path.stem, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_rls_migration_matches_permission_table():
    # Fails when the permission table moves on: ship a new policy revision.
    revision = _load_revision("0002_row_level_security.py")
    assert revision.POLICY_ROLES == policy_roles()
    assert render_enable_statements(revision.POLICY_ROLES) == render_enable_statements()


def test_frozen_snapshot_overrides_live_permissions():
    snapshot = {"clients": {a.value: ["SUPER_ADMIN"] for a in Action}}
    statements = render_enable_statements(snapshot)

    assert len(statements) == 2 + len(Action)
    select_policy = next(s for s in statements if '"clients_select_policy"' in s)
    assert "'SUPER_ADMIN'" in select_policy
    assert "'END_USER'" not in select_policy


def test_disable_drops_snapshot_policy_names():
    snapshot = {"retired_things": {a.value: [] for a in Action}}
    statements = render_disable_statements(snapshot)

    assert 'DROP POLICY IF EXISTS "retired_things_select_policy" ON "retired_things"' in statements
    assert 'ALTER TABLE "retired_things" DISABLE ROW LEVEL SECURITY' in statements
    assert not any('"clients' in s for s in statements)


def test_policies_read_session_claims():
    sql = create_policy_sql(ResourceType.BOOKING, Action.VIEW)
    assert "FOR SELECT USING (" in sql
    assert "current_setting('app.current_role', true)" in sql
    assert "current_setting('app.current_tenant_id', true)" in sql
    assert "current_setting('app.current_user_id', true)" in sql


@pytest.mark.parametrize(
    "action,command,has_using,has_check",
    [
        (Action.VIEW, "SELECT", True, False),
        (Action.CREATE, "INSERT", False, True),
        (Action.UPDATE, "UPDATE", True, True),
        (Action.DELETE, "DELETE", True, False),
    ],
)
def test_policy_clauses_per_command(action, command, has_using, has_check):
    sql = create_policy_sql(ResourceType.CLIENT, action)
    assert f"FOR {command} " in sql
    assert ("USING (" in sql) is has_using
    assert ("WITH CHECK (" in sql) is has_check


def test_parent_scoped_policy_goes_through_parent_table():
    sql = create_policy_sql(ResourceType.QUOTATION_ITEM, Action.VIEW)
    assert "quotation_items.quotation_id IN (SELECT quotations.id" in sql
    assert "quotations.tenant_id" in sql


def test_end_user_roles_absent_from_write_policies_they_lack():
    sql = create_policy_sql(ResourceType.CLIENT, Action.DELETE)
    assert "'COWORK_ADMIN'" in sql
    assert "'END_USER'" not in sql


def test_pseudo_resources_have_no_table():
    with pytest.raises(ValueError):
        scope_for(ResourceType.BILLING)


def test_claim_settings_come_from_subject():
    s = Subject(id=uuid.uuid4(), tenant_id=None, role=Role.SUPER_ADMIN)
    claims = claim_settings(s)
    assert claims == {CLAIM_ROLE: "SUPER_ADMIN", CLAIM_TENANT_ID: "", CLAIM_USER_ID: str(s.id)}
    assert claim_settings(None) == {CLAIM_ROLE: "", CLAIM_TENANT_ID: "", CLAIM_USER_ID: ""}


# ---------------------------------------------------------
# App / DB agreement
# ---------------------------------------------------------
def _subjects(world):
    u1 = world.users["U1"].id
    tenant_ids = [world.tenants["T1"].id, world.tenants["T2"].id, None]
    return [
        Subject(id=u1, tenant_id=tenant_id, role=role, is_onboarded=True)
        for role, tenant_id in itertools.product(Role, tenant_ids)
    ]


@pytest.mark.asyncio
async def test_sql_predicates_agree_with_can_access(db):
    world = await seed_world(db)

    rows = {}
    for resource, scope in TABLE_SCOPES.items():
        rows[resource] = (await db.execute(select(scope.model))).scalars().all()
        assert rows[resource], resource

    descriptors = {
        resource: [(row.id, await describe_row(db, resource, row)) for row in resource_rows]
        for resource, resource_rows in rows.items()
    }

    for s in _subjects(world):
        for resource, action in itertools.product(TABLE_SCOPES, Action):
            model = scope_for(resource).model
            stmt = select(model.id).where(policy_predicate(resource, action, literal_claims(s)))
            from_sql = set((await db.execute(stmt)).scalars().all())

            from_app = {row_id for row_id, d in descriptors[resource] if can_access(s, d, action).allowed}

            assert from_sql == from_app, (s.role, s.tenant_id, resource, action)


@pytest.mark.asyncio
async def test_scoped_select_lists_only_visible_bookings(db):
    world = await seed_world(db)
    t1 = world.tenants["T1"].id
    u1 = world.users["U1"].id

    member = Subject(id=u1, tenant_id=t1, role=Role.END_USER)
    admin = Subject(id=uuid.uuid4(), tenant_id=t1, role=Role.COWORK_ADMIN)
    platform = Subject(id=uuid.uuid4(), tenant_id=None, role=Role.SUPER_ADMIN)

    async def visible(s):
        return (await db.execute(scoped_select(ResourceType.BOOKING, s))).scalars().all()

    assert {b.user_id for b in await visible(member)} == {u1}
    assert {b.tenant_id for b in await visible(admin)} == {t1}
    assert len(await visible(admin)) == 2
    assert len(await visible(platform)) == 3
