"""
Row-level security: the database-side copy of `can_access`.

Predicates are built as SQLAlchemy expressions from the same permission
table and scoping registry the application evaluator uses, over a set of
claim expressions:

- session_claims(): read from `current_setting('app.current_*')`, which the
  `after_begin` hook below fills from the verified Subject. Compiled to
  Postgres text for `CREATE POLICY`.
- literal_claims(subject): the same claims as bound values, used to filter
  application listing queries and to test that both sides agree.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from sqlalchemy import String, Uuid, and_, cast, event, false, func, literal, or_, select, text
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.selectable import Select

from cowork.auth.permissions import Action, ResourceType, roles_allowed
from cowork.auth.scoping import TABLE_SCOPES, scope_for
from cowork.auth.subject import OWNER_SCOPED_RESOURCES, Subject
from cowork.core.roles import Role, parse_role, roles_at_least

logger = logging.getLogger(__name__)

CLAIM_ROLE = "app.current_role"
CLAIM_TENANT_ID = "app.current_tenant_id"
CLAIM_USER_ID = "app.current_user_id"

SESSION_CLAIMS_INFO_KEY = "authz_claims"

# table name -> action value -> sorted role names
PolicyRoles = Mapping[str, Mapping[str, List[str]]]

POLICY_COMMANDS: Dict[Action, str] = {
    Action.VIEW: "SELECT",
    Action.CREATE: "INSERT",
    Action.UPDATE: "UPDATE",
    Action.DELETE: "DELETE",
}

_SET_CLAIM = text("SELECT set_config(:key, :value, true)")


@dataclass(frozen=True)
class Claims:
    role: ColumnElement
    tenant_id: ColumnElement
    user_id: ColumnElement


def _setting(key: str) -> ColumnElement:
    # unset and reset settings read back as NULL / ''
    return func.nullif(func.current_setting(key, True, type_=String), "", type_=String)


def session_claims() -> Claims:
    return Claims(
        role=_setting(CLAIM_ROLE),
        tenant_id=cast(_setting(CLAIM_TENANT_ID), Uuid),
        user_id=cast(_setting(CLAIM_USER_ID), Uuid),
    )


def literal_claims(subject: Subject) -> Claims:
    return Claims(
        role=literal(subject.role.value, String),
        tenant_id=literal(subject.tenant_id, Uuid),
        user_id=literal(subject.id, Uuid),
    )


# ---------------------------------------------------------
# Predicates
# ---------------------------------------------------------
def _role_in(claims: Claims, roles) -> ColumnElement:
    if not roles:
        return false()
    return claims.role.in_(sorted(r.value for r in roles))


def tenant_predicate(resource: ResourceType, claims: Claims) -> ColumnElement:
    scope = scope_for(resource)
    table = scope.model.__table__

    if scope.parent is None:
        return or_(
            claims.role == Role.SUPER_ADMIN.value,
            table.c[scope.tenant_column] == claims.tenant_id,
        )

    # Non-correlated IN so the text stays valid inside CREATE POLICY.
    parent_table = scope_for(scope.parent).model.__table__
    parent_ids = select(parent_table.c.id).where(tenant_predicate(scope.parent, claims))
    return table.c[scope.parent_fk].in_(parent_ids)


def owner_predicate(resource: ResourceType, claims: Claims) -> ColumnElement:
    scope = scope_for(resource)
    table = scope.model.__table__
    return or_(
        table.c[scope.owner_column] == claims.user_id,
        _role_in(claims, roles_at_least(Role.COWORK_ADMIN)),
    )


def policy_predicate(
    resource: ResourceType,
    action: Action,
    claims: Claims,
    roles: Optional[Iterable[Role]] = None,
) -> ColumnElement:
    """
    allows AND in_tenant AND (owner scoped => owns_or_admin), in SQL.
    `roles` overrides the live permission table (migrations pass a frozen copy).
    """
    if roles is None:
        roles = roles_allowed(resource, action)
    parts = [
        _role_in(claims, roles),
        tenant_predicate(resource, claims),
    ]
    if resource in OWNER_SCOPED_RESOURCES:
        parts.append(owner_predicate(resource, claims))
    return and_(*parts)


def scoped_select(resource: ResourceType, subject: Subject, action: Action = Action.VIEW) -> Select:
    """
    Listing query restricted to the rows `subject` may `action`.
    Out-of-scope rows simply are not returned.
    """
    model = scope_for(resource).model
    return select(model).where(policy_predicate(resource, action, literal_claims(subject)))


# ---------------------------------------------------------
# DDL
# ---------------------------------------------------------
def compile_predicate(expr: ColumnElement) -> str:
    return str(expr.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


def policy_name(resource: ResourceType, action: Action) -> str:
    return _policy_name(scope_for(resource).table_name, action)


def _policy_name(table_name: str, action: Action) -> str:
    return f"{table_name}_{POLICY_COMMANDS[action].lower()}_policy"


def create_policy_sql(resource: ResourceType, action: Action, roles: Optional[Iterable[Role]] = None) -> str:
    table = scope_for(resource).table_name
    command = POLICY_COMMANDS[action]
    predicate = compile_predicate(policy_predicate(resource, action, session_claims(), roles))

    if action == Action.CREATE:
        clause = f"WITH CHECK ({predicate})"
    elif action == Action.UPDATE:
        clause = f"USING ({predicate}) WITH CHECK ({predicate})"
    else:
        clause = f"USING ({predicate})"
    return f'CREATE POLICY "{policy_name(resource, action)}" ON "{table}" FOR {command} {clause}'


def policy_roles() -> PolicyRoles:
    """
    Which roles each policy admits, by table name and action. A migration
    keeps a literal copy of this so an applied revision never changes meaning
    when the permission table does.
    """
    return {
        scope.table_name: {
            action.value: sorted(r.value for r in roles_allowed(resource, action)) for action in Action
        }
        for resource, scope in TABLE_SCOPES.items()
    }


def render_enable_statements(snapshot: Optional[PolicyRoles] = None) -> List[str]:
    if snapshot is None:
        snapshot = policy_roles()
    by_table = {scope.table_name: resource for resource, scope in TABLE_SCOPES.items()}

    statements: List[str] = []
    for table_name, per_action in snapshot.items():
        resource = by_table[table_name]
        statements.append(f'ALTER TABLE "{table_name}" ENABLE ROW LEVEL SECURITY')
        statements.append(f'ALTER TABLE "{table_name}" FORCE ROW LEVEL SECURITY')
        for action in Action:
            roles = [parse_role(r) for r in per_action[action.value]]
            statements.append(create_policy_sql(resource, action, roles))
    return statements


def render_disable_statements(snapshot: Optional[PolicyRoles] = None) -> List[str]:
    # only needs the table names, so a frozen snapshot drops exactly what it installed
    if snapshot is None:
        snapshot = policy_roles()

    statements: List[str] = []
    for table_name in snapshot:
        for action in Action:
            statements.append(f'DROP POLICY IF EXISTS "{_policy_name(table_name, action)}" ON "{table_name}"')
        statements.append(f'ALTER TABLE "{table_name}" NO FORCE ROW LEVEL SECURITY')
        statements.append(f'ALTER TABLE "{table_name}" DISABLE ROW LEVEL SECURITY')
    return statements


# ---------------------------------------------------------
# Session claims
# ---------------------------------------------------------
def claim_settings(subject: Optional[Subject]) -> Dict[str, str]:
    if subject is None:
        return {CLAIM_ROLE: "", CLAIM_TENANT_ID: "", CLAIM_USER_ID: ""}
    return {
        CLAIM_ROLE: subject.role.value,
        CLAIM_TENANT_ID: str(subject.tenant_id) if subject.tenant_id else "",
        CLAIM_USER_ID: str(subject.id),
    }


@event.listens_for(Session, "after_begin")
def _apply_claims_on_begin(session, transaction, connection) -> None:
    claims = session.info.get(SESSION_CLAIMS_INFO_KEY)
    if not claims or connection.dialect.name != "postgresql":
        return
    for key, value in claims.items():
        connection.execute(_SET_CLAIM, {"key": key, "value": value})


async def bind_session_claims(db: AsyncSession, subject: Subject) -> None:
    """
    Attach the verified subject's claims to this session. Every transaction
    the session begins from now on sets them with set_config(..., true).
    """
    claims = claim_settings(subject)
    db.info[SESSION_CLAIMS_INFO_KEY] = claims

    bind = db.bind
    if bind is None or bind.dialect.name != "postgresql":
        return
    if db.in_transaction():
        # already begun before the claims were attached
        for key, value in claims.items():
            await db.execute(_SET_CLAIM, {"key": key, "value": value})
    logger.debug("bound session claims role=%s tenant=%s", claims[CLAIM_ROLE], claims[CLAIM_TENANT_ID])
