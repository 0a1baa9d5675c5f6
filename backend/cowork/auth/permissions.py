from __future__ import annotations

import enum
from typing import FrozenSet, Iterable, Mapping

from cowork.core.roles import Role


class ResourceType(str, enum.Enum):
    TENANT = "tenant"
    USER = "user"
    CLIENT = "client"
    LEAD = "lead"
    OPPORTUNITY = "opportunity"
    QUOTATION = "quotation"
    QUOTATION_ITEM = "quotation_item"
    SPACE = "space"
    SERVICE = "service"
    BOOKING = "booking"
    ACCESS_LOG = "access_log"
    INVOICE = "invoice"
    MEMBERSHIP = "membership"
    ACTIVITY = "activity"
    INVITATION = "invitation"

    # pseudo-resources (no table of their own)
    BILLING = "billing"
    REPORTS = "reports"
    SYSTEM_SETTINGS = "system_settings"


class Action(str, enum.Enum):
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def grant(resource: ResourceType, *actions: Action) -> FrozenSet[str]:
    if not actions:
        return frozenset({f"{resource.value}.*"})
    return frozenset(f"{resource.value}.{a.value}" for a in actions)


def _union(*parts: Iterable[str]) -> FrozenSet[str]:
    out: set[str] = set()
    for p in parts:
        out |= set(p)
    return frozenset(out)


V, C, U, D = Action.VIEW, Action.CREATE, Action.UPDATE, Action.DELETE
R = ResourceType

# Each role is the role below it plus additions, so rank stays monotonic.
_END_USER = _union(
    grant(R.TENANT, V),
    grant(R.USER, V),
    grant(R.CLIENT, V),
    grant(R.SPACE, V),
    grant(R.SERVICE, V),
    # own bookings only; the owner rule narrows this further
    grant(R.BOOKING),
    grant(R.ACCESS_LOG, V),
)

_CLIENT_ADMIN = _union(
    _END_USER,
    grant(R.MEMBERSHIP, V),
    grant(R.INVITATION, V, C),
)

_COWORK_USER = _union(
    _CLIENT_ADMIN,
    grant(R.CLIENT, C, U),
    grant(R.LEAD, V, C, U),
    grant(R.OPPORTUNITY, V, C, U),
    grant(R.QUOTATION, V, C, U),
    grant(R.QUOTATION_ITEM, V, C, U),
    grant(R.ACTIVITY, V, C, U),
    grant(R.INVOICE, V),
    grant(R.ACCESS_LOG, C),
)

_COWORK_ADMIN = _union(
    _COWORK_USER,
    grant(R.TENANT, U),
    grant(R.USER, C, U, D),
    grant(R.CLIENT, D),
    grant(R.LEAD, D),
    grant(R.OPPORTUNITY, D),
    grant(R.QUOTATION, D),
    grant(R.QUOTATION_ITEM, D),
    grant(R.ACTIVITY, D),
    grant(R.SPACE),
    grant(R.SERVICE),
    grant(R.INVOICE),
    grant(R.MEMBERSHIP),
    grant(R.INVITATION, U, D),
    grant(R.ACCESS_LOG, U),
    grant(R.BILLING, V, C, U),
    grant(R.REPORTS, V, C),
)

_SUPER_ADMIN = _union(*(grant(r) for r in ResourceType))

ROLE_BASE_PERMISSIONS: Mapping[Role, FrozenSet[str]] = {
    Role.END_USER: _END_USER,
    Role.CLIENT_ADMIN: _CLIENT_ADMIN,
    Role.COWORK_USER: _COWORK_USER,
    Role.COWORK_ADMIN: _COWORK_ADMIN,
    Role.SUPER_ADMIN: _SUPER_ADMIN,
}

del V, C, U, D, R


def permission_key(resource: ResourceType, action: Action) -> str:
    return f"{resource.value}.{action.value}"


def effective_permissions(role: Role) -> FrozenSet[str]:
    return ROLE_BASE_PERMISSIONS.get(role, frozenset())


def _has_domain_wildcard(grants: FrozenSet[str], required: str) -> bool:
    if required in grants:
        return True
    idx = required.find(".")
    if idx <= 0:
        return False
    domain = required[:idx]
    return f"{domain}.*" in grants


def allows(role: Role, resource: ResourceType, action: Action) -> bool:
    """
    Static (role, resource, action) lookup. Anything not granted is denied.
    """
    return _has_domain_wildcard(effective_permissions(role), permission_key(resource, action))


def roles_allowed(resource: ResourceType, action: Action) -> FrozenSet[Role]:
    return frozenset(r for r in Role if allows(r, resource, action))
