# cowork/core/roles.py

from __future__ import annotations

import enum
from typing import FrozenSet, Mapping


class Role(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"    # platform operator, crosses tenants
    COWORK_ADMIN = "COWORK_ADMIN"  # runs one cowork (tenant)
    COWORK_USER = "COWORK_USER"    # cowork staff
    CLIENT_ADMIN = "CLIENT_ADMIN"  # manages a client company's members
    END_USER = "END_USER"          # coworker / member


ROLE_RANK: Mapping[Role, int] = {
    Role.END_USER: 1,
    Role.CLIENT_ADMIN: 2,
    Role.COWORK_USER: 3,
    Role.COWORK_ADMIN: 4,
    Role.SUPER_ADMIN: 5,
}

# Roles only the platform can hand out.
PLATFORM_ONLY_ROLES: FrozenSet[Role] = frozenset({Role.SUPER_ADMIN, Role.COWORK_ADMIN})


def parse_role(value: str | Role | None) -> Role:
    """
    Normalize a stored or submitted role string into the closed enum.
    Raises ValueError for anything outside it.
    """
    if isinstance(value, Role):
        return value
    return Role((value or "").strip().upper())


def rank(role: Role) -> int:
    return ROLE_RANK[role]


def at_least(role: Role, min_role: Role) -> bool:
    return ROLE_RANK[role] >= ROLE_RANK[min_role]


def roles_at_least(min_role: Role) -> FrozenSet[Role]:
    return frozenset(r for r in Role if at_least(r, min_role))
