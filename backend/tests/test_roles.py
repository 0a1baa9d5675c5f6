# tests/test_roles.py
from __future__ import annotations

import pytest

from cowork.core.roles import (
    PLATFORM_ONLY_ROLES,
    Role,
    at_least,
    parse_role,
    rank,
    roles_at_least,
)

ORDER = [Role.END_USER, Role.CLIENT_ADMIN, Role.COWORK_USER, Role.COWORK_ADMIN, Role.SUPER_ADMIN]


def test_ranks_are_strictly_increasing():
    ranks = [rank(r) for r in ORDER]
    assert ranks == sorted(ranks)
    assert len(set(ranks)) == len(ORDER)
    assert set(ORDER) == set(Role)


@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("min_role", list(Role))
def test_at_least_matches_rank(role, min_role):
    assert at_least(role, min_role) is (rank(role) >= rank(min_role))


def test_at_least_is_reflexive():
    assert all(at_least(r, r) for r in Role)


def test_roles_at_least():
    assert roles_at_least(Role.COWORK_ADMIN) == {Role.COWORK_ADMIN, Role.SUPER_ADMIN}
    assert roles_at_least(Role.END_USER) == set(Role)


def test_parse_role_normalizes():
    assert parse_role(" cowork_user ") is Role.COWORK_USER
    assert parse_role(Role.END_USER) is Role.END_USER


@pytest.mark.parametrize("value", ["OWNER", "", None, "super admin"])
def test_parse_role_rejects_unknown(value):
    with pytest.raises(ValueError):
        parse_role(value)


def test_platform_only_roles():
    assert PLATFORM_ONLY_ROLES == {Role.SUPER_ADMIN, Role.COWORK_ADMIN}
