from __future__ import annotations

import enum
import logging
import uuid
from typing import FrozenSet, Optional, Tuple

from cowork.auth.errors import NotAuthorized, TenantMismatch
from cowork.auth.permissions import Action, allows
from cowork.auth.subject import ResourceDescriptor, Subject
from cowork.core.roles import PLATFORM_ONLY_ROLES, Role, at_least, rank

logger = logging.getLogger(__name__)


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


def in_tenant(subject: Subject, tenant_id: Optional[uuid.UUID]) -> bool:
    if subject.role == Role.SUPER_ADMIN:
        return True
    return subject.tenant_id is not None and subject.tenant_id == tenant_id


def owns_or_admin(subject: Subject, resource: ResourceDescriptor) -> bool:
    if not in_tenant(subject, resource.tenant_id):
        return False
    if resource.owner_id is not None and resource.owner_id == subject.id:
        return True
    return at_least(subject.role, Role.COWORK_ADMIN)


def _evaluate(subject: Subject, resource: ResourceDescriptor, action: Action) -> Tuple[Decision, str]:
    if not allows(subject.role, resource.type, action):
        return Decision.DENY, f"role {subject.role.value} lacks {resource.type.value}.{action.value}"
    if not in_tenant(subject, resource.tenant_id):
        return Decision.DENY, "tenant mismatch"
    if resource.owner_scoped and not owns_or_admin(subject, resource):
        return Decision.DENY, "not owner and not admin"
    return Decision.ALLOW, ""


def can_access(subject: Subject, resource: ResourceDescriptor, action: Action) -> Decision:
    """
    allows(role, type, action) AND in_tenant AND (owner scoped => owns_or_admin).

    The only authorization path for application code. A deny is a normal
    return value.
    """
    decision, _ = _evaluate(subject, resource, action)
    return decision


def enforce(subject: Subject, resource: ResourceDescriptor, action: Action) -> None:
    """
    Guard form of can_access for handlers. The detailed reason is logged and
    attached to the exception; the client-facing message stays generic.
    """
    decision, reason = _evaluate(subject, resource, action)
    if decision.allowed:
        return

    logger.info(
        "authz deny subject=%s role=%s resource=%s tenant=%s action=%s reason=%s",
        subject.id,
        subject.role.value,
        resource.type.value,
        resource.tenant_id,
        action.value,
        reason,
    )
    if reason == "tenant mismatch":
        raise TenantMismatch(reason)
    raise NotAuthorized(reason)


def require_min_role(subject: Subject, min_role: Role) -> None:
    if not at_least(subject.role, min_role):
        logger.info("authz deny subject=%s role=%s below %s", subject.id, subject.role.value, min_role.value)
        raise NotAuthorized(f"role {subject.role.value} below {min_role.value}")


def get_assignable_roles(subject: Subject) -> FrozenSet[Role]:
    """
    Roles this subject may grant through an invitation or a role change.

    SUPER_ADMIN grants anything. Everyone else grants only roles strictly
    below their own rank and never a platform-only role.
    """
    if subject.role == Role.SUPER_ADMIN:
        return frozenset(Role)
    if subject.tenant_id is None:
        return frozenset()
    own = rank(subject.role)
    return frozenset(r for r in Role if rank(r) < own and r not in PLATFORM_ONLY_ROLES)
