from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from cowork.auth.permissions import ResourceType
from cowork.core.roles import Role, parse_role

# Types whose rows belong to one user inside the tenant.
OWNER_SCOPED_RESOURCES = frozenset({ResourceType.BOOKING, ResourceType.ACCESS_LOG})


@dataclass(frozen=True)
class Subject:
    """
    The authenticated actor, as re-derived from the users table.
    tenant_id None means platform level (not tenant scoped).
    """

    id: uuid.UUID
    tenant_id: Optional[uuid.UUID]
    role: Role
    is_onboarded: bool = False

    @classmethod
    def from_user(cls, user) -> "Subject":
        return cls(
            id=user.id,
            tenant_id=user.tenant_id,
            role=parse_role(user.role),
            is_onboarded=bool(user.is_onboarded),
        )


@dataclass(frozen=True)
class ResourceDescriptor:
    type: ResourceType
    tenant_id: Optional[uuid.UUID]
    owner_id: Optional[uuid.UUID] = None

    @property
    def owner_scoped(self) -> bool:
        return self.type in OWNER_SCOPED_RESOURCES
