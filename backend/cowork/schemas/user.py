from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from cowork.core.roles import Role


class UserOut(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str] = None
    tenant_id: Optional[UUID] = None
    role: Role
    is_onboarded: bool
    is_active: bool

    model_config = {"from_attributes": True}


class RoleChange(BaseModel):
    role: Role
