# backend/cowork/schemas/auth.py
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from cowork.core.roles import Role


class MeResponse(BaseModel):
    id: UUID
    tenant_id: Optional[UUID] = None
    role: Role
    is_onboarded: bool


class AssignableRolesOut(BaseModel):
    roles: List[Role]
