from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from cowork.core.roles import Role


class InvitationCreate(BaseModel):
    email: EmailStr
    role: Role = Field(default=Role.END_USER)
    # Ignored for non-SUPER_ADMIN inviters (forced to their own tenant).
    tenant_id: Optional[UUID] = None


class InvitationOut(BaseModel):
    id: UUID
    tenant_id: Optional[UUID] = None
    email: EmailStr
    role: Role
    status: str
    expires_at: datetime
    invited_by_user_id: Optional[UUID] = None
    accepted_by_user_id: Optional[UUID] = None
    accepted_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class InvitationCreatedOut(InvitationOut):
    # Only returned to the inviter, once.
    token: str


class InvitationAccept(BaseModel):
    token: str = Field(..., min_length=1, description="Invitation token")
