from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class ClientCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    # SUPER_ADMIN only; everyone else creates in their own tenant
    tenant_id: Optional[UUID] = None


class ClientOut(BaseModel):
    id: UUID
    tenant_id: UUID
    name: str
    email: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
