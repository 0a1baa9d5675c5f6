from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, model_validator


class BookingCreate(BaseModel):
    starts_at: datetime
    ends_at: datetime
    space_id: Optional[UUID] = None
    # Defaults to the caller; booking for someone else needs COWORK_ADMIN.
    user_id: Optional[UUID] = None
    tenant_id: Optional[UUID] = None

    @model_validator(mode="after")
    def check_range(self) -> "BookingCreate":
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class BookingOut(BaseModel):
    id: UUID
    tenant_id: UUID
    user_id: UUID
    space_id: Optional[UUID] = None
    starts_at: datetime
    ends_at: datetime
    status: str

    model_config = {"from_attributes": True}
