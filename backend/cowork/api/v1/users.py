from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cowork.api.deps.auth import get_current_subject, get_scoped_db
from cowork.auth.permissions import ResourceType
from cowork.auth.subject import Subject
from cowork.crud.resources import list_visible
from cowork.crud.user import change_role, deactivate_user
from cowork.models.user import User
from cowork.schemas.user import RoleChange, UserOut

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserOut])
async def list_users(
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    return await list_visible(db, subject, ResourceType.USER, User.created_at)


@router.patch("/{user_id}/role", response_model=UserOut)
async def update_role(
    user_id: uuid.UUID,
    payload: RoleChange,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    """
    Change another user's role. The new role, and the user's current one,
    must both be roles the caller could assign.
    """
    return await change_role(db, subject, user_id, payload.role)


@router.post("/{user_id}/deactivate", response_model=UserOut)
async def deactivate(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    return await deactivate_user(db, subject, user_id)
