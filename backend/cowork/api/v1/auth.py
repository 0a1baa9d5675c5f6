# backend/cowork/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from cowork.api.deps.auth import get_current_subject
from cowork.auth.policy import get_assignable_roles
from cowork.auth.subject import Subject
from cowork.core.roles import rank
from cowork.schemas.auth import AssignableRolesOut, MeResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeResponse)
async def me(subject: Subject = Depends(get_current_subject)) -> MeResponse:
    """
    Returns the resolved subject. Role and tenant come from the users table,
    whatever the token claims.
    """
    return MeResponse(
        id=subject.id,
        tenant_id=subject.tenant_id,
        role=subject.role,
        is_onboarded=subject.is_onboarded,
    )


@router.get("/assignable-roles", response_model=AssignableRolesOut)
async def assignable_roles(subject: Subject = Depends(get_current_subject)) -> AssignableRolesOut:
    roles = sorted(get_assignable_roles(subject), key=rank)
    return AssignableRolesOut(roles=roles)
