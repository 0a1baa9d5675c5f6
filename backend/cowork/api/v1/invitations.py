from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cowork.api.deps.auth import get_current_subject, get_scoped_db, require_role
from cowork.auth.subject import Subject
from cowork.core.roles import Role
from cowork.crud.invitation import (
    accept_invitation,
    create_invitation,
    list_invitations,
    revoke_invitation,
)
from cowork.db.session import get_system_db
from cowork.schemas.invitation import (
    InvitationAccept,
    InvitationCreate,
    InvitationCreatedOut,
    InvitationOut,
)

router = APIRouter(prefix="/invitations", tags=["invitations"])

# Lowest role that can send or see invitations at all.
require_inviter = require_role(Role.CLIENT_ADMIN)


@router.post("", response_model=InvitationCreatedOut, dependencies=[Depends(require_inviter)])
async def create(
    payload: InvitationCreate,
    db: AsyncSession = Depends(get_scoped_db),
    system_db: AsyncSession = Depends(get_system_db),
    subject: Subject = Depends(get_current_subject),
):
    """
    Invite someone into a tenant with a role the inviter is allowed to grant.
    The token is only returned here. Expired invitations for the same email
    are cleared through the system session.
    """
    return await create_invitation(
        db,
        subject,
        email=str(payload.email),
        role=payload.role,
        tenant_id=payload.tenant_id,
        system_db=system_db,
    )


@router.get("", response_model=List[InvitationOut], dependencies=[Depends(require_inviter)])
async def list_(
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    return await list_invitations(db, subject)


@router.post("/accept", response_model=InvitationOut)
async def accept(
    payload: InvitationAccept,
    system_db: AsyncSession = Depends(get_system_db),
    subject: Subject = Depends(get_current_subject),
):
    """
    Accept an invitation addressed to the caller's email. Runs outside RLS:
    the caller has no tenant until this succeeds.
    """
    return await accept_invitation(system_db, subject, payload.token)


@router.post("/{invitation_id}/revoke", response_model=InvitationOut)
async def revoke(
    invitation_id: uuid.UUID,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    return await revoke_invitation(db, subject, invitation_id)
