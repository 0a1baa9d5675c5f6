# cowork/crud/invitation.py
from __future__ import annotations

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cowork.auth.errors import (
    InvalidRoleAssignment,
    InvalidStateTransition,
    InvitationConflict,
    InvitationExpired,
    InvitationNotFound,
    NotAuthorized,
)
from cowork.auth.permissions import Action, ResourceType
from cowork.auth.policy import can_access, enforce, get_assignable_roles
from cowork.auth.rls import scoped_select
from cowork.auth.scoping import describe
from cowork.auth.subject import ResourceDescriptor, Subject
from cowork.core.config import settings
from cowork.core.roles import Role
from cowork.models.invitation import Invitation, InvitationStatus
from cowork.models.user import User

logger = logging.getLogger(__name__)

PENDING = InvitationStatus.PENDING.value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def _generate_token() -> str:
    return secrets.token_urlsafe(48)


def _same_tenant(tenant_id: Optional[uuid.UUID]):
    if tenant_id is None:
        return Invitation.tenant_id.is_(None)
    return Invitation.tenant_id == tenant_id


def resolve_invitation_tenant(
    inviter: Subject,
    role: Role,
    requested_tenant_id: Optional[uuid.UUID],
) -> Optional[uuid.UUID]:
    """
    Non-super inviters always invite into their own tenant, whatever was
    requested. SUPER_ADMIN invitations are platform level (no tenant).
    """
    if inviter.role != Role.SUPER_ADMIN:
        if requested_tenant_id is not None and requested_tenant_id != inviter.tenant_id:
            logger.info(
                "invitation tenant forced inviter=%s requested=%s forced=%s",
                inviter.id,
                requested_tenant_id,
                inviter.tenant_id,
            )
        return inviter.tenant_id

    if role == Role.SUPER_ADMIN:
        return None
    if requested_tenant_id is None:
        raise InvalidRoleAssignment(f"{role.value} requires a tenant")
    return requested_tenant_id


async def revoke_expired_invitations(
    db: AsyncSession,
    tenant_id: Optional[uuid.UUID],
    email: str,
    now: datetime,
) -> int:
    result = await db.execute(
        update(Invitation)
        .where(
            _same_tenant(tenant_id),
            Invitation.email == email,
            Invitation.status == PENDING,
            Invitation.expires_at <= now,
        )
        .values(status=InvitationStatus.REVOKED.value, revoked_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        logger.info("expired invitations revoked tenant=%s email=%s count=%s", tenant_id, email, result.rowcount)
    return result.rowcount


async def create_invitation(
    db: AsyncSession,
    inviter: Subject,
    *,
    email: str,
    role: Role,
    tenant_id: Optional[uuid.UUID] = None,
    system_db: Optional[AsyncSession] = None,
) -> Invitation:
    """
    Expired PENDING rows for the same (tenant, email) are revoked first.
    With `system_db` that sweep is housekeeping outside RLS; without it the
    sweep only runs when the inviter may update invitations, and a leftover
    expired row is a conflict like any other pending one.
    """
    email = User.normalize_email(email)

    if role not in get_assignable_roles(inviter):
        logger.info("invitation rejected inviter=%s role=%s target=%s", inviter.id, inviter.role.value, role.value)
        raise InvalidRoleAssignment(f"{inviter.role.value} cannot assign {role.value}")

    target_tenant = resolve_invitation_tenant(inviter, role, tenant_id)
    descriptor = ResourceDescriptor(type=ResourceType.INVITATION, tenant_id=target_tenant)
    enforce(inviter, descriptor, Action.CREATE)

    # Already an active member of that tenant?
    if target_tenant is not None:
        member = (
            await db.execute(
                select(User.id).where(
                    User.email == email,
                    User.tenant_id == target_tenant,
                    User.is_active.is_(True),
                )
            )
        ).scalar_one_or_none()
        if member is not None:
            raise InvitationConflict(f"{email} already a member of {target_tenant}")

    now = _utcnow()

    # Expired PENDING rows would still hold the one-pending-per-email slot.
    if system_db is not None:
        await revoke_expired_invitations(system_db, target_tenant, email, now)
        await system_db.commit()
    elif can_access(inviter, descriptor, Action.UPDATE).allowed:
        await revoke_expired_invitations(db, target_tenant, email, now)

    pending = (
        await db.execute(
            select(Invitation.id).where(
                _same_tenant(target_tenant),
                Invitation.email == email,
                Invitation.status == PENDING,
            )
        )
    ).scalar_one_or_none()
    if pending is not None:
        raise InvitationConflict(f"pending invitation {pending} exists for {email}")

    invitation = Invitation(
        tenant_id=target_tenant,
        email=email,
        role=role.value,
        token=_generate_token(),
        status=PENDING,
        expires_at=now + timedelta(days=settings.INVITE_EXPIRY_DAYS),
        invited_by_user_id=inviter.id,
    )
    db.add(invitation)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise InvitationConflict(f"concurrent invitation for {email}") from e

    await db.refresh(invitation)
    logger.info("invitation created id=%s tenant=%s role=%s by=%s", invitation.id, target_tenant, role.value, inviter.id)
    return invitation


async def list_invitations(db: AsyncSession, subject: Subject) -> List[Invitation]:
    stmt = scoped_select(ResourceType.INVITATION, subject).order_by(Invitation.created_at.desc())
    return list((await db.execute(stmt)).scalars().all())


async def _transition(db: AsyncSession, invitation_id: uuid.UUID, **values) -> None:
    """
    PENDING -> terminal as one conditional UPDATE. Losing a race, or starting
    from a terminal state, matches no row.
    """
    result = await db.execute(
        update(Invitation)
        .where(Invitation.id == invitation_id, Invitation.status == PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise InvalidStateTransition(f"invitation {invitation_id} not pending")


async def accept_invitation(db: AsyncSession, subject: Subject, token: str) -> Invitation:
    """
    Runs on the system session: the accepting user has no tenant claims yet.
    """
    token = (token or "").strip()
    inv = (await db.execute(select(Invitation).where(Invitation.token == token))).scalar_one_or_none()
    if inv is None:
        raise InvitationNotFound("unknown token")

    if inv.status != PENDING:
        raise InvalidStateTransition(f"invitation {inv.id} is {inv.status}")

    user = await db.get(User, subject.id)
    if user is None or User.normalize_email(user.email) != inv.email:
        raise NotAuthorized(f"invitation {inv.id} addressed to another email")

    if _as_utc(inv.expires_at) <= _utcnow():
        raise InvitationExpired(f"invitation {inv.id} expired")

    if user.is_onboarded and user.tenant_id != inv.tenant_id:
        raise InvitationConflict(f"user {user.id} already belongs to tenant {user.tenant_id}")

    now = _utcnow()
    await _transition(
        db,
        inv.id,
        status=InvitationStatus.ACCEPTED.value,
        accepted_at=now,
        accepted_by_user_id=user.id,
    )

    user.role = inv.role
    user.tenant_id = inv.tenant_id
    user.is_onboarded = True
    await db.commit()

    await db.refresh(inv)
    logger.info("invitation accepted id=%s user=%s role=%s tenant=%s", inv.id, user.id, inv.role, inv.tenant_id)
    return inv


async def revoke_invitation(db: AsyncSession, actor: Subject, invitation_id: uuid.UUID) -> Invitation:
    inv = await db.get(Invitation, invitation_id)
    if inv is None:
        raise InvitationNotFound(f"invitation {invitation_id} missing")

    descriptor = describe(ResourceType.INVITATION, inv)
    if not can_access(actor, descriptor, Action.VIEW).allowed:
        raise InvitationNotFound(f"invitation {invitation_id} outside scope of {actor.id}")
    enforce(actor, descriptor, Action.UPDATE)

    if inv.status != PENDING:
        raise InvalidStateTransition(f"invitation {inv.id} is {inv.status}")

    await _transition(db, inv.id, status=InvitationStatus.REVOKED.value, revoked_at=_utcnow())
    await db.commit()

    await db.refresh(inv)
    logger.info("invitation revoked id=%s by=%s", inv.id, actor.id)
    return inv
