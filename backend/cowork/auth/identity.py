"""
Identity Resolver: verified external identity -> Subject.

Role and tenant always come from the users table. Provider-asserted
metadata is compared against it only to flag drift in the logs.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cowork.auth.errors import Unauthenticated
from cowork.auth.subject import Subject
from cowork.core.roles import Role
from cowork.core.security import VerifiedIdentity, verify_identity_token
from cowork.models.user import User

logger = logging.getLogger(__name__)


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> Optional[User]:
    stmt = select(User).where(User.external_id == external_id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def provision_user(db: AsyncSession, identity: VerifiedIdentity) -> User:
    """
    Idempotent upsert keyed by external id. A concurrent first sign-in that
    wins the insert is picked up by the re-select.
    """
    existing = await get_user_by_external_id(db, identity.external_id)
    if existing is not None:
        return existing

    user = User(
        external_id=identity.external_id,
        email=User.normalize_email(identity.email),
        tenant_id=None,
        role=Role.END_USER.value,
        is_onboarded=False,
        is_active=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        user = await get_user_by_external_id(db, identity.external_id)
        if user is None:
            raise
        return user

    await db.refresh(user)
    logger.info("provisioned user id=%s external_id=%s", user.id, identity.external_id)
    return user


def _flag_untrusted_metadata(identity: VerifiedIdentity, user: User) -> None:
    asserted_role = identity.asserted_role
    asserted_tenant = identity.asserted_tenant_id
    record_tenant = str(user.tenant_id) if user.tenant_id else None

    if asserted_role is not None and asserted_role.strip().upper() != user.role:
        logger.warning(
            "ignoring provider-asserted role user=%s asserted=%s record=%s",
            user.id,
            asserted_role,
            user.role,
        )
    if asserted_tenant is not None and asserted_tenant != record_tenant:
        logger.warning(
            "ignoring provider-asserted tenant user=%s asserted=%s record=%s",
            user.id,
            asserted_tenant,
            record_tenant,
        )


async def resolve_subject(db: AsyncSession, identity: VerifiedIdentity) -> Subject:
    user = await get_user_by_external_id(db, identity.external_id)
    if user is None:
        user = await provision_user(db, identity)

    if not user.is_active:
        raise Unauthenticated(f"user {user.id} inactive")

    _flag_untrusted_metadata(identity, user)

    try:
        return Subject.from_user(user)
    except ValueError as e:
        logger.error("user %s has unknown role %r", user.id, user.role)
        raise Unauthenticated("unknown role on record") from e


async def resolve_token(db: AsyncSession, token: str) -> Subject:
    return await resolve_subject(db, verify_identity_token(token))
