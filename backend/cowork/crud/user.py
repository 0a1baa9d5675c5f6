# cowork/crud/user.py
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from cowork.auth.errors import InvalidRoleAssignment
from cowork.auth.permissions import Action, ResourceType
from cowork.auth.policy import get_assignable_roles
from cowork.auth.subject import Subject
from cowork.core.roles import Role, parse_role
from cowork.crud.resources import get_for_action
from cowork.models.user import User

logger = logging.getLogger(__name__)


def _check_can_manage(actor: Subject, target: User) -> None:
    """
    An actor may only touch users holding a role the actor could have
    granted, and never themselves.
    """
    if target.id == actor.id:
        raise InvalidRoleAssignment("actors cannot change their own role or status")
    if parse_role(target.role) not in get_assignable_roles(actor):
        raise InvalidRoleAssignment(f"{actor.role.value} cannot manage a {target.role}")


async def change_role(db: AsyncSession, actor: Subject, user_id: uuid.UUID, new_role: Role) -> User:
    target = await get_for_action(db, actor, ResourceType.USER, user_id, Action.UPDATE)
    _check_can_manage(actor, target)

    if new_role not in get_assignable_roles(actor):
        raise InvalidRoleAssignment(f"{actor.role.value} cannot assign {new_role.value}")
    if new_role != Role.SUPER_ADMIN and target.tenant_id is None:
        raise InvalidRoleAssignment(f"{new_role.value} requires a tenant")

    previous = target.role
    target.role = new_role.value
    if new_role == Role.SUPER_ADMIN:
        target.tenant_id = None
    await db.commit()
    await db.refresh(target)

    logger.info("role changed user=%s %s -> %s by=%s", target.id, previous, new_role.value, actor.id)
    return target


async def deactivate_user(db: AsyncSession, actor: Subject, user_id: uuid.UUID) -> User:
    # users are never deleted; deactivation is the delete permission
    target = await get_for_action(db, actor, ResourceType.USER, user_id, Action.DELETE)
    _check_can_manage(actor, target)

    target.is_active = False
    await db.commit()
    await db.refresh(target)

    logger.info("user deactivated user=%s by=%s", target.id, actor.id)
    return target
