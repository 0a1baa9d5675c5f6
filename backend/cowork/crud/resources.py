# cowork/crud/resources.py
from __future__ import annotations

import uuid
from typing import Any, List

from sqlalchemy.ext.asyncio import AsyncSession

from cowork.auth.errors import ResourceNotFound
from cowork.auth.permissions import Action, ResourceType
from cowork.auth.policy import can_access, enforce
from cowork.auth.rls import scoped_select
from cowork.auth.scoping import describe_row, scope_for
from cowork.auth.subject import Subject


async def list_visible(db: AsyncSession, subject: Subject, resource: ResourceType, *order_by) -> List[Any]:
    stmt = scoped_select(resource, subject, Action.VIEW)
    if order_by:
        stmt = stmt.order_by(*order_by)
    return list((await db.execute(stmt)).scalars().all())


async def get_visible(db: AsyncSession, subject: Subject, resource: ResourceType, row_id: uuid.UUID) -> Any:
    """
    Fetch one row the subject may view. Missing and out-of-scope rows look
    the same to the caller (404), so ids cannot be enumerated.
    """
    row = await db.get(scope_for(resource).model, row_id)
    if row is None:
        raise ResourceNotFound(f"{resource.value} {row_id} missing")

    descriptor = await describe_row(db, resource, row)
    if not can_access(subject, descriptor, Action.VIEW).allowed:
        raise ResourceNotFound(f"{resource.value} {row_id} outside scope of {subject.id}")
    return row


async def get_for_action(
    db: AsyncSession,
    subject: Subject,
    resource: ResourceType,
    row_id: uuid.UUID,
    action: Action,
) -> Any:
    """Visible rows the subject may not `action` are an explicit 403."""
    row = await get_visible(db, subject, resource, row_id)
    enforce(subject, await describe_row(db, resource, row), action)
    return row


async def delete_resource(db: AsyncSession, subject: Subject, resource: ResourceType, row_id: uuid.UUID) -> None:
    row = await get_for_action(db, subject, resource, row_id, Action.DELETE)
    await db.delete(row)
    await db.commit()
