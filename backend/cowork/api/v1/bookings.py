from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from cowork.api.deps.auth import get_current_subject, get_scoped_db
from cowork.auth.permissions import Action, ResourceType
from cowork.auth.policy import enforce
from cowork.auth.subject import ResourceDescriptor, Subject
from cowork.crud.resources import delete_resource, get_visible, list_visible
from cowork.models.booking import Booking
from cowork.models.space import Space
from cowork.models.user import User
from cowork.schemas.booking import BookingCreate, BookingOut

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("", response_model=List[BookingOut])
async def list_bookings(
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    """
    Own bookings for members; the whole tenant for cowork admins.
    """
    return await list_visible(db, subject, ResourceType.BOOKING, Booking.starts_at)


@router.post("", response_model=BookingOut)
async def create_booking(
    payload: BookingCreate,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    tenant_id = payload.tenant_id or subject.tenant_id
    user_id = payload.user_id or subject.id
    if tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="tenant_id is required",
        )

    enforce(
        subject,
        ResourceDescriptor(type=ResourceType.BOOKING, tenant_id=tenant_id, owner_id=user_id),
        Action.CREATE,
    )

    if user_id != subject.id:
        booked_for = await db.get(User, user_id)
        if booked_for is None or booked_for.tenant_id != tenant_id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="user_id is not a member of this tenant",
            )

    if payload.space_id is not None:
        space = await db.get(Space, payload.space_id)
        if space is None or space.tenant_id != tenant_id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="space_id does not belong to this tenant",
            )

    booking = Booking(
        tenant_id=tenant_id,
        user_id=user_id,
        space_id=payload.space_id,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking


@router.get("/{booking_id}", response_model=BookingOut)
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    return await get_visible(db, subject, ResourceType.BOOKING, booking_id)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    await delete_resource(db, subject, ResourceType.BOOKING, booking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
