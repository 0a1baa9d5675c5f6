from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cowork.api.deps.auth import get_current_subject, get_scoped_db
from cowork.auth.permissions import Action, ResourceType
from cowork.auth.rls import scoped_select
from cowork.auth.subject import Subject
from cowork.crud.resources import get_visible
from cowork.models.quotation_item import QuotationItem
from cowork.schemas.quotation import QuotationItemOut

# Quotation items have no tenant column; both routes scope them through
# their parent quotation.
router = APIRouter(tags=["quotations"])


@router.get("/quotations/{quotation_id}/items", response_model=List[QuotationItemOut])
async def list_quotation_items(
    quotation_id: uuid.UUID,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    await get_visible(db, subject, ResourceType.QUOTATION, quotation_id)

    stmt = (
        scoped_select(ResourceType.QUOTATION_ITEM, subject, Action.VIEW)
        .where(QuotationItem.quotation_id == quotation_id)
        .order_by(QuotationItem.description)
    )
    return list((await db.execute(stmt)).scalars().all())


@router.get("/quotation-items/{item_id}", response_model=QuotationItemOut)
async def get_quotation_item(
    item_id: uuid.UUID,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    return await get_visible(db, subject, ResourceType.QUOTATION_ITEM, item_id)
