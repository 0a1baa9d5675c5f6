# backend/cowork/api/v1/tenants.py
from __future__ import annotations

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cowork.api.deps.auth import get_current_subject, get_scoped_db
from cowork.auth.permissions import Action, ResourceType
from cowork.auth.policy import enforce
from cowork.auth.subject import ResourceDescriptor, Subject
from cowork.crud.resources import get_for_action, get_visible, list_visible
from cowork.models.tenant import Tenant
from cowork.schemas.tenant import TenantCreate, TenantOut, TenantUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.get("", response_model=List[TenantOut])
async def list_tenants(
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    """SUPER_ADMIN sees every tenant, everyone else only their own."""
    return await list_visible(db, subject, ResourceType.TENANT, Tenant.created_at)


@router.post("", response_model=TenantOut)
async def create_tenant(
    payload: TenantCreate,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    # A tenant row is its own tenant, so the id is fixed before the check.
    tenant_id = uuid.uuid4()
    enforce(subject, ResourceDescriptor(type=ResourceType.TENANT, tenant_id=tenant_id), Action.CREATE)

    tenant = Tenant(id=tenant_id, name=payload.name.strip(), is_active=True)
    db.add(tenant)
    await db.commit()
    await db.refresh(tenant)

    logger.info("tenant created id=%s by=%s", tenant.id, subject.id)
    return tenant


@router.get("/{tenant_id}", response_model=TenantOut)
async def get_tenant(
    tenant_id: uuid.UUID,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    return await get_visible(db, subject, ResourceType.TENANT, tenant_id)


@router.patch("/{tenant_id}", response_model=TenantOut)
async def update_tenant(
    tenant_id: uuid.UUID,
    payload: TenantUpdate,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    tenant = await get_for_action(db, subject, ResourceType.TENANT, tenant_id, Action.UPDATE)
    tenant.name = payload.name.strip()
    await db.commit()
    await db.refresh(tenant)
    return tenant
