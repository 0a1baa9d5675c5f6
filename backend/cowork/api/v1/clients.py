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
from cowork.models.client import Client
from cowork.schemas.client import ClientCreate, ClientOut

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=List[ClientOut])
async def list_clients(
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    return await list_visible(db, subject, ResourceType.CLIENT, Client.name)


@router.post("", response_model=ClientOut)
async def create_client(
    payload: ClientCreate,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    tenant_id = payload.tenant_id or subject.tenant_id
    if tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="tenant_id is required",
        )

    # A tenant_id other than the caller's own is a TenantMismatch here.
    enforce(subject, ResourceDescriptor(type=ResourceType.CLIENT, tenant_id=tenant_id), Action.CREATE)

    client = Client(
        tenant_id=tenant_id,
        name=payload.name.strip(),
        email=str(payload.email).lower() if payload.email else None,
    )
    db.add(client)
    await db.commit()
    await db.refresh(client)
    return client


@router.get("/{client_id}", response_model=ClientOut)
async def get_client(
    client_id: uuid.UUID,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    return await get_visible(db, subject, ResourceType.CLIENT, client_id)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: uuid.UUID,
    db: AsyncSession = Depends(get_scoped_db),
    subject: Subject = Depends(get_current_subject),
):
    await delete_resource(db, subject, ResourceType.CLIENT, client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
