"""
Where each resource type keeps its tenant (and owner) on disk.

Both sides of the authorization core read this registry: descriptors built
for `can_access` and the SQL predicates compiled for RLS. A resource without
its own tenant column (quotation items) declares the foreign key to its
parent, and both sides resolve the tenant through that one join.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cowork.auth.permissions import ResourceType
from cowork.auth.subject import ResourceDescriptor
from cowork.models import (
    AccessLog,
    Activity,
    Booking,
    Client,
    Invitation,
    Invoice,
    Lead,
    Membership,
    Opportunity,
    Quotation,
    QuotationItem,
    Service,
    Space,
    Tenant,
    User,
)


@dataclass(frozen=True)
class TableScope:
    resource: ResourceType
    model: Any
    tenant_column: Optional[str] = "tenant_id"
    owner_column: Optional[str] = None
    parent: Optional[ResourceType] = None
    parent_fk: Optional[str] = None

    @property
    def table_name(self) -> str:
        return self.model.__tablename__


def _scopes(*items: TableScope) -> Dict[ResourceType, TableScope]:
    return {s.resource: s for s in items}


TABLE_SCOPES: Dict[ResourceType, TableScope] = _scopes(
    TableScope(ResourceType.TENANT, Tenant, tenant_column="id"),
    TableScope(ResourceType.USER, User),
    TableScope(ResourceType.CLIENT, Client),
    TableScope(ResourceType.LEAD, Lead),
    TableScope(ResourceType.OPPORTUNITY, Opportunity),
    TableScope(ResourceType.QUOTATION, Quotation),
    TableScope(
        ResourceType.QUOTATION_ITEM,
        QuotationItem,
        tenant_column=None,
        parent=ResourceType.QUOTATION,
        parent_fk="quotation_id",
    ),
    TableScope(ResourceType.SPACE, Space),
    TableScope(ResourceType.SERVICE, Service),
    TableScope(ResourceType.BOOKING, Booking, owner_column="user_id"),
    TableScope(ResourceType.ACCESS_LOG, AccessLog, owner_column="user_id"),
    TableScope(ResourceType.INVOICE, Invoice),
    TableScope(ResourceType.MEMBERSHIP, Membership),
    TableScope(ResourceType.ACTIVITY, Activity),
    TableScope(ResourceType.INVITATION, Invitation),
)


def scope_for(resource: ResourceType) -> TableScope:
    try:
        return TABLE_SCOPES[resource]
    except KeyError:
        raise ValueError(f"{resource.value} has no table scope") from None


def describe(resource: ResourceType, row: Any) -> ResourceDescriptor:
    """
    Descriptor for a row that carries its own tenant column.
    Parent-scoped rows must go through describe_row().
    """
    scope = scope_for(resource)
    if scope.parent is not None:
        raise ValueError(f"{resource.value} is scoped through {scope.parent.value}; use describe_row()")
    owner_id = getattr(row, scope.owner_column) if scope.owner_column else None
    return ResourceDescriptor(type=resource, tenant_id=getattr(row, scope.tenant_column), owner_id=owner_id)


async def tenant_of(db: AsyncSession, resource: ResourceType, row: Any) -> Optional[uuid.UUID]:
    scope = scope_for(resource)
    if scope.parent is None:
        return getattr(row, scope.tenant_column)

    parent_scope = scope_for(scope.parent)
    parent_row = await db.get(parent_scope.model, getattr(row, scope.parent_fk))
    if parent_row is None:
        return None
    return await tenant_of(db, scope.parent, parent_row)


async def describe_row(db: AsyncSession, resource: ResourceType, row: Any) -> ResourceDescriptor:
    scope = scope_for(resource)
    owner_id = getattr(row, scope.owner_column) if scope.owner_column else None
    return ResourceDescriptor(type=resource, tenant_id=await tenant_of(db, resource, row), owner_id=owner_id)
