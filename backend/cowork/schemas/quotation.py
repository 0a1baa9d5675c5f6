from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel


class QuotationItemOut(BaseModel):
    id: UUID
    quotation_id: UUID
    description: str
    quantity: int
    unit_price: Decimal

    model_config = {"from_attributes": True}
