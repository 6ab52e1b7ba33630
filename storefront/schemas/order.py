"""Order Schemas — order snapshots and the admin status override."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator

from storefront.core.domain_types import OrderStatus
from storefront.schemas.address import AddressResponse


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int
    price_at_order: Decimal


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    payment_intent_id: str
    status: OrderStatus
    total_amount: Decimal
    order_date: datetime
    shipping_address: AddressResponse
    items: list[OrderItemResponse]


class OrderStatusUpdate(BaseModel):
    """Admin override body. Status names are case-insensitive."""
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def upper_status(cls, v):
        return v.upper() if isinstance(v, str) else v
