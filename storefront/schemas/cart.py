"""Cart Schemas — cart mutation requests and cart/line responses.

Invariants:
    - quantity is any int here: <= 0 must reach the service (add rejects it,
      update treats it as removal)
    - CartResponse.total is derived from the lines, never stored
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CartItemAdd(BaseModel):
    """Add-to-cart request."""
    product_id: int = Field(gt=0)
    quantity: int


class CartItemUpdate(BaseModel):
    """Quantity overwrite request (<= 0 removes the line)."""
    quantity: int


class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int
    price_at_addition: Decimal


class CartResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    items: list[CartItemResponse]
    total: Decimal
