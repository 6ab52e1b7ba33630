"""Cart Routes — current user's cart and its line items.

Invariants:
    - Every route acts on the caller's own cart only (identity from get_current_user)
    - Service Results are unwrapped here; errors render via the global handlers
"""

import logging

from fastapi import APIRouter, Depends

from storefront.api.dependencies import get_cart_manager, get_current_user
from storefront.models.user import User
from storefront.schemas.cart import (
    CartItemAdd, CartItemResponse, CartItemUpdate, CartResponse,
)
from storefront.services.cart_manager import CartManager

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/cart", tags=["cart"])


@router.get("", response_model=CartResponse)
async def get_cart(
    user: User = Depends(get_current_user),
    carts: CartManager = Depends(get_cart_manager),
):
    """Current cart, created empty on first access."""
    cart = await carts.get_or_create_cart(user)
    return CartResponse.model_validate(cart)


@router.post("/items", response_model=CartItemResponse)
async def add_cart_item(
    body: CartItemAdd,
    user: User = Depends(get_current_user),
    carts: CartManager = Depends(get_cart_manager),
):
    item = (await carts.add_item(user, body.product_id, body.quantity)).unwrap()
    return CartItemResponse.model_validate(item)


@router.put("/items/{product_id}", response_model=CartItemResponse)
async def update_cart_item(
    product_id: int,
    body: CartItemUpdate,
    user: User = Depends(get_current_user),
    carts: CartManager = Depends(get_cart_manager),
):
    """Overwrite quantity; 0 or less removes the line and returns it."""
    item = (await carts.update_quantity(user, product_id, body.quantity)).unwrap()
    return CartItemResponse.model_validate(item)


@router.delete("/items/{product_id}", response_model=CartItemResponse)
async def remove_cart_item(
    product_id: int,
    user: User = Depends(get_current_user),
    carts: CartManager = Depends(get_cart_manager),
):
    item = (await carts.remove_item(user, product_id)).unwrap()
    return CartItemResponse.model_validate(item)
