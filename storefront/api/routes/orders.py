"""Order Routes — the caller's order history, cancellation, and the admin override.

Invariants:
    - /orders routes are owner-scoped: another user's order is a 404
    - /admin/orders/{id}/status requires role ADMIN and may set ANY status
"""

from fastapi import APIRouter, Depends

from storefront.api.dependencies import (
    get_checkout, get_current_user, get_order_queries, require_admin,
)
from storefront.models.user import User
from storefront.schemas.order import OrderResponse, OrderStatusUpdate
from storefront.services.checkout_orchestrator import CheckoutOrchestrator
from storefront.services.order_queries import OrderQueries

router = APIRouter(prefix="/api/v1", tags=["orders"])


@router.get("/orders", response_model=list[OrderResponse])
async def list_orders(
    user: User = Depends(get_current_user),
    queries: OrderQueries = Depends(get_order_queries),
):
    """Caller's orders, most recent first."""
    orders = await queries.list_user_orders(user)
    return [OrderResponse.model_validate(o) for o in orders]


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    queries: OrderQueries = Depends(get_order_queries),
):
    order = (await queries.get_order_for_user(user, order_id)).unwrap()
    return OrderResponse.model_validate(order)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    user: User = Depends(get_current_user),
    checkout: CheckoutOrchestrator = Depends(get_checkout),
):
    order = (await checkout.cancel_order(user, order_id)).unwrap()
    return OrderResponse.model_validate(order)


@router.put("/admin/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    admin: User = Depends(require_admin),
    checkout: CheckoutOrchestrator = Depends(get_checkout),
):
    order = (await checkout.update_order_status(order_id, body.status)).unwrap()
    return OrderResponse.model_validate(order)
