"""Checkout Routes — payment-intent creation and payment callbacks.

Invariants:
    - create-payment-intent is scoped to the caller's cart and addresses
    - confirm and payment-failed are keyed ONLY by payment_intent_id: they are
      the provider's callbacks, and retrying them is safe (second confirm -> 409)
"""

import logging

from fastapi import APIRouter, Depends

from storefront.api.dependencies import get_checkout, get_current_user
from storefront.models.user import User
from storefront.schemas.checkout import (
    PaymentIntentCreate, PaymentIntentReference, PaymentIntentResponse,
)
from storefront.schemas.order import OrderResponse
from storefront.services.checkout_orchestrator import CheckoutOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["checkout"])


@router.post("/payment-intents", response_model=PaymentIntentResponse)
async def create_payment_intent(
    body: PaymentIntentCreate,
    user: User = Depends(get_current_user),
    checkout: CheckoutOrchestrator = Depends(get_checkout),
):
    """Snapshot the cart into a PENDING order and return the payment handle."""
    handle = (await checkout.create_payment_intent(user, body.address_id)).unwrap()
    return PaymentIntentResponse(
        payment_intent_id=handle.payment_intent_id,
        client_secret=handle.client_secret,
    )


@router.post("/confirm", response_model=OrderResponse)
async def confirm_order(
    body: PaymentIntentReference,
    checkout: CheckoutOrchestrator = Depends(get_checkout),
):
    order = (await checkout.confirm_order(body.payment_intent_id)).unwrap()
    return OrderResponse.model_validate(order)


@router.post("/payment-failed", response_model=OrderResponse)
async def payment_failed(
    body: PaymentIntentReference,
    checkout: CheckoutOrchestrator = Depends(get_checkout),
):
    order = (await checkout.fail_payment(body.payment_intent_id)).unwrap()
    return OrderResponse.model_validate(order)
