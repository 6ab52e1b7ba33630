"""Checkout Schemas — payment-intent and confirmation payloads."""

from pydantic import BaseModel, Field


class PaymentIntentCreate(BaseModel):
    address_id: int = Field(gt=0)


class PaymentIntentResponse(BaseModel):
    payment_intent_id: str
    client_secret: str


class PaymentIntentReference(BaseModel):
    """Body of confirm / payment-failed callbacks."""
    payment_intent_id: str = Field(min_length=1, max_length=100)
