"""Stub Payment Gateway — issues payment-intent handles without calling a real provider.

Invariants:
    - payment_intent_id is "<prefix><32 hex chars>", unique per call (uuid4)
    - client_secret is never derived from payment_intent_id
    - No network IO: the handle is a placeholder for the client round-trip
"""

import logging
import uuid

from storefront.core.domain_types import MinorUnits, PaymentIntentId
from storefront.core.repository_protocols import PaymentIntentHandle

logger = logging.getLogger(__name__)


class StubPaymentGateway:
    """PaymentProvider that only mints identifiers."""

    def __init__(self, intent_prefix: str = "pi_", secret_prefix: str = "cs_"):
        self.intent_prefix = intent_prefix
        self.secret_prefix = secret_prefix

    def create_intent(self, amount: MinorUnits) -> PaymentIntentHandle:
        payment_intent_id = PaymentIntentId(f"{self.intent_prefix}{uuid.uuid4().hex}")
        client_secret = f"{self.secret_prefix}{uuid.uuid4().hex}_stub"
        logger.info(
            f"Stub payment intent created for {amount} minor units",
            extra={"payment_intent_id": payment_intent_id},
        )
        return PaymentIntentHandle(
            payment_intent_id=payment_intent_id,
            client_secret=client_secret,
        )
