"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO
    - Lookups return None for "not found"; the caller decides which error that is
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from storefront.core.domain_types import (
    AddressId, MinorUnits, PaymentIntentId, ProductId, UserId,
)


class UserLike(Protocol):
    """Resolved identity passed explicitly into every core operation."""
    id: int
    username: str
    role: str


class ProductLike(Protocol):
    id: int
    name: str
    price: Decimal
    stock_quantity: int


class AddressLike(Protocol):
    id: int
    user_id: int


@dataclass(frozen=True)
class PaymentIntentHandle:
    """Opaque pair handed to the client to complete a (stubbed) payment."""
    payment_intent_id: PaymentIntentId
    client_secret: str


class UserDirectory(Protocol):
    """Contract for identity resolution — implemented by shell."""
    async def find_by_username(self, username: str) -> UserLike | None: ...


class Catalog(Protocol):
    """Contract for read access to price/stock snapshots — implemented by shell."""
    async def find_product_by_id(self, product_id: ProductId) -> ProductLike | None: ...


class AddressBook(Protocol):
    """Contract for ownership-scoped address lookup — implemented by shell."""
    async def find_by_id_and_user(
        self, address_id: AddressId, user_id: UserId,
    ) -> AddressLike | None: ...
    async def list_for_user(self, user_id: UserId) -> list[AddressLike]: ...
    async def add(self, user_id: UserId, fields: dict) -> AddressLike: ...


class PaymentProvider(Protocol):
    """Contract for the payment gateway — only the intent handshake is modelled."""
    def create_intent(self, amount: MinorUnits) -> PaymentIntentHandle: ...
