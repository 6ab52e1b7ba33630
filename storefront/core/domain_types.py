"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId, ProductId, CartId, AddressId, OrderId wrap integer primary keys
    - MinorUnits is an integer amount in the smallest currency unit (cents)
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: persisted as plain strings and serialized to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", int)
ProductId = NewType("ProductId", int)
CartId = NewType("CartId", int)
AddressId = NewType("AddressId", int)
OrderId = NewType("OrderId", int)
PaymentIntentId = NewType("PaymentIntentId", str)


# ─── Value Types ─────────────────────────────────────────────────

MinorUnits = NewType("MinorUnits", int)   # cents, never negative


# ─── Enums ───────────────────────────────────────────────────────

class OrderStatus(str, Enum):
    """Order lifecycle states — maps to DB `orders.status` column.

    PLACED is reserved: no transition leads into or out of it.
    """
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"
    PLACED = "PLACED"


class UserRole(str, Enum):
    """Roles supplied by the identity system."""
    USER = "USER"
    ADMIN = "ADMIN"
