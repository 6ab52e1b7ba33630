"""Error Hierarchy — typed, categorized errors for every checkout failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (4xx) are recoverable; infrastructure errors (5xx) are critical
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with StorefrontError base: FastAPI global handler catches all
    - Services RETURN these as values inside Result (core/result.py); only the
      HTTP boundary raises them
    - CriticalInsufficientStockError is separate from InsufficientStockError so
      confirmation-time shortfalls are distinguishable in logs and responses
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    PERMISSION = "permission"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: int | None = None
    product_id: int | None = None
    order_id: int | None = None
    payment_intent_id: str | None = None
    debug_info: dict[str, Any] | None = None


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "product_id": self.context.product_id,
                    "order_id": self.context.order_id,
                    "payment_intent_id": self.context.payment_intent_id,
                },
            }
        }


# ─── Domain Errors (4xx) ────────────────────────────────────────

class ResourceNotFoundError(StorefrontError):
    """Requested resource does not exist or is not owned by the caller."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ItemNotInCartError(ResourceNotFoundError):
    """Product has no line item in the user's cart."""
    def __init__(self, product_id: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.product_id = product_id
        super().__init__("Cart item", str(product_id), ctx)
        self.code = "ITEM_NOT_IN_CART"
        self.message = f"Product {product_id} is not in the cart"


class InvalidQuantityError(StorefrontError):
    """Quantity must be a positive integer."""
    def __init__(self, quantity: int, context: ErrorContext | None = None):
        super().__init__(
            f"Quantity must be positive, got {quantity}",
            "INVALID_QUANTITY", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.quantity = quantity


class EmptyCartError(StorefrontError):
    """Checkout attempted on a cart without line items."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Cannot create a payment intent for an empty cart",
            "EMPTY_CART", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400,
        )


class InsufficientStockError(StorefrontError):
    """Advisory stock check failed — requested quantity exceeds current stock."""
    def __init__(
        self, product_id: int, product_name: str, requested: int, available: int,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.product_id = product_id
        super().__init__(
            f"Not enough stock for product '{product_name}': "
            f"requested {requested}, available {available}",
            "INSUFFICIENT_STOCK", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, ctx, 409,
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class CriticalInsufficientStockError(StorefrontError):
    """Stock decrement failed while confirming an order."""
    def __init__(
        self, product_id: int, requested: int, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.product_id = product_id
        super().__init__(
            f"Critical: insufficient stock for product {product_id} "
            f"during order confirmation (needed {requested})",
            "CRITICAL_INSUFFICIENT_STOCK", ErrorCategory.CONFLICT,
            ErrorSeverity.CRITICAL, ctx, 409,
        )
        self.product_id = product_id
        self.requested = requested


class InvalidTransitionError(StorefrontError):
    """Order is not in the status the requested action needs."""
    def __init__(
        self, current: str, target: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Cannot transition order from {current} to {target}",
            "INVALID_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.current = current
        self.target = target


class AlreadyExistsError(StorefrontError):
    """A unique value is already taken."""
    def __init__(
        self, resource_type: str, value: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{value}' already exists",
            "ALREADY_EXISTS", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class ConcurrencyError(StorefrontError):
    """Concurrent modification detected; the request may be retried."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class UnauthenticatedError(StorefrontError):
    """No resolved identity accompanied the request."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authentication required",
            "UNAUTHENTICATED", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, context, 401,
        )


class ForbiddenError(StorefrontError):
    """Caller lacks the role required for the action."""
    def __init__(self, action: str, context: ErrorContext | None = None):
        super().__init__(
            f"Not allowed to {action}",
            "FORBIDDEN", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, context, 403,
        )


# ─── Infrastructure Errors (5xx) ────────────────────────────────

class DatabaseError(StorefrontError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
