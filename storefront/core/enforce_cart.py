"""Cart Rule Enforcement — pure validation for cart mutations and checkout.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Return error dict on violation, None on success
    - Stock checks here are ADVISORY: a pass never reserves anything, the
      conditional decrement in InventoryLedger is what keeps stock >= 0

Design Decisions:
    - Return dicts (not exceptions): the service layer converts them into typed
      errors with the entity details it already holds
"""


def check_quantity_positive(quantity: int) -> dict | None:
    """Quantities on add must be strictly positive."""
    if quantity <= 0:
        return {
            "status": "error",
            "error_code": "INVALID_QUANTITY",
            "quantity": quantity,
            "message": f"ERROR: Quantity must be positive, got {quantity}.",
        }
    return None


def check_stock_covers(
    product_id: int, requested: int, available: int,
) -> dict | None:
    """Requested quantity must not exceed current stock."""
    if requested > available:
        return {
            "status": "error",
            "error_code": "INSUFFICIENT_STOCK",
            "product_id": product_id,
            "requested": requested,
            "available": available,
            "message": (
                f"ERROR: Product {product_id} has {available} in stock, "
                f"{requested} requested."
            ),
        }
    return None


def merged_quantity(existing: int | None, added: int) -> int:
    """Quantity after adding to a line that may already exist."""
    return (existing or 0) + added
