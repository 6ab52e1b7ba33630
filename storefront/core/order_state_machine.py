"""Order State Machine — the validated transition table for OrderStatus.

Invariants:
    - All functions are PURE: no IO, no async, no DB
    - PENDING is the only initial state; DELIVERED, CANCELLED, FAILED are terminal
    - PLACED is reserved: no edge leads into or out of it
    - check_transition returns an error dict on violation, None on success

Design Decisions:
    - Explicit dict table: every legal edge visible in one place
    - The admin override path does NOT consult this table (see
      services/checkout_orchestrator.update_order_status); it only uses
      can_transition to flag off-table edges in the logs
"""

from storefront.core.domain_types import OrderStatus


VALID_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    }),
    OrderStatus.PROCESSING: frozenset({
        OrderStatus.SHIPPED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.FAILED: frozenset(),
    OrderStatus.PLACED: frozenset(),
}

TERMINAL_STATES: frozenset[OrderStatus] = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.FAILED,
})


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """True iff the table has an edge current -> target."""
    return target in VALID_TRANSITIONS.get(OrderStatus(current), frozenset())


def is_terminal(status: OrderStatus) -> bool:
    return OrderStatus(status) in TERMINAL_STATES


def check_transition(current: OrderStatus, target: OrderStatus) -> dict | None:
    """Validate a transition. Returns error dict or None."""
    current = OrderStatus(current)
    target = OrderStatus(target)
    if can_transition(current, target):
        return None
    allowed = sorted(s.value for s in VALID_TRANSITIONS[current])
    return {
        "status": "error",
        "error_code": "INVALID_TRANSITION",
        "current": current.value,
        "target": target.value,
        "allowed": allowed,
        "message": (
            f"ERROR: Order in {current.value} cannot move to {target.value}. "
            f"Allowed: {allowed or 'none (terminal)'}."
        ),
    }
