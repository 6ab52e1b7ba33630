"""Checkout Orchestrator — cart → pending order snapshot → confirmed order.

Invariants:
    - create_payment_intent writes ONE Order (PENDING) plus one OrderItem per cart
      line and touches neither stock nor the cart
    - confirm_order is all-or-nothing: stock decrements, cart deletion and the
      PENDING -> PROCESSING flip commit together or roll back together
    - confirm_order succeeds at most once per payment_intent_id: the status guard
      rejects repeats, and the conditional status UPDATE rejects a racing twin
    - Stock is only ever lowered through InventoryLedger.decrement, and the
      pre-payment stock check reads through the same ledger
    - Validated transitions go through core/order_state_machine; the admin
      override (update_order_status) does not

Design Decisions:
    - Entity ids captured before any rollback: rollback expires ORM instances and
      async sessions cannot lazy-load them afterwards
    - Admin off-table edges are logged, not blocked, pending product-owner review
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.checkout_snapshot import (
    build_order_lines, from_minor_units, total_minor,
)
from storefront.core.domain_types import (
    AddressId, OrderId, OrderStatus, PaymentIntentId,
)
from storefront.core.errors import (
    AlreadyExistsError, CriticalInsufficientStockError, EmptyCartError,
    ErrorContext, InsufficientStockError, InvalidTransitionError,
    ResourceNotFoundError,
)
from storefront.core.order_state_machine import can_transition, check_transition
from storefront.core.repository_protocols import (
    AddressBook, Catalog, PaymentIntentHandle, PaymentProvider, UserLike,
)
from storefront.core.result import Result
from storefront.infrastructure.payment_gateway import StubPaymentGateway
from storefront.models.cart import Cart
from storefront.models.order import Order, OrderItem
from storefront.services.cart_manager import CartManager
from storefront.services.directories import SqlAddressBook, SqlCatalog
from storefront.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


class CheckoutOrchestrator:
    """Payment-intent creation, confirmation and status transitions."""

    def __init__(
        self,
        db: AsyncSession,
        payments: PaymentProvider | None = None,
        catalog: Catalog | None = None,
        address_book: AddressBook | None = None,
        ledger: InventoryLedger | None = None,
    ):
        self.db = db
        self.payments = payments or StubPaymentGateway()
        self.catalog = catalog or SqlCatalog(db)
        self.address_book = address_book or SqlAddressBook(db)
        self.ledger = ledger or InventoryLedger(db)
        self.carts = CartManager(db, self.catalog, self.ledger)

    # ─── Payment intent ─────────────────────────────────────────

    async def create_payment_intent(
        self, user: UserLike, address_id: AddressId,
    ) -> Result[PaymentIntentHandle]:
        """Snapshot the user's cart into a PENDING order and mint a handle."""
        cart = await self.carts.get_cart(user)
        if cart is None:
            return Result.failure(ResourceNotFoundError(
                "Cart", str(user.id), ErrorContext(user_id=user.id),
            ))
        if not cart.items:
            return Result.failure(EmptyCartError(ErrorContext(user_id=user.id)))

        address = await self.address_book.find_by_id_and_user(address_id, user.id)
        if address is None:
            return Result.failure(ResourceNotFoundError(
                "Address", str(address_id), ErrorContext(user_id=user.id),
            ))

        for line in cart.items:
            product = await self.catalog.find_product_by_id(line.product_id)
            if product is None:
                return Result.failure(ResourceNotFoundError(
                    "Product", str(line.product_id),
                    ErrorContext(product_id=line.product_id),
                ))
            if not await self.ledger.check_available(product.id, line.quantity):
                logger.warning(
                    "Payment intent refused: stock below cart quantity",
                    extra={"user_id": user.id, "product_id": product.id},
                )
                return Result.failure(InsufficientStockError(
                    product.id, product.name, line.quantity,
                    await self.ledger.available(product.id) or 0,
                ))

        amount = total_minor(cart.items)
        handle = self.payments.create_intent(amount)
        order = Order(
            user_id=user.id,
            shipping_address_id=address.id,
            payment_intent_id=handle.payment_intent_id,
            total_amount=from_minor_units(amount),
            status=OrderStatus.PENDING.value,
            items=[OrderItem(**fields) for fields in build_order_lines(cart.items)],
        )
        self.db.add(order)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return Result.failure(AlreadyExistsError(
                "Payment intent", handle.payment_intent_id,
                ErrorContext(payment_intent_id=handle.payment_intent_id),
            ))

        logger.info(
            f"Order {order.id} created PENDING, total {order.total_amount}",
            extra={
                "user_id": user.id, "order_id": order.id,
                "payment_intent_id": handle.payment_intent_id,
            },
        )
        return Result.success(handle)

    # ─── Confirmation ───────────────────────────────────────────

    async def confirm_order(self, payment_intent_id: PaymentIntentId) -> Result[Order]:
        """Decrement stock, delete the cart and mark the order PROCESSING."""
        order = await self.find_by_payment_intent(payment_intent_id)
        if order is None:
            return Result.failure(ResourceNotFoundError(
                "Order", payment_intent_id,
                ErrorContext(payment_intent_id=payment_intent_id),
            ))

        order_id, user_id = order.id, order.user_id
        ctx = ErrorContext(
            user_id=user_id, order_id=order_id, payment_intent_id=payment_intent_id,
        )
        if check_transition(order.status, OrderStatus.PROCESSING):
            logger.warning(
                f"Confirm rejected: order already {order.status}",
                extra={"order_id": order_id, "payment_intent_id": payment_intent_id},
            )
            return Result.failure(InvalidTransitionError(
                order.status, OrderStatus.PROCESSING.value, ctx,
            ))

        lines = [(item.product_id, item.quantity) for item in order.items]
        for product_id, quantity in lines:
            decremented = await self.ledger.decrement(product_id, quantity)
            if not decremented.ok:
                await self.db.rollback()
                logger.error(
                    "Order confirmation aborted: stock dropped below order quantity",
                    extra={
                        "order_id": order_id, "product_id": product_id,
                        "quantity": quantity, "error_code": "CRITICAL_INSUFFICIENT_STOCK",
                    },
                )
                ctx.product_id = product_id
                return Result.failure(CriticalInsufficientStockError(
                    product_id, quantity, ctx,
                ))

        cart = (await self.db.execute(
            select(Cart).where(Cart.user_id == user_id),
        )).scalar_one_or_none()
        if cart is not None:
            await self.db.delete(cart)

        moved = await self._move_status(
            order_id, OrderStatus.PENDING, OrderStatus.PROCESSING,
        )
        if not moved:
            await self.db.rollback()
            logger.warning(
                "Confirm lost a race with another confirmation",
                extra={"order_id": order_id, "payment_intent_id": payment_intent_id},
            )
            return Result.failure(InvalidTransitionError(
                OrderStatus.PENDING.value, OrderStatus.PROCESSING.value, ctx,
            ))

        await self.db.commit()
        await self.db.refresh(order, attribute_names=["status", "updated_at"])
        logger.info(
            f"Order {order_id} confirmed",
            extra={
                "order_id": order_id, "user_id": user_id,
                "payment_intent_id": payment_intent_id,
                "from_status": OrderStatus.PENDING.value,
                "to_status": OrderStatus.PROCESSING.value,
            },
        )
        return Result.success(order)

    async def fail_payment(self, payment_intent_id: PaymentIntentId) -> Result[Order]:
        """Provider reported a failed payment: PENDING -> FAILED."""
        order = await self.find_by_payment_intent(payment_intent_id)
        if order is None:
            return Result.failure(ResourceNotFoundError(
                "Order", payment_intent_id,
                ErrorContext(payment_intent_id=payment_intent_id),
            ))
        return await self._transition(order, OrderStatus.FAILED)

    async def cancel_order(self, user: UserLike, order_id: OrderId) -> Result[Order]:
        """Owner cancels an order the transition table still allows cancelling."""
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .where(Order.user_id == user.id),
        )
        order = result.scalar_one_or_none()
        if order is None:
            return Result.failure(ResourceNotFoundError(
                "Order", str(order_id), ErrorContext(user_id=user.id),
            ))
        return await self._transition(order, OrderStatus.CANCELLED)

    # ─── Administrative override ────────────────────────────────

    async def update_order_status(
        self, order_id: OrderId, new_status: OrderStatus,
    ) -> Result[Order]:
        """Set any status from any status. Off-table edges are only logged."""
        order = await self.db.get(Order, order_id)
        if order is None:
            return Result.failure(ResourceNotFoundError(
                "Order", str(order_id), ErrorContext(order_id=order_id),
            ))

        new_status = OrderStatus(new_status)
        previous = OrderStatus(order.status)
        if not can_transition(previous, new_status):
            logger.warning(
                "admin_override_outside_table",
                extra={
                    "order_id": order_id,
                    "from_status": previous.value, "to_status": new_status.value,
                },
            )
        order.status = new_status.value
        await self.db.commit()
        logger.info(
            f"Order {order_id} status set by admin",
            extra={
                "order_id": order_id,
                "from_status": previous.value, "to_status": new_status.value,
            },
        )
        return Result.success(order)

    # ─── Helpers ────────────────────────────────────────────────

    async def find_by_payment_intent(
        self, payment_intent_id: PaymentIntentId,
    ) -> Order | None:
        result = await self.db.execute(
            select(Order)
            .where(Order.payment_intent_id == payment_intent_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def _transition(self, order: Order, target: OrderStatus) -> Result[Order]:
        """Validated, race-safe transition that touches nothing but status."""
        order_id = order.id
        current = OrderStatus(order.status)
        ctx = ErrorContext(order_id=order_id, payment_intent_id=order.payment_intent_id)
        if check_transition(current, target):
            return Result.failure(InvalidTransitionError(current.value, target.value, ctx))

        if not await self._move_status(order_id, current, target):
            await self.db.rollback()
            return Result.failure(InvalidTransitionError(current.value, target.value, ctx))

        await self.db.commit()
        await self.db.refresh(order, attribute_names=["status", "updated_at"])
        logger.info(
            f"Order {order_id} moved to {target.value}",
            extra={
                "order_id": order_id,
                "from_status": current.value, "to_status": target.value,
            },
        )
        return Result.success(order)

    async def _move_status(
        self, order_id: int, expected: OrderStatus, target: OrderStatus,
    ) -> bool:
        """Conditional UPDATE keyed on the expected current status."""
        result = await self.db.execute(
            update(Order)
            .where(Order.id == order_id)
            .where(Order.status == expected.value)
            .values(status=target.value, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1
