"""Checkout Orchestrator — tests for intent creation, confirmation and transitions.

Tests cover:
    - create_payment_intent snapshots the cart into a PENDING order (stock and
      cart untouched) and rejects missing cart, empty cart, foreign address,
      short stock and a duplicate payment intent id
    - the pre-payment stock check asks InventoryLedger.check_available
    - order lines keep the captured price no matter what happens to the
      product or the cart afterwards
    - confirm_order: stock decremented, cart deleted, PENDING -> PROCESSING
    - confirm_order twice: second is INVALID_TRANSITION, stock decremented once
    - stock dropping below the order quantity before confirm: order stays
      PENDING, stock unchanged, earlier decrements rolled back
    - two orders racing for the last unit: exactly one confirms
    - fail_payment and cancel_order follow the transition table
    - update_order_status is the unconstrained admin override

Design Decisions:
    - ids captured up front: a failed confirm rolls the session back, which
      expires every ORM instance it holds
"""

import logging
from decimal import Decimal

from sqlalchemy import update

from storefront.core.domain_types import OrderStatus
from storefront.core.errors import (
    AlreadyExistsError, CriticalInsufficientStockError, EmptyCartError,
    InsufficientStockError, InvalidTransitionError, ResourceNotFoundError,
)
from storefront.core.repository_protocols import PaymentIntentHandle
from storefront.models.product import Product
from storefront.services.cart_manager import CartManager
from storefront.services.checkout_orchestrator import CheckoutOrchestrator
from storefront.services.order_queries import OrderQueries
from tests.services.stored_values import cart_count, status_of, stock_of


async def _fill_cart(db, user, *lines):
    carts = CartManager(db)
    for product_id, quantity in lines:
        (await carts.add_item(user, product_id, quantity)).unwrap()


async def _place_order(db, user, address_id, *lines):
    """Fill the cart and create a PENDING order. Returns (orchestrator, handle)."""
    await _fill_cart(db, user, *lines)
    checkout = CheckoutOrchestrator(db)
    handle = (await checkout.create_payment_intent(user, address_id)).unwrap()
    return checkout, handle


async def _set_stock(db, product_id, stock):
    await db.execute(
        update(Product).where(Product.id == product_id).values(stock_quantity=stock),
    )
    await db.commit()


class _FixedIdGateway:
    """PaymentProvider that always hands out the same id."""

    def create_intent(self, amount):
        return PaymentIntentHandle(payment_intent_id="pi_fixed", client_secret="cs_fixed")


class _SoldOutLedger:
    """InventoryLedger stand-in that reports every product as sold out."""

    def __init__(self):
        self.checked = []

    async def check_available(self, product_id, quantity):
        self.checked.append((product_id, quantity))
        return False

    async def available(self, product_id):
        return 0


# ─── create_payment_intent ───────────────────────────────────────

async def test_create_payment_intent_snapshots_cart(test_db, seed):
    alice, mug, lamp = seed["alice"], seed["mug"], seed["lamp"]
    checkout, handle = await _place_order(
        test_db, alice, seed["alice_address"].id, (mug.id, 2), (lamp.id, 1),
    )

    assert handle.payment_intent_id.startswith("pi_")
    assert handle.client_secret.startswith("cs_")
    assert handle.client_secret != handle.payment_intent_id

    order = await checkout.find_by_payment_intent(handle.payment_intent_id)
    assert order.status == OrderStatus.PENDING.value
    assert order.user_id == alice.id
    assert order.shipping_address_id == seed["alice_address"].id
    assert order.total_amount == Decimal("44.98")
    assert [(i.product_id, i.quantity, i.price_at_order) for i in order.items] == [
        (mug.id, 2, Decimal("9.99")),
        (lamp.id, 1, Decimal("25.00")),
    ]

    assert await stock_of(test_db, mug.id) == 10
    assert await stock_of(test_db, lamp.id) == 4
    cart = await CartManager(test_db).get_cart(alice)
    assert len(cart.items) == 2


async def test_create_payment_intent_without_cart(test_db, seed):
    result = await CheckoutOrchestrator(test_db).create_payment_intent(
        seed["alice"], seed["alice_address"].id,
    )
    assert isinstance(result.error, ResourceNotFoundError)
    assert result.error.code == "CART_NOT_FOUND"


async def test_create_payment_intent_empty_cart(test_db, seed):
    await CartManager(test_db).get_or_create_cart(seed["alice"])
    result = await CheckoutOrchestrator(test_db).create_payment_intent(
        seed["alice"], seed["alice_address"].id,
    )
    assert isinstance(result.error, EmptyCartError)


async def test_create_payment_intent_with_foreign_address(test_db, seed):
    await _fill_cart(test_db, seed["alice"], (seed["mug"].id, 1))
    result = await CheckoutOrchestrator(test_db).create_payment_intent(
        seed["alice"], seed["carol_address"].id,
    )
    assert result.error.code == "ADDRESS_NOT_FOUND"


async def test_create_payment_intent_with_short_stock(test_db, seed):
    alice, lamp = seed["alice"], seed["lamp"]
    await _fill_cart(test_db, alice, (lamp.id, 3))
    await _set_stock(test_db, lamp.id, 2)

    result = await CheckoutOrchestrator(test_db).create_payment_intent(
        alice, seed["alice_address"].id,
    )
    assert isinstance(result.error, InsufficientStockError)
    assert await OrderQueries(test_db).list_user_orders(alice) == []


async def test_create_payment_intent_checks_stock_through_ledger(test_db, seed):
    alice, mug = seed["alice"], seed["mug"]
    await _fill_cart(test_db, alice, (mug.id, 2))
    ledger = _SoldOutLedger()

    result = await CheckoutOrchestrator(test_db, ledger=ledger).create_payment_intent(
        alice, seed["alice_address"].id,
    )

    assert isinstance(result.error, InsufficientStockError)
    assert result.error.available == 0
    assert ledger.checked == [(mug.id, 2)]
    assert await OrderQueries(test_db).list_user_orders(alice) == []


async def test_create_payment_intent_duplicate_id(test_db, seed):
    alice_id = seed["alice"].id
    address_id = seed["alice_address"].id
    alice = seed["alice"]
    await _fill_cart(test_db, alice, (seed["mug"].id, 1))

    checkout = CheckoutOrchestrator(test_db, payments=_FixedIdGateway())
    (await checkout.create_payment_intent(alice, address_id)).unwrap()
    result = await checkout.create_payment_intent(alice, address_id)

    assert isinstance(result.error, AlreadyExistsError)
    assert await cart_count(test_db, alice_id) == 1


async def test_order_snapshot_survives_cart_and_price_changes(test_db, seed):
    alice, mug = seed["alice"], seed["mug"]
    checkout, handle = await _place_order(
        test_db, alice, seed["alice_address"].id, (mug.id, 2),
    )

    await test_db.execute(
        update(Product).where(Product.id == mug.id).values(price=Decimal("50.00")),
    )
    await test_db.commit()
    (await CartManager(test_db).update_quantity(alice, mug.id, 5)).unwrap()

    order = await checkout.find_by_payment_intent(handle.payment_intent_id)
    assert order.items[0].quantity == 2
    assert order.items[0].price_at_order == Decimal("9.99")
    assert order.total_amount == Decimal("19.98")


# ─── confirm_order ───────────────────────────────────────────────

async def test_confirm_order_decrements_stock_and_deletes_cart(test_db, seed):
    alice_id, mug_id = seed["alice"].id, seed["mug"].id
    checkout, handle = await _place_order(
        test_db, seed["alice"], seed["alice_address"].id, (mug_id, 3),
    )

    order = (await checkout.confirm_order(handle.payment_intent_id)).unwrap()

    assert order.status == OrderStatus.PROCESSING.value
    assert await status_of(test_db, order.id) == "PROCESSING"
    assert await stock_of(test_db, mug_id) == 7
    assert await cart_count(test_db, alice_id) == 0


async def test_confirm_order_twice_confirms_once(test_db, seed):
    mug_id = seed["mug"].id
    checkout, handle = await _place_order(
        test_db, seed["alice"], seed["alice_address"].id, (mug_id, 2),
    )

    first = await checkout.confirm_order(handle.payment_intent_id)
    second = await checkout.confirm_order(handle.payment_intent_id)

    assert first.ok
    assert isinstance(second.error, InvalidTransitionError)
    assert second.error.current == "PROCESSING"
    assert await stock_of(test_db, mug_id) == 8


async def test_confirm_order_when_stock_dropped(test_db, seed):
    alice_id, lamp_id = seed["alice"].id, seed["lamp"].id
    checkout, handle = await _place_order(
        test_db, seed["alice"], seed["alice_address"].id, (lamp_id, 2),
    )
    order_id = (await checkout.find_by_payment_intent(handle.payment_intent_id)).id
    await _set_stock(test_db, lamp_id, 1)

    result = await checkout.confirm_order(handle.payment_intent_id)

    assert isinstance(result.error, CriticalInsufficientStockError)
    assert result.error.context.order_id == order_id
    assert await status_of(test_db, order_id) == "PENDING"
    assert await stock_of(test_db, lamp_id) == 1
    assert await cart_count(test_db, alice_id) == 1


async def test_confirm_order_rolls_back_earlier_lines(test_db, seed):
    mug_id, lamp_id = seed["mug"].id, seed["lamp"].id
    checkout, handle = await _place_order(
        test_db, seed["alice"], seed["alice_address"].id,
        (mug_id, 2), (lamp_id, 2),
    )
    await _set_stock(test_db, lamp_id, 1)

    result = await checkout.confirm_order(handle.payment_intent_id)

    assert result.error.product_id == lamp_id
    assert await stock_of(test_db, mug_id) == 10
    assert await stock_of(test_db, lamp_id) == 1


async def test_last_unit_race_confirms_exactly_one(test_db, seed):
    poster_id = seed["poster"].id
    carol_address_id = seed["carol_address"].id
    checkout, alice_handle = await _place_order(
        test_db, seed["alice"], seed["alice_address"].id, (poster_id, 1),
    )
    _, carol_handle = await _place_order(
        test_db, seed["carol"], carol_address_id, (poster_id, 1),
    )
    carol_order_id = (
        await checkout.find_by_payment_intent(carol_handle.payment_intent_id)
    ).id

    first = await checkout.confirm_order(alice_handle.payment_intent_id)
    second = await checkout.confirm_order(carol_handle.payment_intent_id)

    assert first.ok
    assert isinstance(second.error, CriticalInsufficientStockError)
    assert await stock_of(test_db, poster_id) == 0
    assert await status_of(test_db, carol_order_id) == "PENDING"


async def test_confirm_unknown_payment_intent(test_db, seed):
    result = await CheckoutOrchestrator(test_db).confirm_order("pi_missing")
    assert result.error.code == "ORDER_NOT_FOUND"


# ─── fail_payment / cancel_order ─────────────────────────────────

async def test_fail_payment_marks_pending_order_failed(test_db, seed):
    mug_id = seed["mug"].id
    checkout, handle = await _place_order(
        test_db, seed["alice"], seed["alice_address"].id, (mug_id, 1),
    )

    order = (await checkout.fail_payment(handle.payment_intent_id)).unwrap()
    assert order.status == OrderStatus.FAILED.value

    again = await checkout.confirm_order(handle.payment_intent_id)
    assert isinstance(again.error, InvalidTransitionError)
    assert await stock_of(test_db, mug_id) == 10


async def test_fail_payment_after_confirm_is_rejected(test_db, seed):
    checkout, handle = await _place_order(
        test_db, seed["alice"], seed["alice_address"].id, (seed["mug"].id, 1),
    )
    (await checkout.confirm_order(handle.payment_intent_id)).unwrap()

    result = await checkout.fail_payment(handle.payment_intent_id)
    assert isinstance(result.error, InvalidTransitionError)


async def test_owner_cancels_pending_order(test_db, seed):
    alice = seed["alice"]
    checkout, handle = await _place_order(
        test_db, alice, seed["alice_address"].id, (seed["mug"].id, 1),
    )
    order_id = (await checkout.find_by_payment_intent(handle.payment_intent_id)).id

    order = (await checkout.cancel_order(alice, order_id)).unwrap()
    assert order.status == OrderStatus.CANCELLED.value


async def test_cancel_other_users_order_is_not_found(test_db, seed):
    checkout, handle = await _place_order(
        test_db, seed["alice"], seed["alice_address"].id, (seed["mug"].id, 1),
    )
    order_id = (await checkout.find_by_payment_intent(handle.payment_intent_id)).id

    result = await checkout.cancel_order(seed["carol"], order_id)
    assert result.error.code == "ORDER_NOT_FOUND"
    assert await status_of(test_db, order_id) == "PENDING"


async def test_cancel_shipped_order_is_rejected(test_db, seed):
    alice = seed["alice"]
    checkout, handle = await _place_order(
        test_db, alice, seed["alice_address"].id, (seed["mug"].id, 1),
    )
    order_id = (await checkout.find_by_payment_intent(handle.payment_intent_id)).id
    (await checkout.update_order_status(order_id, OrderStatus.SHIPPED)).unwrap()

    result = await checkout.cancel_order(alice, order_id)
    assert isinstance(result.error, InvalidTransitionError)
    assert await status_of(test_db, order_id) == "SHIPPED"


# ─── update_order_status (admin override) ────────────────────────

async def test_admin_override_ships_pending_order(test_db, seed, caplog):
    """The override skips the transition table: PENDING -> SHIPPED is allowed."""
    checkout, handle = await _place_order(
        test_db, seed["alice"], seed["alice_address"].id, (seed["mug"].id, 1),
    )
    order_id = (await checkout.find_by_payment_intent(handle.payment_intent_id)).id

    with caplog.at_level(logging.WARNING):
        order = (await checkout.update_order_status(order_id, OrderStatus.SHIPPED)).unwrap()

    assert order.status == "SHIPPED"
    assert await status_of(test_db, order_id) == "SHIPPED"
    assert any(r.getMessage() == "admin_override_outside_table" for r in caplog.records)


async def test_admin_override_on_table_edge_is_not_flagged(test_db, seed, caplog):
    checkout, handle = await _place_order(
        test_db, seed["alice"], seed["alice_address"].id, (seed["mug"].id, 1),
    )
    order = (await checkout.confirm_order(handle.payment_intent_id)).unwrap()

    with caplog.at_level(logging.WARNING):
        (await checkout.update_order_status(order.id, OrderStatus.SHIPPED)).unwrap()

    assert not any(
        r.getMessage() == "admin_override_outside_table" for r in caplog.records
    )


async def test_admin_override_unknown_order(test_db, seed):
    result = await CheckoutOrchestrator(test_db).update_order_status(
        9999, OrderStatus.DELIVERED,
    )
    assert result.error.code == "ORDER_NOT_FOUND"
