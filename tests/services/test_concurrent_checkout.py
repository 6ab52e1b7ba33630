"""Concurrent cart and checkout — two sessions racing on one database file.

Tests cover:
    - two confirmations of the same payment intent: one PROCESSING, the other
      INVALID_TRANSITION after its status UPDATE matches no row; stock
      decremented once and the loser's decrement rolled back
    - two orders confirmed together for the last unit: one succeeds, the other
      is CRITICAL_INSUFFICIENT_STOCK and its order stays PENDING
    - two first add_item calls for the same product: one line survives, the
      loser gets CONCURRENCY_CONFLICT instead of an IntegrityError

Design Decisions:
    - file_engine gives each session its own SQLite connection, so the racers
      run real, separate transactions
    - _GatedLedger holds both racers at an asyncio.Barrier until each has done
      all of its reads, which pins the interleaving instead of leaving it to
      the scheduler
"""

import asyncio

from sqlalchemy import func, select

from storefront.models.cart import CartItem
from storefront.services.cart_manager import CartManager
from storefront.services.checkout_orchestrator import CheckoutOrchestrator
from storefront.services.inventory_ledger import InventoryLedger
from tests.services.stored_values import cart_count, status_of, stock_of

RACE_TIMEOUT = 10


class _GatedLedger(InventoryLedger):
    """InventoryLedger that meets the other racer once, at its first stock call."""

    def __init__(self, db, barrier: asyncio.Barrier):
        super().__init__(db)
        self.barrier = barrier
        self.met = False

    async def _meet(self):
        if not self.met:
            self.met = True
            await self.barrier.wait()

    async def available(self, product_id):
        stock = await super().available(product_id)
        await self._meet()
        return stock

    async def decrement(self, product_id, quantity):
        await self._meet()
        return await super().decrement(product_id, quantity)


async def _place_order(factory, user, address_id, *lines):
    """Fill the cart and create a PENDING order. Returns (order_id, payment_intent_id)."""
    async with factory() as db:
        carts = CartManager(db)
        for product_id, quantity in lines:
            (await carts.add_item(user, product_id, quantity)).unwrap()
        checkout = CheckoutOrchestrator(db)
        handle = (await checkout.create_payment_intent(user, address_id)).unwrap()
        order = await checkout.find_by_payment_intent(handle.payment_intent_id)
        return order.id, handle.payment_intent_id


async def _confirm(factory, barrier, payment_intent_id):
    async with factory() as db:
        checkout = CheckoutOrchestrator(db, ledger=_GatedLedger(db, barrier))
        result = await checkout.confirm_order(payment_intent_id)
    return result.error.code if result.error else None


async def _add(factory, barrier, user, product_id, quantity):
    async with factory() as db:
        carts = CartManager(db, ledger=_GatedLedger(db, barrier))
        result = await carts.add_item(user, product_id, quantity)
    return result.error.code if result.error else None


def _outcomes(codes):
    return sorted(codes, key=lambda code: code or "")


# ─── confirm_order ───────────────────────────────────────────────

async def test_racing_confirmations_of_one_intent_confirm_once(
    file_session_factory, file_seed,
):
    alice, mug = file_seed["alice"], file_seed["mug"]
    order_id, payment_intent_id = await _place_order(
        file_session_factory, alice, file_seed["alice_address"].id, (mug.id, 2),
    )

    barrier = asyncio.Barrier(2)
    codes = await asyncio.wait_for(
        asyncio.gather(
            _confirm(file_session_factory, barrier, payment_intent_id),
            _confirm(file_session_factory, barrier, payment_intent_id),
        ),
        RACE_TIMEOUT,
    )

    assert _outcomes(codes) == [None, "INVALID_TRANSITION"]
    async with file_session_factory() as db:
        assert await stock_of(db, mug.id) == 8
        assert await status_of(db, order_id) == "PROCESSING"
        assert await cart_count(db, alice.id) == 0


async def test_racing_confirmations_for_last_unit(file_session_factory, file_seed):
    poster = file_seed["poster"]
    alice_order_id, alice_intent = await _place_order(
        file_session_factory, file_seed["alice"],
        file_seed["alice_address"].id, (poster.id, 1),
    )
    carol_order_id, carol_intent = await _place_order(
        file_session_factory, file_seed["carol"],
        file_seed["carol_address"].id, (poster.id, 1),
    )

    barrier = asyncio.Barrier(2)
    codes = await asyncio.wait_for(
        asyncio.gather(
            _confirm(file_session_factory, barrier, alice_intent),
            _confirm(file_session_factory, barrier, carol_intent),
        ),
        RACE_TIMEOUT,
    )

    assert _outcomes(codes) == [None, "CRITICAL_INSUFFICIENT_STOCK"]
    async with file_session_factory() as db:
        assert await stock_of(db, poster.id) == 0
        statuses = {
            await status_of(db, alice_order_id),
            await status_of(db, carol_order_id),
        }
    assert statuses == {"PROCESSING", "PENDING"}


# ─── add_item ────────────────────────────────────────────────────

async def test_racing_first_adds_keep_one_line(file_session_factory, file_seed):
    alice, mug = file_seed["alice"], file_seed["mug"]
    async with file_session_factory() as db:
        await CartManager(db).get_or_create_cart(alice)

    barrier = asyncio.Barrier(2)
    codes = await asyncio.wait_for(
        asyncio.gather(
            _add(file_session_factory, barrier, alice, mug.id, 2),
            _add(file_session_factory, barrier, alice, mug.id, 3),
        ),
        RACE_TIMEOUT,
    )

    assert _outcomes(codes) == [None, "CONCURRENCY_CONFLICT"]
    async with file_session_factory() as db:
        lines = (await db.execute(
            select(func.count()).select_from(CartItem)
            .where(CartItem.product_id == mug.id),
        )).scalar_one()
        assert lines == 1
        assert await cart_count(db, alice.id) == 1
        assert await stock_of(db, mug.id) == 10
