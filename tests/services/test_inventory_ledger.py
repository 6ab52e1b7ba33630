"""Inventory Ledger — tests for stock reads and the conditional decrement.

Tests cover:
    - available / check_available read the stored stock, no side effects
    - decrement lowers stock by exactly the quantity
    - decrement fails without touching stock when stock is short
    - stock never goes negative, even when the last unit is contended
    - non-positive quantities are rejected
"""

from storefront.core.errors import InsufficientStockError, InvalidQuantityError
from storefront.services.inventory_ledger import InventoryLedger
from tests.services.stored_values import stock_of


# ─── reads ───────────────────────────────────────────────────────

async def test_available_returns_stored_stock(test_db, seed):
    ledger = InventoryLedger(test_db)
    assert await ledger.available(seed["mug"].id) == 10


async def test_available_unknown_product_is_none(test_db, seed):
    assert await InventoryLedger(test_db).available(9999) is None


async def test_check_available_boundaries(test_db, seed):
    ledger = InventoryLedger(test_db)
    assert await ledger.check_available(seed["lamp"].id, 4)
    assert not await ledger.check_available(seed["lamp"].id, 5)
    assert not await ledger.check_available(9999, 1)
    assert await stock_of(test_db, seed["lamp"].id) == 4


# ─── decrement ───────────────────────────────────────────────────

async def test_decrement_lowers_stock(test_db, seed):
    ledger = InventoryLedger(test_db)
    result = await ledger.decrement(seed["mug"].id, 3)
    await test_db.commit()
    assert result.ok
    assert await stock_of(test_db, seed["mug"].id) == 7


async def test_decrement_to_exactly_zero(test_db, seed):
    result = await InventoryLedger(test_db).decrement(seed["lamp"].id, 4)
    await test_db.commit()
    assert result.ok
    assert await stock_of(test_db, seed["lamp"].id) == 0


async def test_decrement_short_stock_fails_without_change(test_db, seed):
    result = await InventoryLedger(test_db).decrement(seed["lamp"].id, 5)
    assert not result.ok
    assert isinstance(result.error, InsufficientStockError)
    assert result.error.available == 4
    assert await stock_of(test_db, seed["lamp"].id) == 4


async def test_second_decrement_of_last_unit_fails(test_db, seed):
    ledger = InventoryLedger(test_db)
    first = await ledger.decrement(seed["poster"].id, 1)
    second = await ledger.decrement(seed["poster"].id, 1)
    await test_db.commit()
    assert first.ok
    assert not second.ok
    assert await stock_of(test_db, seed["poster"].id) == 0


async def test_decrement_rejects_non_positive_quantity(test_db, seed):
    ledger = InventoryLedger(test_db)
    for quantity in (0, -2):
        result = await ledger.decrement(seed["mug"].id, quantity)
        assert isinstance(result.error, InvalidQuantityError)
    assert await stock_of(test_db, seed["mug"].id) == 10


async def test_decrement_unknown_product_fails(test_db, seed):
    result = await InventoryLedger(test_db).decrement(9999, 1)
    assert isinstance(result.error, InsufficientStockError)
    assert result.error.available == 0
