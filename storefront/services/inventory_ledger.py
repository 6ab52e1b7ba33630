"""Inventory Ledger — authoritative stock reads and the single stock-mutating operation.

Invariants:
    - decrement() is the ONLY code path that lowers products.stock_quantity
    - decrement() is one conditional UPDATE (... WHERE stock_quantity >= :q):
      two concurrent decrements cannot both succeed when only one is covered
    - check_available() has no side effects and reserves nothing
    - The ledger never commits: the caller owns the transaction boundary

Design Decisions:
    - Conditional UPDATE over SELECT ... FOR UPDATE: works unchanged on
      PostgreSQL and SQLite, and needs no lock held across awaits
    - synchronize_session=False: in-session Product objects are not refreshed;
      readers go through check_available/available, which re-read the row
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.domain_types import ProductId
from storefront.core.errors import InsufficientStockError, InvalidQuantityError
from storefront.core.result import Result
from storefront.models.product import Product

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Stock counts per product."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def available(self, product_id: ProductId) -> int | None:
        """Current stock, or None for an unknown product."""
        result = await self.db.execute(
            select(Product.stock_quantity).where(Product.id == product_id),
        )
        return result.scalar_one_or_none()

    async def check_available(self, product_id: ProductId, quantity: int) -> bool:
        """True iff current stock >= quantity."""
        stock = await self.available(product_id)
        return stock is not None and stock >= quantity

    async def decrement(self, product_id: ProductId, quantity: int) -> Result[None]:
        """Atomically reduce stock by quantity, or fail without touching it."""
        if quantity <= 0:
            return Result.failure(InvalidQuantityError(quantity))

        result = await self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .where(Product.stock_quantity >= quantity)
            .values(stock_quantity=Product.stock_quantity - quantity)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount == 1:
            return Result.success()

        stock = await self.available(product_id)
        logger.warning(
            f"Stock decrement refused for product {product_id}",
            extra={"product_id": product_id, "quantity": quantity},
        )
        return Result.failure(InsufficientStockError(
            product_id, str(product_id), quantity, stock or 0,
        ))
