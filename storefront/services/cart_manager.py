"""Cart Manager — the authoritative per-user cart and its line items.

Invariants:
    - One cart per user: created by upsert (INSERT ... ON CONFLICT DO NOTHING),
      so concurrent first calls converge on the same row
    - Merging into an existing line sums quantities and keeps the original
      price_at_addition; a new line captures the product's current price
    - update_quantity with new_quantity <= 0 IS remove_item
    - Stock checks are advisory (read-then-decide) and read the current
      count through InventoryLedger; nothing is reserved
    - Every mutating method commits its own unit of work and returns a Result

Design Decisions:
    - The resolved user is an explicit argument: no ambient "current user"
    - Cart lines are reached through cart.items (aggregate-owned collection),
      never through a standalone CartItem query
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.domain_types import ProductId
from storefront.core.enforce_cart import (
    check_quantity_positive, check_stock_covers, merged_quantity,
)
from storefront.core.errors import (
    ConcurrencyError, ErrorContext, InsufficientStockError,
    InvalidQuantityError, ItemNotInCartError, ResourceNotFoundError,
)
from storefront.core.repository_protocols import Catalog, UserLike
from storefront.core.result import Result
from storefront.models.cart import Cart, CartItem
from storefront.services.directories import SqlCatalog
from storefront.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class CartManager:
    """Cart operations for one request, over a shared AsyncSession."""

    def __init__(
        self,
        db: AsyncSession,
        catalog: Catalog | None = None,
        ledger: InventoryLedger | None = None,
    ):
        self.db = db
        self.catalog = catalog or SqlCatalog(db)
        self.ledger = ledger or InventoryLedger(db)

    # ─── Reads ──────────────────────────────────────────────────

    async def get_cart(self, user: UserLike) -> Cart | None:
        """Read-only lookup. Never creates."""
        result = await self.db.execute(
            select(Cart)
            .where(Cart.user_id == user.id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def get_or_create_cart(self, user: UserLike) -> Cart:
        """Return the user's cart, creating an empty one on first call."""
        cart = await self.get_cart(user)
        if cart is not None:
            return cart

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(
                f"Cart upsert has no ON CONFLICT insert for the '{dialect}' backend; "
                f"supported: {', '.join(sorted(_UPSERT_INSERTS))}"
            )
        now = datetime.now(timezone.utc)
        await self.db.execute(
            insert(Cart)
            .values(user_id=user.id, created_at=now, updated_at=now)
            .on_conflict_do_nothing(index_elements=["user_id"]),
        )
        await self.db.commit()
        logger.info("Cart ensured", extra={"user_id": user.id})
        return await self.get_cart(user)

    # ─── Mutations ──────────────────────────────────────────────

    async def add_item(
        self, user: UserLike, product_id: ProductId, quantity: int,
    ) -> Result[CartItem]:
        """Add quantity of a product, merging into an existing line."""
        if check_quantity_positive(quantity):
            return Result.failure(InvalidQuantityError(
                quantity, ErrorContext(user_id=user.id, product_id=product_id),
            ))

        product = await self.catalog.find_product_by_id(product_id)
        if product is None:
            return Result.failure(ResourceNotFoundError(
                "Product", str(product_id), ErrorContext(product_id=product_id),
            ))

        cart = await self.get_or_create_cart(user)
        existing = cart.find_item(product.id)
        requested = merged_quantity(
            existing.quantity if existing else None, quantity,
        )
        stock = await self.ledger.available(product.id) or 0
        if check_stock_covers(product.id, requested, stock):
            logger.warning(
                f"Add to cart refused: {requested} > stock {stock}",
                extra={"user_id": user.id, "product_id": product.id},
            )
            return Result.failure(InsufficientStockError(
                product.id, product.name, requested, stock,
            ))

        if existing is not None:
            existing.quantity = requested
            item = existing
        else:
            item = CartItem(
                product_id=product.id,
                quantity=quantity,
                price_at_addition=product.price,
            )
            cart.items.append(item)
        cart.updated_at = datetime.now(timezone.utc)

        committed = await self._commit(user, product.id)
        if not committed.ok:
            return committed
        return Result.success(item)

    async def update_quantity(
        self, user: UserLike, product_id: ProductId, new_quantity: int,
    ) -> Result[CartItem]:
        """Overwrite a line's quantity; <= 0 removes the line."""
        if new_quantity <= 0:
            return await self.remove_item(user, product_id)

        product = await self.catalog.find_product_by_id(product_id)
        if product is None:
            return Result.failure(ResourceNotFoundError(
                "Product", str(product_id), ErrorContext(product_id=product_id),
            ))

        cart = await self.get_cart(user)
        item = cart.find_item(product.id) if cart else None
        if item is None:
            return Result.failure(ItemNotInCartError(
                product_id, ErrorContext(user_id=user.id),
            ))

        stock = await self.ledger.available(product.id) or 0
        if check_stock_covers(product.id, new_quantity, stock):
            logger.warning(
                f"Quantity update refused: {new_quantity} > stock {stock}",
                extra={"user_id": user.id, "product_id": product.id},
            )
            return Result.failure(InsufficientStockError(
                product.id, product.name, new_quantity, stock,
            ))

        item.quantity = new_quantity
        cart.updated_at = datetime.now(timezone.utc)

        committed = await self._commit(user, product.id)
        if not committed.ok:
            return committed
        return Result.success(item)

    async def remove_item(
        self, user: UserLike, product_id: ProductId,
    ) -> Result[CartItem]:
        """Delete a line and return it."""
        cart = await self.get_cart(user)
        item = cart.find_item(product_id) if cart else None
        if item is None:
            return Result.failure(ItemNotInCartError(
                product_id, ErrorContext(user_id=user.id),
            ))

        cart.items.remove(item)
        cart.updated_at = datetime.now(timezone.utc)

        committed = await self._commit(user, product_id)
        if not committed.ok:
            return committed
        return Result.success(item)

    # ─── Helpers ────────────────────────────────────────────────

    async def _commit(self, user: UserLike, product_id: int) -> Result[None]:
        """Commit, turning a lost (cart, product) uniqueness race into a Result."""
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning(
                "Concurrent cart update lost the race",
                extra={"user_id": user.id, "product_id": product_id},
            )
            return Result.failure(ConcurrencyError(
                f"Cart line for product {product_id} changed concurrently; retry",
                ErrorContext(user_id=user.id, product_id=product_id),
            ))
        return Result.success()
