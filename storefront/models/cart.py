"""Cart ORM — a user's single mutable pre-purchase selection.

Invariants:
    - At most one Cart per User (UNIQUE user_id)
    - At most one CartItem per (cart, product) (UNIQUE cart_id, product_id)
    - CartItem.quantity > 0
    - price_at_addition captured on first add and never rewritten

Design Decisions:
    - Cart owns its items: delete-orphan cascade in the ORM plus ON DELETE
      CASCADE on the FK, so bulk deletes of carts also drop their items
    - items loaded with selectin: async sessions cannot lazy-load on access
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint, DateTime, ForeignKey, Integer, Numeric, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.core.checkout_snapshot import cart_total
from storefront.db.base import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Cart(Base):
    """Cart aggregate root — owns all CartItems."""
    __tablename__ = "carts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now,
    )

    items: Mapped[list["CartItem"]] = relationship(
        "CartItem", back_populates="cart",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="CartItem.id",
    )

    @property
    def total(self) -> Decimal:
        return cart_total(self.items)

    def find_item(self, product_id: int) -> "CartItem | None":
        return next(
            (i for i in self.items if i.product_id == product_id), None,
        )


class CartItem(Base):
    """Cart line — product reference, quantity and captured price."""
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint(
            "cart_id", "product_id", name="uq_cart_items_cart_id_product_id",
        ),
        CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cart_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False,
    )
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id"), nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_at_addition: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False,
    )

    cart: Mapped["Cart"] = relationship("Cart", back_populates="items")
