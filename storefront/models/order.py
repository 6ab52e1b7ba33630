"""Order ORM — immutable snapshot of a cart taken at payment-intent time.

Invariants:
    - payment_intent_id is unique across all orders
    - status holds an OrderStatus value; starts at PENDING
    - total_amount equals the sum of price_at_order * quantity over its items
    - OrderItems are written once, at creation, and never updated

Design Decisions:
    - status as String, not a DB enum: adding a status is a code change only
    - shipping_address loaded with selectin so responses can embed it
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.core.domain_types import OrderStatus
from storefront.db.base import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    """Order aggregate root — owns all OrderItems."""
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True,
    )
    shipping_address_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("addresses.id"), nullable=False,
    )
    payment_intent_id: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PENDING.value,
    )
    order_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now,
    )

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="OrderItem.id",
    )
    shipping_address: Mapped["Address"] = relationship("Address", lazy="selectin")


class OrderItem(Base):
    """Order line — permanent record of what was bought and at what price."""
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False,
    )
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id"), nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_at_order: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")
