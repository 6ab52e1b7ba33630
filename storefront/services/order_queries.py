"""Order Queries — owner-scoped reads over the orders table.

Invariants:
    - Every query filters by user_id: an order owned by someone else is "not found"
    - list_user_orders is newest first (order_date DESC, id DESC as tie-break)
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.domain_types import OrderId
from storefront.core.errors import ErrorContext, ResourceNotFoundError
from storefront.core.repository_protocols import UserLike
from storefront.core.result import Result
from storefront.models.order import Order


class OrderQueries:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_user_orders(self, user: UserLike) -> list[Order]:
        result = await self.db.execute(
            select(Order)
            .where(Order.user_id == user.id)
            .order_by(Order.order_date.desc(), Order.id.desc()),
        )
        return list(result.scalars().all())

    async def get_order_for_user(
        self, user: UserLike, order_id: OrderId,
    ) -> Result[Order]:
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
        return Result.success(order)
