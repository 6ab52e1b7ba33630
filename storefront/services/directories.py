"""Collaborator Implementations — SQLAlchemy-backed UserDirectory, Catalog and AddressBook.

Invariants:
    - Lookups return None for "not found"; they never raise for a missing row
    - Product reads use populate_existing: stock is always the DB value, never a
      stale identity-map copy
    - AddressBook lookups are ownership-scoped (id AND user_id)

Design Decisions:
    - Thin classes over a shared AsyncSession: the caller owns the transaction
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.domain_types import AddressId, ProductId, UserId
from storefront.models.address import Address
from storefront.models.product import Product
from storefront.models.user import User

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("street", "city", "state", "postal_code", "country")


class SqlUserDirectory:
    """UserDirectory backed by the users table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_username(self, username: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.username == username),
        )
        return result.scalar_one_or_none()


class SqlCatalog:
    """Catalog backed by the products table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_product_by_id(self, product_id: ProductId) -> Product | None:
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()


class SqlAddressBook:
    """AddressBook backed by the addresses table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id_and_user(
        self, address_id: AddressId, user_id: UserId,
    ) -> Address | None:
        result = await self.db.execute(
            select(Address)
            .where(Address.id == address_id)
            .where(Address.user_id == user_id),
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: UserId) -> list[Address]:
        result = await self.db.execute(
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.id),
        )
        return list(result.scalars().all())

    async def add(self, user_id: UserId, fields: dict) -> Address:
        """Persist a new address for the user and commit."""
        address = Address(
            user_id=user_id,
            **{k: fields.get(k) for k in ADDRESS_FIELDS},
        )
        self.db.add(address)
        await self.db.commit()
        await self.db.refresh(address)
        logger.info(
            f"Address {address.id} added", extra={"user_id": user_id},
        )
        return address
