"""Request Dependencies — resolved identity and per-request service wiring.

Invariants:
    - The current user comes from the identity header, resolved through
      UserDirectory; services receive it as an explicit argument
    - Missing header -> 401, unknown username -> 404 (USER_NOT_FOUND)
    - Admin routes require role ADMIN -> otherwise 403
    - One AsyncSession per request, shared by every service built here
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import get_settings
from storefront.core.errors import (
    ForbiddenError, ResourceNotFoundError, UnauthenticatedError,
)
from storefront.infrastructure.database import get_db
from storefront.infrastructure.payment_gateway import StubPaymentGateway
from storefront.models.user import User
from storefront.services.cart_manager import CartManager
from storefront.services.checkout_orchestrator import CheckoutOrchestrator
from storefront.services.directories import SqlAddressBook, SqlUserDirectory
from storefront.services.order_queries import OrderQueries


async def get_current_user(
    request: Request, db: AsyncSession = Depends(get_db),
) -> User:
    header = get_settings().current_user_header
    username = request.headers.get(header)
    if not username:
        raise UnauthenticatedError()
    user = await SqlUserDirectory(db).find_by_username(username)
    if user is None:
        raise ResourceNotFoundError("User", username)
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError("update order status")
    return user


def get_cart_manager(db: AsyncSession = Depends(get_db)) -> CartManager:
    return CartManager(db)


def get_address_book(db: AsyncSession = Depends(get_db)) -> SqlAddressBook:
    return SqlAddressBook(db)


def get_order_queries(db: AsyncSession = Depends(get_db)) -> OrderQueries:
    return OrderQueries(db)


def get_checkout(db: AsyncSession = Depends(get_db)) -> CheckoutOrchestrator:
    settings = get_settings()
    return CheckoutOrchestrator(
        db,
        payments=StubPaymentGateway(
            settings.payment_intent_prefix, settings.client_secret_prefix,
        ),
    )
