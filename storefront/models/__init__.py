"""ORM Models — SQLAlchemy declarative models for all persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Cart and Order are aggregate roots; CartItem/OrderItem are owned children

Design Decisions:
    - One file per aggregate for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from storefront.models.user import User  # noqa: F401
from storefront.models.category import Category  # noqa: F401
from storefront.models.product import Product  # noqa: F401
from storefront.models.address import Address  # noqa: F401
from storefront.models.cart import Cart, CartItem  # noqa: F401
from storefront.models.order import Order, OrderItem  # noqa: F401
