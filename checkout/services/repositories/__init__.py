"""
Repository Pattern for Database Operations

- OrderRepository: order history lookups (coupon reuse)
- AbandonedCartRepository: abandoned checkout snapshots
"""
from .order_repo import OrderRepository
from .abandoned_cart_repo import AbandonedCartRepository

__all__ = [
    "OrderRepository",
    "AbandonedCartRepository",
]
