"""
Database models (schema of the Supabase tables used by the storefront core)
"""
from .product import Product
from .cart import CartLine, WishlistEntry
from .address import Address
from .order import Order, OrderItem

__all__ = [
    "Product",
    "CartLine",
    "WishlistEntry",
    "Address",
    "Order",
    "OrderItem",
]
