"""
Repository Layer - Data Access

This layer handles all store queries and returns domain models.
Repositories abstract PostgREST (and, for transactional order writes,
direct Postgres) details away from the services.
"""
from lensloft.repositories.product_repository import ProductRepository
from lensloft.repositories.cart_repository import CartRepository
from lensloft.repositories.wishlist_repository import WishlistRepository
from lensloft.repositories.address_repository import AddressRepository
from lensloft.repositories.order_repository import OrderRepository
from lensloft.repositories.order_transaction import PostgresOrderWriter

__all__ = [
    'ProductRepository',
    'CartRepository',
    'WishlistRepository',
    'AddressRepository',
    'OrderRepository',
    'PostgresOrderWriter',
]
