"""
Service factories injected into the routers with Depends()

Tests replace these through app.dependency_overrides.
"""
from fastapi import Depends

from lensloft.repositories.product_repository import ProductRepository
from lensloft.services.address_service import AddressBook
from lensloft.services.cart_service import CartStore
from lensloft.services.checkout_service import CheckoutSessionRegistry, checkout_sessions
from lensloft.services.guest_merge_service import GuestMergeReconciler
from lensloft.services.order_service import OrderPipeline
from lensloft.services.wishlist_service import WishlistStore


def get_cart_store() -> CartStore:
    return CartStore()


def get_wishlist_store() -> WishlistStore:
    return WishlistStore()


def get_address_book() -> AddressBook:
    return AddressBook()


def get_order_pipeline() -> OrderPipeline:
    return OrderPipeline()


def get_product_repository() -> ProductRepository:
    return ProductRepository()


def get_guest_merge(
    cart: CartStore = Depends(get_cart_store),
    wishlist: WishlistStore = Depends(get_wishlist_store),
) -> GuestMergeReconciler:
    return GuestMergeReconciler(cart, wishlist)


def get_checkout_sessions() -> CheckoutSessionRegistry:
    return checkout_sessions
