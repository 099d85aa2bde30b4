"""
Domain Layer - Business Entities

Pydantic models for the cart, wishlist, address, checkout and order
entities. These models enforce type safety and validation across the
application.
"""
from lensloft.domain.product import ProductSnapshot
from lensloft.domain.cart import CartItem, WishlistItem, GuestCartEntry, MergeReport
from lensloft.domain.address import Address, AddressInput, AddressUpdate
from lensloft.domain.order import Order, OrderItem, OrderStatus, PaymentStatus, PaymentMethod
from lensloft.domain.pricing import PriceBreakdown
from lensloft.domain.checkout import CheckoutStep, CheckoutError, ErrorKind, TransitionResult

__all__ = [
    'ProductSnapshot',
    'CartItem',
    'WishlistItem',
    'GuestCartEntry',
    'MergeReport',
    'Address',
    'AddressInput',
    'AddressUpdate',
    'Order',
    'OrderItem',
    'OrderStatus',
    'PaymentStatus',
    'PaymentMethod',
    'PriceBreakdown',
    'CheckoutStep',
    'CheckoutError',
    'ErrorKind',
    'TransitionResult',
]
