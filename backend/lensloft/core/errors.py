"""
Error taxonomy for the cart, wishlist and checkout core

Services raise these; repositories translate store failures into them and
the API layer maps them to HTTP responses (see lensloft.main).
"""
from typing import Optional


class StorefrontError(Exception):
    """Base class for every error raised by the storefront core"""


class ValidationError(StorefrontError):
    """Input refused before reaching the store (missing selection, bad quantity, ...)"""


class InsufficientStock(ValidationError):
    """Requested quantity is not available for a product"""

    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot exceed available stock for product {product_id} "
            f"(requested {requested}, available {available})"
        )


class DuplicateEntry(StorefrontError):
    """Unique constraint violation reported by the store"""


class NotFound(StorefrontError):
    """The addressed row does not exist"""


class StoreError(StorefrontError):
    """The persistence collaborator rejected a query"""


class TransientStoreError(StoreError):
    """Network, timeout or server-side failure; the call may be retried"""


class OrderCreationFailed(StorefrontError):
    """
    Order could not be persisted.

    stage:
        "header" - the order row was not written, nothing persisted
        "items"  - line items failed after the header was written
    orphaned:
        True when the header could not be removed after an items failure.
        The order_number then identifies a header left without items.
    """

    def __init__(
        self,
        message: str,
        stage: str,
        order_number: Optional[str] = None,
        orphaned: bool = False,
    ):
        self.stage = stage
        self.order_number = order_number
        self.orphaned = orphaned
        super().__init__(message)

    @property
    def retriable(self) -> bool:
        return not self.orphaned
