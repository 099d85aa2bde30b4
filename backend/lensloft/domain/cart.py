"""
Cart and Wishlist Domain Models

Cart lines and wishlist entries owned by a single user, plus the shapes a
guest device sends when its local cart/wishlist is merged at login.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from lensloft.domain.product import ProductSnapshot


class CartItem(BaseModel):
    """
    Cart line - one row per (user, product)

    Fields:
        id: Cart row ID
        user_id: Owner
        product_id: Product in the cart
        quantity: Units requested (>= 1)
        product: Joined product snapshot (may be None if the product was deleted)
    """

    id: str = Field(..., description="Cart item ID")
    user_id: str = Field(..., description="Owner user ID")
    product_id: str = Field(..., description="Product ID")
    quantity: int = Field(..., description="Quantity", ge=1)
    product: Optional[ProductSnapshot] = Field(None, alias="products", description="Joined product")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    @property
    def line_total(self) -> Decimal:
        if self.product is None:
            return Decimal("0")
        return self.product.price * self.quantity


class WishlistItem(BaseModel):
    """Wishlist membership - one row per (user, product), no quantity"""

    id: str = Field(..., description="Wishlist item ID")
    user_id: str = Field(..., description="Owner user ID")
    product_id: str = Field(..., description="Product ID")
    product: Optional[ProductSnapshot] = Field(None, alias="products", description="Joined product")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class GuestCartEntry(BaseModel):
    """Cart entry held on a guest device (localStorage 'cart')"""

    id: str = Field(..., description="Product ID")
    quantity: int = Field(1, description="Quantity", ge=1)

    model_config = ConfigDict(coerce_numbers_to_str=True)


class MergeReport(BaseModel):
    """Outcome of merging a guest device's cart and wishlist"""

    cart_lines_merged: int = 0
    wishlist_added: int = 0
    wishlist_already_present: int = 0
    local_cleared: bool = False
    skipped: bool = Field(False, description="Session was already merged")
