"""
Product Domain Model

Read-only view of a catalog product. The catalog subsystem owns products;
the cart and checkout core only reads snapshots of them.
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict


class ProductSnapshot(BaseModel):
    """
    Product fields the cart, pricing and order pipeline depend on

    Fields:
        id: Product ID
        name: Display name
        price: Unit price in the store currency
        stock_quantity: Units currently available
        image_url: Main image reference
    """

    id: str = Field(..., description="Product ID")
    name: str = Field("Unknown Product", description="Product name")
    price: Decimal = Field(Decimal("0"), description="Unit price", ge=0)
    stock_quantity: int = Field(0, description="Available stock", ge=0)
    image_url: Optional[str] = Field(None, description="Main image URL")

    model_config = ConfigDict(from_attributes=True, coerce_numbers_to_str=True)

    def snapshot(self) -> dict:
        """JSON-safe copy embedded into order items (product_snapshot column)"""
        return {
            "name": self.name,
            "price": float(self.price),
            "image_url": self.image_url,
        }
