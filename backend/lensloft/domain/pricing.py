"""
Pricing Domain Model
"""
from decimal import Decimal

from pydantic import BaseModel, Field


class PriceBreakdown(BaseModel):
    """
    Totals computed from a cart snapshot

    Invariant: total == subtotal + shipping + tax - discount
    """

    subtotal: Decimal = Field(Decimal("0"), description="Sum of unit_price * quantity")
    shipping: Decimal = Field(Decimal("0"), description="Shipping fee (0 above the free threshold)")
    tax: Decimal = Field(Decimal("0"), description="Tax, rounded half-up to the currency unit")
    discount: Decimal = Field(Decimal("0"), description="Discount (always 0 for now)")
    total: Decimal = Field(Decimal("0"), description="Amount to pay")
    currency: str = Field("IDR", description="Currency code")
    amount_to_free_shipping: Decimal = Field(
        Decimal("0"), description="What is missing to qualify for free shipping"
    )

    def to_dict(self) -> dict:
        data = self.model_dump()
        for key, value in data.items():
            if isinstance(value, Decimal):
                data[key] = float(value)
        return data
