"""
Order Domain Models

Orders are immutable facts once created: a header with computed totals and a
snapshot of the shipping address, plus line items that snapshot the product
as it was at checkout time.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict


class OrderStatus(str, Enum):
    # Header written, line items not yet confirmed (saga staging state)
    AWAITING_ITEMS = "awaiting_items"
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Simulated payment choices offered at checkout (no money is charged)"""
    CREDIT = "credit"
    EWALLET = "ewallet"
    BANK = "bank"
    COD = "cod"


class OrderItem(BaseModel):
    """
    Order Item domain model - a line in an order

    Fields:
        id: Order item ID
        order_id: Parent order ID
        product_id: Product at order time
        product_name: Product name at order time
        quantity: Units ordered
        unit_price: Price per unit at order time
        total_price: unit_price * quantity
        product_snapshot: name/price/image copy for historical display
    """

    id: Optional[str] = Field(None, description="Order item ID")
    order_id: Optional[str] = Field(None, description="Parent order ID")
    product_id: str = Field(..., description="Product ID")
    product_name: str = Field(..., description="Product name at order time")
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    unit_price: Decimal = Field(..., description="Price per unit", ge=0)
    total_price: Decimal = Field(..., description="Total for line item", ge=0)
    product_snapshot: Optional[Dict[str, Any]] = Field(None, description="Product copy at order time")

    model_config = ConfigDict(from_attributes=True, coerce_numbers_to_str=True)

    def to_dict(self) -> dict:
        """Convert to dictionary with Decimal to float conversion"""
        data = self.model_dump()
        for field in ["unit_price", "total_price"]:
            if data.get(field) is not None:
                data[field] = float(data[field])
        return data


class Order(BaseModel):
    """
    Order domain model - a completed checkout

    Fields:
        id: Order ID
        user_id: Buyer
        order_number: Human-readable unique number (ORD-...)
        status: Order status (see OrderStatus)
        payment_status: Payment status (see PaymentStatus)
        payment_method: Simulated payment method chosen at checkout

        # Financial information
        subtotal: Sum of line totals
        shipping_cost: Shipping fee
        tax: Tax amount
        discount: Discount applied (always 0 for now)
        total: subtotal + shipping_cost + tax - discount
        currency: ISO currency code

        shipping_address: Address snapshot (immutable after creation)
        items: Line items
    """

    id: Optional[str] = Field(None, description="Order ID")
    user_id: str = Field(..., description="Buyer user ID")
    order_number: str = Field(..., description="Order number")
    status: str = Field(OrderStatus.PROCESSING.value, description="Order status")
    payment_status: str = Field(PaymentStatus.PENDING.value, description="Payment status")
    payment_method: Optional[str] = Field(None, description="Payment method")

    subtotal: Decimal = Field(..., description="Subtotal", ge=0)
    shipping_cost: Decimal = Field(Decimal("0"), description="Shipping cost", ge=0)
    tax: Decimal = Field(Decimal("0"), description="Tax amount", ge=0)
    discount: Decimal = Field(Decimal("0"), description="Discount amount", ge=0)
    total: Decimal = Field(..., description="Total order amount", ge=0)
    currency: str = Field("IDR", description="Currency code")

    shipping_address: Optional[Dict[str, Any]] = Field(None, description="Shipping address snapshot")
    billing_address: Optional[Dict[str, Any]] = Field(None, description="Billing address snapshot")
    notes: Optional[str] = Field(None, description="Buyer notes")

    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    items: List[OrderItem] = Field(default_factory=list, alias="order_items", description="Order items")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    def to_dict(self) -> dict:
        """Convert to dictionary with Decimal to float conversion"""
        data = self.model_dump(exclude={"items"})
        for field in ["subtotal", "shipping_cost", "tax", "discount", "total"]:
            if data.get(field) is not None:
                data[field] = float(data[field])
        data["items"] = [item.to_dict() for item in self.items]
        data["items_count"] = len(self.items)
        return data
