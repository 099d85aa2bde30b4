"""
Orders and order items
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, DECIMAL, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from lensloft.core.database import Base
from lensloft.models.product import new_id


class Order(Base):
    """
    Order header. Addresses are JSON snapshots, not foreign keys, so later
    address edits never rewrite order history.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    order_number = Column(String(40), nullable=False, unique=True)

    # awaiting_items while a saga write is in flight, then processing
    status = Column(String(30), nullable=False, default="processing", index=True)
    payment_status = Column(String(30), nullable=False, default="pending")
    payment_method = Column(String(30))

    # Amounts
    subtotal = Column(DECIMAL(14, 2), nullable=False)
    shipping_cost = Column(DECIMAL(14, 2), nullable=False, default=0)
    tax = Column(DECIMAL(14, 2), nullable=False, default=0)
    discount = Column(DECIMAL(14, 2), nullable=False, default=0)
    total = Column(DECIMAL(14, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="IDR")

    shipping_address = Column(JSON)
    billing_address = Column(JSON)
    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=True)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(DECIMAL(14, 2), nullable=False)
    total_price = Column(DECIMAL(14, 2), nullable=False)
    product_snapshot = Column(JSON)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")
