"""
Catalog products (owned by the seller side, read-only here)
"""
import uuid

from sqlalchemy import Column, Integer, String, DateTime, Text, DECIMAL
from sqlalchemy.sql import func

from lensloft.core.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    price = Column(DECIMAL(14, 2), nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    image_url = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
