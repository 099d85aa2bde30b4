"""
Address Domain Models

Shipping addresses belong to exactly one user. At most one address per user
carries is_default = True.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator


class AddressInput(BaseModel):
    """New-address form submitted during checkout or from the profile page"""

    street: str = Field(..., description="Street and number", min_length=1)
    city: str = Field(..., description="City", min_length=1)
    province: str = Field(..., description="Province", min_length=1)
    postal_code: str = Field(..., description="Postal code", min_length=3, max_length=10)
    country: str = Field("Indonesia", description="Country", min_length=1)
    is_default: bool = Field(False, description="Make this the default address")

    @field_validator("street", "city", "province", "postal_code", "country")
    @classmethod
    def strip_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class AddressUpdate(BaseModel):
    """Partial address edit; omitted fields keep their stored value"""

    street: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = Field(None, min_length=3, max_length=10)
    country: Optional[str] = None
    is_default: Optional[bool] = None

    @field_validator("street", "city", "province", "postal_code", "country")
    @classmethod
    def strip_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return AddressInput.strip_blank(value)


class Address(BaseModel):
    """Persisted address row"""

    id: str = Field(..., description="Address ID")
    user_id: str = Field(..., description="Owner user ID")
    street: str
    city: str
    province: str
    postal_code: str
    country: str = "Indonesia"
    is_default: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, coerce_numbers_to_str=True)

    def snapshot(self) -> dict:
        """Denormalized copy stored on the order (shipping_address column)"""
        return {
            "street": self.street,
            "city": self.city,
            "province": self.province,
            "postal_code": self.postal_code,
            "country": self.country or "Indonesia",
        }
