"""Request and response models for the product catalog."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

# DECIMAL(10,2): eight integer digits, two fractional.
_PRICE = {"gt": 0, "max_digits": 10, "decimal_places": 2}


class ProductCreate(BaseModel):
    """Create request; both fields are required."""

    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., **_PRICE)


class ProductUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    name: str | None = Field(None, min_length=1, max_length=255)
    price: Decimal | None = Field(None, **_PRICE)


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: Decimal
    created_at: datetime
    updated_at: datetime

    @field_serializer("price")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)
