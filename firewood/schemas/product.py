# firewood/schemas/product.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class ProductRead(SQLModel):
    """
    Product representation for the price list.
    """

    id: uuid.UUID
    name: str
    description: str | None
    price_pence: int
    is_active: bool
    sort_order: int
    image_url: str | None
    image_alt: str | None
    created_at: datetime


class ProductCreate(SQLModel):
    """
    Payload for creating a product (admin).
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    description: str | None = None
    price_pence: int = Field(ge=0)
    is_active: bool = True
    sort_order: int = 0
    image_url: str | None = None
    image_alt: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    All fields are optional.

    Existing orders are unaffected: they carry their own name/price snapshot.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    price_pence: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    sort_order: int | None = None
    image_url: str | None = None
    image_alt: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class ProductSeedResult(SQLModel):
    created: list[str]
    existed: list[str]
    total: int
