# firewood/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Catalog entry (net of logs, bulk bag, IBC crate, ...).

    Orders never read the live price after creation: name and price
    are copied onto each OrderItem.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        index=True,
        description="Display name of the product",
    )

    description: str | None = Field(
        default=None,
        description="Optional short description",
    )

    price_pence: int = Field(
        ge=0,
        description="Unit price in pence",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product can be ordered",
    )

    sort_order: int = Field(
        default=0,
        description="Display position on the price list (ascending)",
    )

    image_url: str | None = Field(
        default=None,
        description="Public image URL",
    )
    image_alt: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
