# firewood/schemas/payment.py
import uuid

from pydantic import ConfigDict
from sqlmodel import SQLModel


class CheckoutCreate(SQLModel):
    """
    Start an online card payment for an existing order.
    """

    model_config = ConfigDict(extra="forbid")

    order_id: uuid.UUID


class CheckoutRead(SQLModel):
    order_id: uuid.UUID
    payment_id: str
    url: str


class RatingRead(SQLModel):
    """
    Google rating badge data.
    """

    name: str
    rating: float | None
    count: int | None
    maps_url: str | None
    review_url: str | None
    attribution: str = "Powered by Google"
