# firewood/models/husbandry.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class HusbandryLog(SQLModel, table=True):
    """
    Customer-service note attached to an order.

    Append-only: there is no update or delete path anywhere in the API.
    """

    __tablename__ = "husbandry_logs"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )

    note: str
    author: str | None = None
