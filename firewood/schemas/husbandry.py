# firewood/schemas/husbandry.py
import uuid
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel


class HusbandryCreate(SQLModel):
    """
    Admin payload for a new note.

    Emptiness is checked by the service so that a whitespace-only note
    is rejected the same way from every entry point.
    """

    model_config = ConfigDict(extra="forbid")

    note: str
    author: str | None = None


class HusbandryRead(SQLModel):
    id: uuid.UUID
    order_id: uuid.UUID
    created_at: datetime
    note: str
    author: str | None
