# firewood/schemas/order.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field

from firewood.models.order import FulfillmentStatus, PaymentMethod, PaymentStatus
from firewood.schemas.husbandry import HusbandryRead

BulkActionName = Literal["cancel", "restore", "archive", "unarchive"]

# Keeps every order total well inside a 32-bit INTEGER column
MAX_LINE_QUANTITY = 1000
MAX_ORDER_LINES = 50


def _clean_optional(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


class OrderItemRequest(SQLModel):
    """
    One cart line as sent by the order form.

    Only the product id and quantity are read; prices always come
    from the catalog.
    """

    model_config = ConfigDict(extra="ignore")

    product_id: uuid.UUID
    quantity: int = Field(gt=0, le=MAX_LINE_QUANTITY)


class OrderCreate(SQLModel):
    """
    Payload for placing an order.

    Backend derives:
      - postcode normalization and delivery fee
      - subtotal / total from live product prices
      - order_number, status='NEW'
      - payment_status ('PENDING' for MOLLIE, otherwise 'UNPAID')
    """

    model_config = ConfigDict(extra="forbid")

    customer_name: str
    customer_phone: str
    customer_email: EmailStr | None = None

    address_line1: str | None = None
    address_line2: str | None = None
    town: str | None = None
    county: str | None = None
    postcode: str

    preferred_day: str | None = None
    delivery_notes: str | None = None

    payment_method: PaymentMethod = PaymentMethod.BACS
    items: list[OrderItemRequest] = Field(min_length=1, max_length=MAX_ORDER_LINES)

    @field_validator("customer_name", "customer_phone", "postcode")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("customer_email", mode="before")
    @classmethod
    def blank_email_to_none(cls, v):
        if isinstance(v, str):
            return _clean_optional(v)
        return v

    @field_validator(
        "address_line1",
        "address_line2",
        "town",
        "county",
        "preferred_day",
        "delivery_notes",
    )
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _clean_optional(v)

    @field_validator("payment_method", mode="before")
    @classmethod
    def upper_payment_method(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class OrderCreated(SQLModel):
    """
    Response to a successful checkout.
    """

    order_id: uuid.UUID
    order_number: str
    created_at: datetime
    subtotal_pence: int
    delivery_fee_pence: int
    total_pence: int
    payment_method: PaymentMethod
    payment_status: PaymentStatus


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    name: str
    price_pence: int
    quantity: int
    line_total_pence: int


class OrderPublicRead(SQLModel):
    """
    Customer-visible view of an order (thank-you page).

    Staff-only fields (cancel reason, archive flag, notes, gateway ids)
    are not part of this model.
    """

    id: uuid.UUID
    order_number: str
    created_at: datetime
    customer_name: str
    postcode: str
    preferred_day: str | None
    status: FulfillmentStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    subtotal_pence: int
    delivery_fee_pence: int
    total_pence: int
    items: list[OrderItemRead]


class OrderAdminRead(SQLModel):
    """
    Row in the admin orders table (without items).
    """

    id: uuid.UUID
    order_number: str
    created_at: datetime
    customer_name: str
    customer_phone: str
    customer_email: str | None
    address_line1: str | None
    address_line2: str | None
    town: str | None
    county: str | None
    postcode: str
    preferred_day: str | None
    delivery_notes: str | None
    subtotal_pence: int
    delivery_fee_pence: int
    total_pence: int
    status: FulfillmentStatus
    cancelled_at: datetime | None
    cancel_reason: str | None
    archived_at: datetime | None
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    mollie_payment_id: str | None
    paid_at: datetime | None


class OrderAdminDetail(OrderAdminRead):
    """
    Full admin view including items and husbandry notes (newest first).
    """

    mollie_checkout_url: str | None
    items: list[OrderItemRead]
    husbandry: list[HusbandryRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change fulfillment status.
    """

    model_config = ConfigDict(extra="forbid")

    status: FulfillmentStatus
    cancel_reason: str | None = None

    @field_validator("cancel_reason")
    @classmethod
    def normalize_reason(cls, v: str | None) -> str | None:
        return _clean_optional(v)


class OrderCancelRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    reason: str | None = None

    @field_validator("reason")
    @classmethod
    def normalize_reason(cls, v: str | None) -> str | None:
        return _clean_optional(v)


class BulkActionRequest(SQLModel):
    """
    Apply one action to many orders. Each id is handled on its own.
    """

    model_config = ConfigDict(extra="forbid")

    action: BulkActionName
    ids: list[uuid.UUID] = Field(min_length=1)
    reason: str | None = None

    @field_validator("reason")
    @classmethod
    def normalize_reason(cls, v: str | None) -> str | None:
        return _clean_optional(v)


class BulkFailure(SQLModel):
    id: uuid.UUID
    reason: Literal["not_found", "conflict"]
    detail: str


class BulkActionResult(SQLModel):
    action: BulkActionName
    updated: list[uuid.UUID]
    failed: list[BulkFailure]


class DispatchGroup(SQLModel):
    """
    Open orders sharing an outward code, in delivery-run order.
    """

    outward_code: str
    order_count: int
    total_pence: int
    orders: list[OrderAdminRead]


class DispatchView(SQLModel):
    order_count: int
    total_pence: int
    groups: list[DispatchGroup]
