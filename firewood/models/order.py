# firewood/models/order.py
import enum
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class FulfillmentStatus(str, enum.Enum):
    NEW = "NEW"
    PAID = "PAID"
    OFD = "OFD"  # out for delivery
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    UNPAID = "UNPAID"
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    CANCELED = "CANCELED"


class PaymentMethod(str, enum.Enum):
    MOLLIE = "MOLLIE"  # online card / Apple Pay
    BACS = "BACS"  # bank transfer
    CASH = "CASH"  # cash on delivery


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(SQLModel, table=True):
    """
    Customer order.

    Money is stored in pence:
      total_pence = subtotal_pence + delivery_fee_pence
    where subtotal_pence is the sum of the item snapshots.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        unique=True,
        index=True,
        description="Customer-facing reference, e.g. VF-ORDER-012",
    )

    created_at: datetime = Field(
        default_factory=_utcnow,
        index=True,
        description="Creation timestamp (UTC)",
    )

    # Customer
    customer_name: str
    customer_phone: str
    customer_email: str | None = None

    # Delivery
    address_line1: str | None = None
    address_line2: str | None = None
    town: str | None = None
    county: str | None = None
    postcode: str = Field(
        index=True,
        description="Normalized UK postcode ('BA9 8BW')",
    )
    preferred_day: str | None = None
    delivery_notes: str | None = None

    # Pricing snapshot
    subtotal_pence: int = Field(ge=0)
    delivery_fee_pence: int = Field(ge=0)
    total_pence: int = Field(ge=0)

    # Fulfillment
    status: FulfillmentStatus = Field(
        default=FulfillmentStatus.NEW,
        index=True,
    )
    cancelled_at: datetime | None = None
    cancel_reason: str | None = None
    archived_at: datetime | None = Field(default=None, index=True)

    # Payment
    payment_method: PaymentMethod = Field(default=PaymentMethod.BACS)
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.UNPAID,
        index=True,
    )
    mollie_payment_id: str | None = Field(default=None, index=True)
    mollie_checkout_url: str | None = None
    paid_at: datetime | None = None


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order. Written once at checkout, never updated.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    # Snapshot of the product at order time
    name: str
    price_pence: int = Field(ge=0)

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    line_total_pence: int = Field(ge=0)


class OrderCounter(SQLModel, table=True):
    """
    Single-row sequence for VF-ORDER-### numbers.
    """

    __tablename__ = "order_counters"

    id: int = Field(default=1, primary_key=True)
    next: int = Field(default=1)
