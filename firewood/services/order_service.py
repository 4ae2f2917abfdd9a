# firewood/services/order_service.py
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from firewood.core.config import Settings, get_settings
from firewood.models.order import (
    FulfillmentStatus,
    Order,
    OrderItem,
    PaymentMethod,
    PaymentStatus,
)
from firewood.repositories.husbandry_repo import HusbandryRepository
from firewood.repositories.order_repo import OrderRepository
from firewood.repositories.product_repo import ProductRepository
from firewood.schemas.husbandry import HusbandryRead
from firewood.schemas.order import (
    DispatchGroup,
    DispatchView,
    OrderAdminDetail,
    OrderAdminRead,
    OrderCreate,
    OrderCreated,
    OrderItemRead,
    OrderPublicRead,
)
from firewood.services import pricing
from firewood.services.notifier import NotificationIntent, intents_for_new_order
from firewood.services.order_ref import format_order_number

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def initial_payment_status(method: PaymentMethod) -> PaymentStatus:
    if method is PaymentMethod.MOLLIE:
        return PaymentStatus.PENDING
    return PaymentStatus.UNPAID


class OrderService:
    """
    Business logic for placing and reading orders.

    Responsibilities:
      - Validate requested items against the catalog (exists, active)
      - Price the cart server-side (subtotal, delivery fee, total)
      - Snapshot name/price onto OrderItem rows
      - Allocate the VF-ORDER-### number in the same transaction
      - Produce new-order notification intents after commit
      - Customer and admin read models, dispatch view
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        husbandry_repo: HusbandryRepository,
        settings: Settings | None = None,
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.husbandry_repo = husbandry_repo
        self.settings = settings

    # -------- Customer operations --------

    def create_order(
        self,
        session: Session,
        payload: OrderCreate,
    ) -> tuple[OrderCreated, list[NotificationIntent]]:
        """
        Create an order from the submitted cart.

        Steps:
          1. Normalize postcode.
          2. Load requested products; every id must be active.
          3. Price the cart from live catalog prices.
          4. Reserve order number, insert Order + OrderItems, commit.
          5. Build email intents (sent later, best-effort).

        Nothing is written unless every step before the commit succeeds.
        """
        # 1) Postcode
        try:
            postcode = pricing.normalize_postcode(payload.postcode)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e),
            )

        if not payload.items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Order must contain at least one item",
            )

        # 2) Products
        requested_ids = [item.product_id for item in payload.items]
        products = self.product_repo.list_active_by_ids(session, requested_ids)
        product_map = {p.id: p for p in products}

        missing = sorted({str(pid) for pid in requested_ids if pid not in product_map})
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={
                    "message": "Unknown or inactive product",
                    "product_ids": missing,
                },
            )

        # 3) Pricing
        try:
            priced = pricing.price_cart(
                [(product_map[item.product_id], item.quantity) for item in payload.items],
                postcode,
            )
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e),
            )

        # 4) Persist
        try:
            sequence = self.order_repo.next_order_sequence(session)
            order = Order(
                order_number=format_order_number(sequence),
                customer_name=payload.customer_name,
                customer_phone=payload.customer_phone,
                customer_email=payload.customer_email,
                address_line1=payload.address_line1,
                address_line2=payload.address_line2,
                town=payload.town,
                county=payload.county,
                postcode=priced.postcode,
                preferred_day=payload.preferred_day,
                delivery_notes=payload.delivery_notes,
                subtotal_pence=priced.subtotal_pence,
                delivery_fee_pence=priced.delivery_fee_pence,
                total_pence=priced.total_pence,
                status=FulfillmentStatus.NEW,
                payment_method=payload.payment_method,
                payment_status=initial_payment_status(payload.payment_method),
            )
            order = self.order_repo.create_order(session, order)

            items = self.order_repo.create_items(
                session,
                [
                    OrderItem(
                        order_id=order.id,
                        product_id=line.product_id,
                        name=line.name,
                        price_pence=line.price_pence,
                        quantity=line.quantity,
                        line_total_pence=line.line_total_pence,
                    )
                    for line in priced.lines
                ],
            )

            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(order)

        # 5) Emails go out after the commit
        intents = intents_for_new_order(order, items, self.settings or get_settings())

        created = OrderCreated(
            order_id=order.id,
            order_number=order.order_number,
            created_at=order.created_at,
            subtotal_pence=order.subtotal_pence,
            delivery_fee_pence=order.delivery_fee_pence,
            total_pence=order.total_pence,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
        )
        return created, intents

    def get_public_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderPublicRead:
        order = self.get_order_or_404(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return OrderPublicRead(
            id=order.id,
            order_number=order.order_number,
            created_at=order.created_at,
            customer_name=order.customer_name,
            postcode=order.postcode,
            preferred_day=order.preferred_day,
            status=order.status,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            subtotal_pence=order.subtotal_pence,
            delivery_fee_pence=order.delivery_fee_pence,
            total_pence=order.total_pence,
            items=[self._item_dto(it) for it in items],
        )

    # -------- Admin operations --------

    def get_order_or_404(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def list_admin_orders(
        self,
        session: Session,
        archived: bool = False,
        status_filter: FulfillmentStatus | None = None,
        q: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Order]:
        return self.order_repo.list_admin(
            session,
            archived=archived,
            status=status_filter,
            q=q,
            skip=skip,
            limit=limit,
        )

    def get_admin_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderAdminDetail:
        order = self.get_order_or_404(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        notes = self.husbandry_repo.list_for_order(session, order.id)

        base = OrderAdminRead.model_validate(order, from_attributes=True)
        return OrderAdminDetail(
            **base.model_dump(),
            mollie_checkout_url=order.mollie_checkout_url,
            items=[self._item_dto(it) for it in items],
            husbandry=[HusbandryRead.model_validate(n, from_attributes=True) for n in notes],
        )

    def dispatch_view(self, session: Session) -> DispatchView:
        """
        Open orders for the delivery run.

        Sorted by normalized postcode, then creation time, then id, and
        grouped by outward code in that order.
        """
        orders = self.order_repo.list_open_for_dispatch(session)

        def sort_key(o: Order):
            created = o.created_at
            if created is not None and created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            return (_safe_postcode(o.postcode), created or _EPOCH, str(o.id))

        groups: dict[str, list[Order]] = {}
        for o in sorted(orders, key=sort_key):
            outward = _safe_postcode(o.postcode).split(" ")[0]
            groups.setdefault(outward, []).append(o)

        group_dtos = [
            DispatchGroup(
                outward_code=outward,
                order_count=len(members),
                total_pence=sum(m.total_pence for m in members),
                orders=[OrderAdminRead.model_validate(m, from_attributes=True) for m in members],
            )
            for outward, members in groups.items()
        ]

        return DispatchView(
            order_count=len(orders),
            total_pence=sum(o.total_pence for o in orders),
            groups=group_dtos,
        )

    # -------- Helper DTO builder --------

    @staticmethod
    def _item_dto(item: OrderItem) -> OrderItemRead:
        return OrderItemRead(
            id=item.id,
            product_id=item.product_id,
            name=item.name,
            price_pence=item.price_pence,
            quantity=item.quantity,
            line_total_pence=item.line_total_pence,
        )


def _safe_postcode(postcode: str | None) -> str:
    try:
        return pricing.normalize_postcode(postcode or "")
    except ValueError:
        return ""
