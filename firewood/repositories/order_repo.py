# firewood/repositories/order_repo.py
import uuid

from sqlmodel import Session, col, or_, select

from firewood.models.order import FulfillmentStatus, Order, OrderCounter, OrderItem


class OrderRepository:
    """
    Data access layer for orders, order_items and the order counter.

    NOTE:
      - No commits here; order creation is a multi-step transaction.
        The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def list_admin(
        self,
        session: Session,
        archived: bool = False,
        status: FulfillmentStatus | None = None,
        q: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Order]:
        """
        Admin table query, newest first.

        - archived=False hides archived orders, archived=True shows only them.
        - q matches order number, name, phone, email or postcode.
        """
        stmt = select(Order)
        if archived:
            stmt = stmt.where(col(Order.archived_at).is_not(None))
        else:
            stmt = stmt.where(col(Order.archived_at).is_(None))

        if status is not None:
            stmt = stmt.where(Order.status == status)

        if q:
            needle = f"%{q.strip()}%"
            stmt = stmt.where(
                or_(
                    col(Order.order_number).ilike(needle),
                    col(Order.customer_name).ilike(needle),
                    col(Order.customer_phone).ilike(needle),
                    col(Order.customer_email).ilike(needle),
                    col(Order.postcode).ilike(needle),
                )
            )

        stmt = stmt.order_by(col(Order.created_at).desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def list_open_for_dispatch(self, session: Session) -> list[Order]:
        """
        Orders still to be delivered: not archived, not cancelled, not delivered.
        """
        stmt = select(Order).where(
            col(Order.archived_at).is_(None),
            col(Order.status).not_in(
                [FulfillmentStatus.CANCELLED, FulfillmentStatus.DELIVERED]
            ),
        )
        return session.exec(stmt).all()

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return session.exec(stmt).all()

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items

    # ---- Order numbers ----

    def next_order_sequence(self, session: Session) -> int:
        """
        Reserve the next order sequence number inside the current transaction.
        """
        counter = session.get(OrderCounter, 1, with_for_update=True)
        if counter is None:
            counter = OrderCounter(id=1, next=1)
            session.add(counter)
            session.flush()

        n = counter.next
        counter.next = n + 1
        session.add(counter)
        session.flush()
        return n
