# firewood/services/fulfillment_service.py
import logging
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from firewood.models.order import FulfillmentStatus, Order
from firewood.repositories.order_repo import OrderRepository
from firewood.schemas.order import BulkActionName, BulkActionResult, BulkFailure
from firewood.services.notifier import NotificationIntent, intent_for_status_change

logger = logging.getLogger(__name__)

# Staff-driven transitions. CANCELLED -> NEW is only reachable through
# restore(), never through set_status().
ALLOWED_TRANSITIONS: dict[FulfillmentStatus, frozenset[FulfillmentStatus]] = {
    FulfillmentStatus.NEW: frozenset(
        {FulfillmentStatus.PAID, FulfillmentStatus.OFD, FulfillmentStatus.CANCELLED}
    ),
    FulfillmentStatus.PAID: frozenset(
        {FulfillmentStatus.OFD, FulfillmentStatus.CANCELLED}
    ),
    FulfillmentStatus.OFD: frozenset(
        {FulfillmentStatus.DELIVERED, FulfillmentStatus.CANCELLED}
    ),
    FulfillmentStatus.DELIVERED: frozenset(),
    FulfillmentStatus.CANCELLED: frozenset(),
}


def can_transition(current: FulfillmentStatus, new: FulfillmentStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FulfillmentService:
    """
    Fulfillment status lifecycle (admin only).

      NEW       -> PAID, OFD, CANCELLED
      PAID      -> OFD, CANCELLED
      OFD       -> DELIVERED, CANCELLED
      DELIVERED -> (terminal)
      CANCELLED -> NEW (restore only)

    Archiving is independent of status and never touches payment fields.

    Every method commits its own single-order write and returns the
    notification intents to hand to the notifier afterwards.
    """

    def __init__(self, order_repo: OrderRepository):
        self.order_repo = order_repo

    # ----- internal helpers -----

    def _get_order(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def _save(self, session: Session, order: Order) -> Order:
        try:
            self.order_repo.update_order(session, order)
            session.commit()
        except Exception:
            session.rollback()
            raise
        session.refresh(order)
        return order

    @staticmethod
    def _intents(order: Order) -> list[NotificationIntent]:
        intent = intent_for_status_change(order)
        return [intent] if intent else []

    # ----- single-order operations -----

    def set_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        new_status: FulfillmentStatus,
        cancel_reason: str | None = None,
    ) -> tuple[Order, list[NotificationIntent]]:
        """
        Move an order to `new_status`.

        - Same status: no-op, no email.
        - Illegal transition: 409.
        - CANCELLED records cancelled_at and the optional reason.
        """
        order = self._get_order(session, order_id)
        current = order.status

        if current == new_status:
            return order, []

        if not can_transition(current, new_status):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Invalid status transition: {current.value} -> {new_status.value}",
            )

        order.status = new_status
        if new_status is FulfillmentStatus.CANCELLED:
            order.cancelled_at = _utcnow()
            order.cancel_reason = cancel_reason

        order = self._save(session, order)
        logger.info(
            "Order %s status %s -> %s", order.order_number, current.value, new_status.value
        )
        return order, self._intents(order)

    def cancel(
        self,
        session: Session,
        order_id: uuid.UUID,
        reason: str | None = None,
    ) -> tuple[Order, list[NotificationIntent]]:
        order = self._get_order(session, order_id)
        if order.status is FulfillmentStatus.CANCELLED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Order is already cancelled",
            )
        return self.set_status(session, order_id, FulfillmentStatus.CANCELLED, reason)

    def restore(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> tuple[Order, list[NotificationIntent]]:
        """
        Un-cancel an order. It always goes back to NEW; whatever state it
        had before cancellation is not reconstructed.
        """
        order = self._get_order(session, order_id)
        if order.status is not FulfillmentStatus.CANCELLED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Only cancelled orders can be restored",
            )

        order.status = FulfillmentStatus.NEW
        order.cancelled_at = None
        order.cancel_reason = None
        order = self._save(session, order)
        logger.info("Order %s restored to NEW", order.order_number)
        return order, []

    def archive(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> tuple[Order, list[NotificationIntent]]:
        order = self._get_order(session, order_id)
        if order.archived_at is None:
            order.archived_at = _utcnow()
            order = self._save(session, order)
        return order, []

    def unarchive(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> tuple[Order, list[NotificationIntent]]:
        order = self._get_order(session, order_id)
        if order.archived_at is not None:
            order.archived_at = None
            order = self._save(session, order)
        return order, []

    # ----- bulk -----

    def bulk(
        self,
        session: Session,
        action: BulkActionName,
        order_ids: list[uuid.UUID],
        reason: str | None = None,
    ) -> tuple[BulkActionResult, list[NotificationIntent]]:
        """
        Apply one action to many orders.

        Each id is its own transaction: a missing or conflicting id is
        reported and skipped, the others still go through.
        """
        handlers = {
            "cancel": lambda oid: self.cancel(session, oid, reason),
            "restore": lambda oid: self.restore(session, oid),
            "archive": lambda oid: self.archive(session, oid),
            "unarchive": lambda oid: self.unarchive(session, oid),
        }
        handler = handlers[action]

        updated: list[uuid.UUID] = []
        failed: list[BulkFailure] = []
        intents: list[NotificationIntent] = []

        # dict.fromkeys keeps order and drops duplicate ids
        for oid in dict.fromkeys(order_ids):
            try:
                _, order_intents = handler(oid)
            except HTTPException as e:
                reason_code = (
                    "not_found" if e.status_code == status.HTTP_404_NOT_FOUND else "conflict"
                )
                failed.append(BulkFailure(id=oid, reason=reason_code, detail=str(e.detail)))
                continue

            updated.append(oid)
            intents.extend(order_intents)

        logger.info(
            "Bulk %s: %d updated, %d failed", action, len(updated), len(failed)
        )
        return BulkActionResult(action=action, updated=updated, failed=failed), intents
