# firewood/services/payment_service.py
import enum
import logging
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from firewood.core.config import Settings, get_settings
from firewood.core.mollie_client import MollieClient, PaymentGatewayError
from firewood.models.order import Order, PaymentMethod, PaymentStatus
from firewood.repositories.order_repo import OrderRepository
from firewood.schemas.payment import CheckoutRead
from firewood.services.order_ref import order_reference

logger = logging.getLogger(__name__)

# Mollie status vocabulary -> internal payment status.
# Anything not listed is treated as still pending.
GATEWAY_STATUS_MAP: dict[str, PaymentStatus] = {
    "paid": PaymentStatus.PAID,
    "open": PaymentStatus.PENDING,
    "pending": PaymentStatus.PENDING,
    "authorized": PaymentStatus.PENDING,
    "failed": PaymentStatus.FAILED,
    "expired": PaymentStatus.EXPIRED,
    "canceled": PaymentStatus.CANCELED,
    "cancelled": PaymentStatus.CANCELED,
}


def map_gateway_status(gateway_status: str | None) -> PaymentStatus:
    key = (gateway_status or "").strip().lower()
    return GATEWAY_STATUS_MAP.get(key, PaymentStatus.PENDING)


class ReconcileOutcome(str, enum.Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    NO_METADATA = "no_metadata"
    ORDER_NOT_FOUND = "order_not_found"
    STALE_PAYMENT = "stale_payment"


def _is_local(url: str) -> bool:
    return "localhost" in url or "127.0.0.1" in url


def _parse_order_id(raw) -> uuid.UUID | None:
    if raw is None:
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


class PaymentService:
    """
    Online card payments through Mollie.

    Responsibilities:
      - start_checkout: create a Mollie payment for a MOLLIE order
      - reconcile: apply the authoritative Mollie status to the order

    The webhook body is unauthenticated, so reconcile() only trusts the
    payment as re-fetched from Mollie, and finds the order through the
    metadata Mollie stored on it.
    """

    def __init__(self, order_repo: OrderRepository, settings: Settings | None = None):
        self.order_repo = order_repo
        self.settings = settings

    def _settings(self) -> Settings:
        return self.settings or get_settings()

    # ----- URLs -----

    def _redirect_url(self, order_id: uuid.UUID) -> str:
        return f"{self._settings().app_base_url}/thanks?orderId={order_id}"

    def _webhook_url(self) -> str | None:
        settings = self._settings()
        webhook_base = (settings.MOLLIE_WEBHOOK_BASE_URL or "").strip().rstrip("/")
        if webhook_base:
            return f"{webhook_base}{settings.API_V1_STR}/payments/mollie/webhook"

        base = settings.app_base_url
        if base and not _is_local(base):
            return f"{base}{settings.API_V1_STR}/payments/mollie/webhook"
        return None

    # ----- Checkout -----

    def start_checkout(
        self,
        session: Session,
        gateway: MollieClient,
        order_id: uuid.UUID,
    ) -> CheckoutRead:
        """
        Create a Mollie checkout session for an order.

        - 404 if the order does not exist.
        - 409 if the order is not a card order or is already paid.
        - 502 if Mollie fails or returns no checkout link.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )

        if order.payment_method is not PaymentMethod.MOLLIE:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Order payment method is {order.payment_method.value}, not MOLLIE",
            )

        if order.payment_status is PaymentStatus.PAID:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Order is already paid",
            )

        reference = order_reference(order.id, order.order_number)
        try:
            payment = gateway.create_payment(
                amount_pence=order.total_pence,
                currency=self._settings().CURRENCY,
                description=f"Verrington Firewood order {reference}",
                redirect_url=self._redirect_url(order.id),
                webhook_url=self._webhook_url(),
                metadata={"orderId": str(order.id)},
            )
        except PaymentGatewayError as e:
            logger.error("Mollie create failed for %s: %s", reference, e)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Payment provider error",
            )

        if not payment.id or not payment.checkout_url:
            logger.error("Mollie returned no checkout URL for %s", reference)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Payment provider did not return a checkout URL",
            )

        order.mollie_payment_id = payment.id
        order.mollie_checkout_url = payment.checkout_url
        order.payment_status = PaymentStatus.PENDING
        try:
            self.order_repo.update_order(session, order)
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info("Checkout %s created for %s", payment.id, reference)
        return CheckoutRead(order_id=order.id, payment_id=payment.id, url=payment.checkout_url)

    # ----- Reconciliation -----

    def reconcile(
        self,
        session: Session,
        gateway: MollieClient,
        payment_id: str,
    ) -> ReconcileOutcome:
        """
        Apply the current Mollie status of `payment_id` to its order.

        Idempotent: repeating a notification writes nothing new, and
        paid_at is only set on the first move into PAID.

        Unknown orders and payments without order metadata are no-ops;
        the caller still acknowledges them so Mollie stops retrying.

        Raises:
            PaymentGatewayError: if the payment cannot be fetched.
        """
        payment = gateway.get_payment(payment_id)
        new_status = map_gateway_status(payment.status)

        order_id = _parse_order_id(payment.metadata.get("orderId"))
        if order_id is None:
            logger.info("Payment %s carries no orderId metadata; ignoring", payment_id)
            return ReconcileOutcome.NO_METADATA

        order = self.order_repo.get_by_id(session, order_id)
        if order is None:
            logger.info("Payment %s refers to unknown order %s; ignoring", payment_id, order_id)
            return ReconcileOutcome.ORDER_NOT_FOUND

        # A newer checkout replaced this payment on the order
        if order.mollie_payment_id and order.mollie_payment_id != payment.id:
            logger.info(
                "Payment %s is not the current payment (%s) of %s; ignoring",
                payment.id,
                order.mollie_payment_id,
                order.order_number,
            )
            return ReconcileOutcome.STALE_PAYMENT

        if not self._apply(order, payment.id, new_status):
            logger.debug("Payment %s: no change for %s", payment.id, order.order_number)
            return ReconcileOutcome.UNCHANGED

        try:
            self.order_repo.update_order(session, order)
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info(
            "Order %s payment status -> %s (Mollie '%s')",
            order.order_number,
            new_status.value,
            payment.status,
        )
        return ReconcileOutcome.UPDATED

    @staticmethod
    def _apply(order: Order, payment_id: str, new_status: PaymentStatus) -> bool:
        """
        Mutate `order` in memory; returns True when anything changed.
        """
        changed = False

        if order.mollie_payment_id is None:
            order.mollie_payment_id = payment_id
            changed = True

        if order.payment_status != new_status:
            order.payment_status = new_status
            changed = True

        if new_status is PaymentStatus.PAID and order.paid_at is None:
            order.paid_at = datetime.now(timezone.utc)
            changed = True

        return changed
