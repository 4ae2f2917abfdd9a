# firewood/routers/payments.py
import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from sqlmodel import Session

from firewood.core.mollie_client import (
    MollieClient,
    PaymentGatewayError,
    get_payment_gateway,
)
from firewood.database import get_session
from firewood.repositories.order_repo import OrderRepository
from firewood.schemas.payment import CheckoutCreate, CheckoutRead
from firewood.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments/mollie", tags=["Payments"])

order_repo = OrderRepository()
service = PaymentService(order_repo)


@router.post("/create", response_model=CheckoutRead)
def create_checkout(
    payload: CheckoutCreate,
    session: Session = Depends(get_session),
    gateway: MollieClient = Depends(get_payment_gateway),
):
    """
    Start a Mollie checkout for a card order and return the hosted
    payment page URL to redirect the customer to.
    """
    return service.start_checkout(session, gateway, payload.order_id)


@router.post("/webhook", response_class=PlainTextResponse)
def mollie_webhook(
    query_id: str | None = Query(default=None, alias="id"),
    form_id: str | None = Form(default=None, alias="id"),
    session: Session = Depends(get_session),
    gateway: MollieClient = Depends(get_payment_gateway),
):
    """
    Mollie status notification. The body only carries the payment id;
    the status itself is always re-fetched from Mollie.

    Answers 200 for anything we could process (including payments we
    don't know), so Mollie stops retrying. A failed fetch answers 502 so
    Mollie tries again later.
    """
    payment_id = (form_id or query_id or "").strip()
    if not payment_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing payment id",
        )

    try:
        outcome = service.reconcile(session, gateway, payment_id)
    except PaymentGatewayError as e:
        logger.error("Webhook fetch failed for %s: %s", payment_id, e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Payment provider error",
        )

    logger.info("Webhook %s handled: %s", payment_id, outcome.value)
    return PlainTextResponse("ok")
