# firewood/routers/admin_orders.py
import uuid

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, status
from sqlmodel import Session

from firewood.core.auth import require_admin
from firewood.database import get_session
from firewood.models.order import FulfillmentStatus
from firewood.repositories.husbandry_repo import HusbandryRepository
from firewood.repositories.order_repo import OrderRepository
from firewood.repositories.product_repo import ProductRepository
from firewood.schemas.husbandry import HusbandryCreate, HusbandryRead
from firewood.schemas.order import (
    BulkActionRequest,
    BulkActionResult,
    DispatchView,
    OrderAdminDetail,
    OrderAdminRead,
    OrderCancelRequest,
    OrderStatusUpdate,
)
from firewood.services.fulfillment_service import FulfillmentService
from firewood.services.husbandry_service import HusbandryService
from firewood.services.notifier import OrderNotifier, get_notifier
from firewood.services.order_service import OrderService

router = APIRouter(
    prefix="/admin/orders",
    tags=["Admin Orders"],
    dependencies=[Depends(require_admin)],
)

order_repo = OrderRepository()
husbandry_repo = HusbandryRepository()
order_service = OrderService(order_repo, ProductRepository(), husbandry_repo)
fulfillment = FulfillmentService(order_repo)
husbandry = HusbandryService(husbandry_repo, order_repo)


# -------- Listing --------


@router.get("", response_model=list[OrderAdminRead])
def list_orders(
    session: Session = Depends(get_session),
    archived: bool = False,
    status_filter: FulfillmentStatus | None = Query(default=None, alias="status"),
    q: str | None = None,
    skip: int = 0,
    limit: int = 100,
):
    """
    Orders table, newest first. Archived orders are hidden unless
    `archived=true`.
    """
    return order_service.list_admin_orders(
        session,
        archived=archived,
        status_filter=status_filter,
        q=q,
        skip=skip,
        limit=limit,
    )


@router.get("/statuses", response_model=list[FulfillmentStatus])
def list_statuses():
    return list(FulfillmentStatus)


@router.get("/dispatch", response_model=DispatchView)
def dispatch_view(session: Session = Depends(get_session)):
    """
    Open orders grouped by outward code for planning delivery runs.
    """
    return order_service.dispatch_view(session)


@router.post("/bulk", response_model=BulkActionResult)
def bulk_action(
    payload: BulkActionRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    notifier: OrderNotifier = Depends(get_notifier),
):
    """
    cancel | restore | archive | unarchive for many orders at once.
    Ids that fail are listed in `failed`; the rest are applied.
    """
    result, intents = fulfillment.bulk(session, payload.action, payload.ids, payload.reason)
    background_tasks.add_task(notifier.deliver_all, intents)
    return result


@router.get("/{order_id}", response_model=OrderAdminDetail)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return order_service.get_admin_order(session, order_id)


# -------- Status lifecycle --------


@router.patch("/{order_id}/status", response_model=OrderAdminRead)
def update_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    notifier: OrderNotifier = Depends(get_notifier),
):
    """
      NEW       -> PAID, OFD, CANCELLED

      PAID      -> OFD, CANCELLED

      OFD       -> DELIVERED, CANCELLED

      DELIVERED -> (no change)

      CANCELLED -> use DELETE /cancel to restore
    """
    order, intents = fulfillment.set_status(
        session, order_id, payload.status, payload.cancel_reason
    )
    background_tasks.add_task(notifier.deliver_all, intents)
    return order


@router.post("/{order_id}/cancel", response_model=OrderAdminRead)
def cancel_order(
    order_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    payload: OrderCancelRequest | None = Body(default=None),
    session: Session = Depends(get_session),
    notifier: OrderNotifier = Depends(get_notifier),
):
    reason = payload.reason if payload else None
    order, intents = fulfillment.cancel(session, order_id, reason)
    background_tasks.add_task(notifier.deliver_all, intents)
    return order


@router.delete("/{order_id}/cancel", response_model=OrderAdminRead)
def restore_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Restore a cancelled order to NEW.
    """
    order, _ = fulfillment.restore(session, order_id)
    return order


@router.post("/{order_id}/archive", response_model=OrderAdminRead)
def archive_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    order, _ = fulfillment.archive(session, order_id)
    return order


@router.delete("/{order_id}/archive", response_model=OrderAdminRead)
def unarchive_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    order, _ = fulfillment.unarchive(session, order_id)
    return order


# -------- Husbandry log --------


@router.get("/{order_id}/husbandry", response_model=list[HusbandryRead])
def list_husbandry(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Notes for an order, newest first.
    """
    return husbandry.list_notes(session, order_id)


@router.post(
    "/{order_id}/husbandry",
    response_model=HusbandryRead,
    status_code=status.HTTP_201_CREATED,
)
def add_husbandry(
    order_id: uuid.UUID,
    payload: HusbandryCreate,
    session: Session = Depends(get_session),
):
    return husbandry.add_note(session, order_id, payload.note, payload.author)
