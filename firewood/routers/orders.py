# firewood/routers/orders.py
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlmodel import Session

from firewood.database import get_session
from firewood.repositories.husbandry_repo import HusbandryRepository
from firewood.repositories.order_repo import OrderRepository
from firewood.repositories.product_repo import ProductRepository
from firewood.schemas.order import OrderCreate, OrderCreated, OrderPublicRead
from firewood.services.notifier import OrderNotifier, get_notifier
from firewood.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
product_repo = ProductRepository()
husbandry_repo = HusbandryRepository()
service = OrderService(order_repo, product_repo, husbandry_repo)


@router.post(
    "",
    response_model=OrderCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    notifier: OrderNotifier = Depends(get_notifier),
):
    """
    Place an order.

    Prices and delivery fee are computed here from the catalog; the
    staff notice and customer confirmation are emailed after the response.
    """
    created, intents = service.create_order(session, payload)
    background_tasks.add_task(notifier.deliver_all, intents)
    return created


@router.get("/{order_id}", response_model=OrderPublicRead)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Customer-visible view of an order (thank-you page).
    """
    return service.get_public_order(session, order_id)
