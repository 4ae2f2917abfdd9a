# firewood/routers/products.py
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    UploadFile,
    status,
)
from sqlmodel import Session

from firewood.core.auth import require_admin
from firewood.database import get_session
from firewood.repositories.product_repo import ProductRepository
from firewood.schemas.product import (
    ProductCreate,
    ProductRead,
    ProductSeedResult,
    ProductUpdate,
)
from firewood.services.product_service import ProductService

router = APIRouter(tags=["Products"])

repo = ProductRepository()
service = ProductService(repo)


# -------- Public endpoints --------


@router.get("/products", response_model=list[ProductRead])
def list_products(session: Session = Depends(get_session)):
    """
    Active products in price-list order (sort_order, then name).
    """
    return service.list_active(session)


# -------- Admin endpoints --------


@router.post(
    "/admin/products/seed",
    response_model=ProductSeedResult,
    dependencies=[Depends(require_admin)],
)
def seed_products(session: Session = Depends(get_session)):
    """
    Create the default catalog entries that are missing (admin only).
    """
    return service.seed_defaults(session)


@router.post(
    "/admin/products",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    return service.create_product(session, payload)


@router.patch(
    "/admin/products/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    return service.update_product(session, product_id, payload)


@router.post(
    "/admin/products/{product_id}/image",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
    summary="Upload or replace the image for a product",
)
def upload_product_image(
    product_id: uuid.UUID,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    """
    Accepts JPEG, PNG, WEBP up to 5MB. Replaces any previous image.
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    file_bytes = file.file.read()
    return service.set_image(
        session=session,
        product_id=product_id,
        content_type=file.content_type,
        file_bytes=file_bytes,
    )
