# firewood/services/product_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from firewood.core.storage import ImageStorage, get_image_storage
from firewood.models.product import Product
from firewood.repositories.product_repo import ProductRepository
from firewood.schemas.product import ProductCreate, ProductSeedResult, ProductUpdate

logger = logging.getLogger(__name__)

# --- Image config ---

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

# Default price list, matched by name when seeding
DEFAULT_PRODUCTS: tuple[dict, ...] = (
    {
        "name": "Net of Logs",
        "description": "Perfect for occasional fires. Easy to store and handle.",
        "price_pence": 2000,
        "sort_order": 10,
    },
    {
        "name": "Bulk Bag of Logs",
        "description": "Best value for regular burners. Seasoned hardwood.",
        "price_pence": 10000,
        "sort_order": 20,
    },
    {
        "name": "IBC Crate",
        "description": "A full IBC crate of loose-tipped, fully seasoned logs.",
        "price_pence": 19500,
        "sort_order": 30,
    },
)


class ProductService:
    """
    Business logic for the product catalog.

    Responsibilities:
      - public price list (active only, sort_order then name)
      - idempotent seeding of the default catalog
      - admin create / update
      - product image upload to Supabase Storage
    """

    def __init__(self, repo: ProductRepository, storage: ImageStorage | None = None):
        self.repo = repo
        self._storage = storage

    @property
    def storage(self) -> ImageStorage:
        return self._storage or get_image_storage()

    @staticmethod
    def _validate_and_get_ext(content_type: str, file_bytes: bytes) -> str:
        if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unsupported image type. Allowed: JPEG, PNG, WEBP.",
            )

        if len(file_bytes) > MAX_IMAGE_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Image too large (max 5MB).",
            )

        return ALLOWED_IMAGE_CONTENT_TYPES[content_type]

    # ----- Products -----

    def list_active(self, session: Session) -> list[Product]:
        return self.repo.list_active(session)

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def seed_defaults(self, session: Session) -> ProductSeedResult:
        """
        Create the default products that do not exist yet (by name).
        Safe to run repeatedly.
        """
        created: list[str] = []
        existed: list[str] = []

        for data in DEFAULT_PRODUCTS:
            if self.repo.get_by_name(session, data["name"]) is not None:
                existed.append(data["name"])
                continue
            self.repo.create(session, Product(is_active=True, **data))
            created.append(data["name"])

        if created:
            logger.info("Seeded products: %s", ", ".join(created))

        return ProductSeedResult(
            created=created,
            existed=existed,
            total=self.repo.count(session),
        )

    def create_product(self, session: Session, payload: ProductCreate) -> Product:
        product = Product(**payload.model_dump())
        return self.repo.create(session, product)

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product:
        """
        Partial update. Orders already placed keep their snapshot.
        """
        product = self.get_product(session, product_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(product, key, value)
        return self.repo.update(session, product)

    # ----- Image -----

    def set_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ) -> Product:
        """
        Upload or replace the product image.

        - Validates content type + size.
        - Uploads to products/<product_id>/<uuid>.<ext>.
        - Deletes the previous image from Storage (best-effort).
        """
        product = self.get_product(session, product_id)
        ext = self._validate_and_get_ext(content_type, file_bytes)

        path = self.storage.product_image_path(product.id, ext)
        try:
            new_url = self.storage.upload(path, file_bytes, content_type)
        except Exception as e:
            logger.error("Image upload failed for product %s: %s", product.id, e)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Image storage error",
            )

        old_url = product.image_url
        product.image_url = new_url
        if not product.image_alt:
            product.image_alt = product.name
        product = self.repo.update(session, product)

        if old_url:
            try:
                self.storage.delete_url(old_url)
            except Exception:
                logger.warning("Could not delete old image %s", old_url, exc_info=True)

        return product
