# firewood/repositories/product_repo.py
import uuid
from typing import Iterable

from sqlmodel import Session, func, select

from firewood.models.product import Product


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_name(self, session: Session, name: str) -> Product | None:
        stmt = select(Product).where(Product.name == name)
        return session.exec(stmt).first()

    def list_active(self, session: Session) -> list[Product]:
        """
        Active products in price-list order: sort_order, then name.
        """
        stmt = (
            select(Product)
            .where(Product.is_active == True)  # noqa: E712
            .order_by(Product.sort_order, Product.name)
        )
        return session.exec(stmt).all()

    def list_active_by_ids(
        self,
        session: Session,
        product_ids: Iterable[uuid.UUID],
    ) -> list[Product]:
        ids = list(set(product_ids))
        if not ids:
            return []
        stmt = select(Product).where(
            Product.id.in_(ids),
            Product.is_active == True,  # noqa: E712
        )
        return session.exec(stmt).all()

    def count(self, session: Session) -> int:
        return session.exec(select(func.count()).select_from(Product)).one()

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product
