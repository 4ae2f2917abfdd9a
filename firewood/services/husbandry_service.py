# firewood/services/husbandry_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from firewood.models.husbandry import HusbandryLog
from firewood.repositories.husbandry_repo import HusbandryRepository
from firewood.repositories.order_repo import OrderRepository

DEFAULT_AUTHOR = "Admin"


class HusbandryService:
    """
    Customer-service notes on an order. Append and list, nothing else.
    """

    def __init__(self, repo: HusbandryRepository, order_repo: OrderRepository):
        self.repo = repo
        self.order_repo = order_repo

    def _ensure_order(self, session: Session, order_id: uuid.UUID) -> None:
        if not self.order_repo.get_by_id(session, order_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )

    def add_note(
        self,
        session: Session,
        order_id: uuid.UUID,
        note: str,
        author: str | None = None,
    ) -> HusbandryLog:
        text = (note or "").strip()
        if not text:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Note required",
            )

        self._ensure_order(session, order_id)

        log = HusbandryLog(
            order_id=order_id,
            note=text,
            author=(author or "").strip() or DEFAULT_AUTHOR,
        )
        try:
            log = self.repo.create(session, log)
            session.commit()
        except Exception:
            session.rollback()
            raise
        session.refresh(log)
        return log

    def list_notes(self, session: Session, order_id: uuid.UUID) -> list[HusbandryLog]:
        """
        Newest first.
        """
        self._ensure_order(session, order_id)
        return self.repo.list_for_order(session, order_id)
