# firewood/repositories/husbandry_repo.py
import uuid

from sqlmodel import Session, col, select

from firewood.models.husbandry import HusbandryLog


class HusbandryRepository:
    """
    Append-only access to husbandry notes: no update or delete.
    """

    def list_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[HusbandryLog]:
        stmt = (
            select(HusbandryLog)
            .where(HusbandryLog.order_id == order_id)
            .order_by(col(HusbandryLog.created_at).desc(), col(HusbandryLog.id).desc())
        )
        return session.exec(stmt).all()

    def create(self, session: Session, log: HusbandryLog) -> HusbandryLog:
        session.add(log)
        session.flush()
        session.refresh(log)
        return log
