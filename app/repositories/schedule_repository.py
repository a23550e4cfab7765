# app/repositories/schedule_repository.py
"""Schedule repository - reads shops, weekly blocks and date exceptions"""
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.schedule import ScheduleBlock, ScheduleException
from app.models.shop import Shop


class ScheduleRepository:
    """Read-only access to a shop's schedule configuration"""

    def __init__(self, db: Session):
        self.db = db

    def get_shop(self, shop_id: UUID) -> Optional[Shop]:
        return self.db.query(Shop).filter(Shop.id == shop_id).first()

    def get_blocks(self, shop_id: UUID) -> List[ScheduleBlock]:
        return (
            self.db.query(ScheduleBlock)
            .filter(ScheduleBlock.shop_id == shop_id)
            .order_by(ScheduleBlock.day_of_week, ScheduleBlock.block_order)
            .all()
        )

    def get_exceptions(self, shop_id: UUID, start_date: date, end_date: date) -> List[ScheduleException]:
        return (
            self.db.query(ScheduleException)
            .filter(
                ScheduleException.shop_id == shop_id,
                ScheduleException.exception_date.between(start_date, end_date),
            )
            .all()
        )
