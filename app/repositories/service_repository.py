# app/repositories/service_repository.py
"""Service repository - services and their modifiers"""
from typing import List, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.service import Service, ServiceModifier


class ServiceRepository:
    """Read-only access to a shop's service catalog"""

    def __init__(self, db: Session):
        self.db = db

    def list_active(self, shop_id: UUID) -> List[Service]:
        return (
            self.db.query(Service)
            .filter(Service.shop_id == shop_id, Service.is_active.is_(True))
            .order_by(Service.display_order, Service.name)
            .all()
        )

    def get_active_for_shop(self, shop_id: UUID, service_ids: Sequence[UUID]) -> List[Service]:
        """Active services of the shop among ``service_ids``; unknown ids are simply absent."""
        if not service_ids:
            return []
        return (
            self.db.query(Service)
            .filter(
                Service.shop_id == shop_id,
                Service.id.in_(list(service_ids)),
                Service.is_active.is_(True),
            )
            .all()
        )

    def get_active_modifiers(self, service_ids: Sequence[UUID]) -> List[ServiceModifier]:
        if not service_ids:
            return []
        return (
            self.db.query(ServiceModifier)
            .filter(
                ServiceModifier.service_id.in_(list(service_ids)),
                ServiceModifier.is_active.is_(True),
            )
            .order_by(ServiceModifier.name)
            .all()
        )
