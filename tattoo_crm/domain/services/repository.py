"""Service repository - Database operations for the service catalog"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models_catalog import Service, ServiceHistory, ServiceVariant

SORT_FIELDS = {
    "name": Service.name,
    "price": Service.price,
    "createdAt": Service.created_at,
}


class ServiceRepository:
    """Repository for service catalog database operations"""

    @staticmethod
    def list_services(
        db: Session,
        category: Optional[str] = None,
        active: Optional[bool] = None,
        sort_by: str = "name",
        sort_order: str = "asc",
    ) -> list[Service]:
        query = db.query(Service)
        if category:
            query = query.filter(Service.category == category)
        if active is not None:
            query = query.filter(Service.is_active.is_(active))
        column = SORT_FIELDS.get(sort_by, Service.name)
        query = query.order_by(column.desc() if sort_order == "desc" else column.asc(), Service.id.asc())
        return query.all()

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def get_variant(db: Session, variant_id: int) -> Optional[ServiceVariant]:
        return db.query(ServiceVariant).filter(ServiceVariant.id == variant_id).first()

    @staticmethod
    def active_variants(db: Session, service_id: int) -> list[ServiceVariant]:
        return (
            db.query(ServiceVariant)
            .filter(ServiceVariant.service_id == service_id, ServiceVariant.is_active.is_(True))
            .order_by(ServiceVariant.type, ServiceVariant.sort_order)
            .all()
        )

    @staticmethod
    def count_variants(db: Session, service_id: int) -> int:
        return db.query(ServiceVariant).filter(ServiceVariant.service_id == service_id).count()

    @staticmethod
    def history(db: Session, service_id: Optional[int] = None, limit: int = 100) -> list[ServiceHistory]:
        query = db.query(ServiceHistory)
        if service_id:
            query = query.filter(ServiceHistory.service_id == service_id)
        return query.order_by(ServiceHistory.id.desc()).limit(limit).all()
