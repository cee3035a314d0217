"""Catalog service - business logic for tattoo services and their variants"""

import csv
import logging
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...models_booking import Appointment
from ...models_catalog import Service, ServiceHistory, ServiceVariant
from ...utils.sanitization import sanitize_text
from .repository import ServiceRepository
from .schemas import ServiceCreate, ServiceUpdate, VariantCreate, VariantUpdate

logger = logging.getLogger(__name__)

# API field -> model attribute, in the order history rows are written
SERVICE_FIELDS = {
    "name": "name",
    "description": "description",
    "price": "price",
    "currency": "currency",
    "durationMin": "duration_min",
    "category": "category",
    "imageUrl": "image_url",
    "isActive": "is_active",
}

DEFAULT_VARIANTS = {
    "size": [
        ("5x5cm", 0, 0),
        ("10x10cm", 1000, 30),
        ("15x15cm", 2000, 60),
        ("20x20cm", 3000, 90),
    ],
    "color": [
        ("割線A", 0, 0),
        ("黑白B", 500, 15),
        ("半彩C", 1000, 30),
        ("全彩D", 1500, 45),
    ],
    "position": [
        ("部位1", 0, 0),
        ("部位2", 500, 15),
    ],
}


class CatalogService:
    """Service layer for catalog business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def list_services(self, category=None, active=None, sort_by="name", sort_order="asc") -> list[Service]:
        return self.repo.list_services(self.db, category, active, sort_by, sort_order)

    def get_service(self, service_id: int) -> Service:
        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def create_service(self, data: ServiceCreate) -> Service:
        service = Service(
            name=data.name,
            description=sanitize_text(data.description),
            price=data.price,
            currency=data.currency,
            duration_min=data.durationMin,
            category=data.category,
            image_url=data.imageUrl,
            is_active=data.isActive,
        )
        self.db.add(service)
        self.db.commit()
        self.db.refresh(service)
        logger.info(f"✅ Created service {service.id} ({service.name})")
        return service

    def _apply_updates(self, service: Service, updates: dict, updated_by: Optional[int]) -> list[str]:
        changed = []
        for api_field, attr in SERVICE_FIELDS.items():
            if api_field not in updates or updates[api_field] is None:
                continue
            new_value = updates[api_field]
            if api_field == "description":
                new_value = sanitize_text(new_value)
            old_value = getattr(service, attr)
            if old_value == new_value:
                continue
            setattr(service, attr, new_value)
            self.db.add(
                ServiceHistory(
                    service_id=service.id,
                    field=api_field,
                    old_value=None if old_value is None else str(old_value),
                    new_value=str(new_value),
                    updated_by_id=updated_by,
                )
            )
            changed.append(api_field)
        return changed

    def update_service(self, service_id: int, data: ServiceUpdate, updated_by: Optional[int] = None) -> Service:
        service = self.get_service(service_id)
        changed = self._apply_updates(service, data.model_dump(exclude_none=True), updated_by)
        self.db.commit()
        self.db.refresh(service)
        if changed:
            logger.info(f"📝 Service {service.id} updated: {', '.join(changed)}")
        return service

    def delete_service(self, service_id: int) -> dict:
        service = self.get_service(service_id)
        appointment_count = (
            self.db.query(Appointment).filter(Appointment.service_id == service_id).count()
        )
        if appointment_count:
            raise HTTPException(
                status_code=409,
                detail=f'Cannot delete service "{service.name}": {appointment_count} appointment(s) reference it',
            )
        self.db.delete(service)
        self.db.commit()
        return {"success": True}

    def batch_update(
        self, service_ids: list[int], is_active: Optional[bool], category: Optional[str], updated_by: Optional[int]
    ) -> list[Service]:
        if not service_ids:
            raise HTTPException(status_code=400, detail="No service IDs provided")
        updates = {"isActive": is_active, "category": category}
        services = self.db.query(Service).filter(Service.id.in_(service_ids)).all()
        for service in services:
            self._apply_updates(service, updates, updated_by)
        self.db.commit()
        return services

    def history(self, service_id: Optional[int] = None) -> list[ServiceHistory]:
        return self.repo.history(self.db, service_id)

    def export_csv(self) -> StreamingResponse:
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(["ID", "Name", "Category", "Price", "Currency", "Duration (min)", "Active", "Created At"])
        for s in self.repo.list_services(self.db):
            writer.writerow(
                [
                    s.id,
                    s.name,
                    s.category or "",
                    s.price,
                    s.currency,
                    s.duration_min,
                    "yes" if s.is_active else "no",
                    s.created_at.isoformat() if s.created_at else "",
                ]
            )
        output.seek(0)
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="services.csv"'},
        )

    # Variants

    def list_variants(self, service_id: int) -> list[ServiceVariant]:
        return self.get_service(service_id).variants

    def create_variant(self, service_id: int, data: VariantCreate) -> ServiceVariant:
        service = self.get_service(service_id)
        variant = ServiceVariant(
            service_id=service.id,
            type=data.type,
            name=data.name,
            description=data.description,
            price_modifier=data.priceModifier,
            duration_modifier=data.durationModifier,
            sort_order=data.sortOrder,
            is_required=data.isRequired,
            is_active=data.isActive,
            meta=data.metadata,
        )
        self.db.add(variant)
        service.has_variants = True
        self.db.commit()
        self.db.refresh(variant)
        return variant

    def update_variant(self, variant_id: int, data: VariantUpdate) -> ServiceVariant:
        variant = self.repo.get_variant(self.db, variant_id)
        if not variant:
            raise HTTPException(status_code=404, detail="Variant not found")
        mapping = {
            "name": "name",
            "description": "description",
            "priceModifier": "price_modifier",
            "durationModifier": "duration_modifier",
            "sortOrder": "sort_order",
            "isRequired": "is_required",
            "isActive": "is_active",
            "metadata": "meta",
        }
        for api_field, value in data.model_dump(exclude_none=True).items():
            setattr(variant, mapping[api_field], value)
        self.db.commit()
        self.db.refresh(variant)
        return variant

    def delete_variant(self, variant_id: int) -> dict:
        variant = self.repo.get_variant(self.db, variant_id)
        if not variant:
            raise HTTPException(status_code=404, detail="Variant not found")
        service_id = variant.service_id
        self.db.delete(variant)
        self.db.flush()
        if self.repo.count_variants(self.db, service_id) == 0:
            self.get_service(service_id).has_variants = False
        self.db.commit()
        return {"success": True}

    def initialize_default_variants(self, service_id: int) -> dict:
        """Replace a service's variants with the standard size/color/position set"""
        service = self.get_service(service_id)
        self.db.query(ServiceVariant).filter(ServiceVariant.service_id == service_id).delete(
            synchronize_session=False
        )
        for type_, rows in DEFAULT_VARIANTS.items():
            for order, (name, price, duration) in enumerate(rows, start=1):
                self.db.add(
                    ServiceVariant(
                        service_id=service_id,
                        type=type_,
                        name=name,
                        price_modifier=price,
                        duration_modifier=duration,
                        sort_order=order,
                    )
                )
        service.has_variants = True
        self.db.commit()
        self.db.expire(service)
        return {"success": True, "message": "Default variants created"}
