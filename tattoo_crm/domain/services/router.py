"""Service catalog router - public browsing and BOSS administration"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import require_boss
from ...database import get_db
from ..audit.service import AuditService
from .schemas import (
    ServiceBatchUpdate,
    ServiceCreate,
    ServiceHistoryResponse,
    ServiceResponse,
    ServiceUpdate,
    VariantCreate,
    VariantResponse,
    VariantUpdate,
    service_to_response,
    variant_to_response,
)
from .service import CatalogService

router = APIRouter(prefix="/services", tags=["Services"])
admin_router = APIRouter(prefix="/admin/services", tags=["Admin Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


# ============================================================================
# PUBLIC CATALOG
# ============================================================================


@router.get("", response_model=list[ServiceResponse])
async def list_services(
    category: Optional[str] = Query(None),
    active: Optional[bool] = Query(True),
    sortBy: str = Query("name"),
    sortOrder: str = Query("asc"),
    service: CatalogService = Depends(get_catalog_service),
):
    return [service_to_response(s) for s in service.list_services(category, active, sortBy, sortOrder)]


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: int, service: CatalogService = Depends(get_catalog_service)):
    """Service detail with active variants grouped by type"""
    return service_to_response(service.get_service(service_id), include_variants=True)


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.get("", response_model=list[ServiceResponse])
async def admin_list_services(
    category: Optional[str] = Query(None),
    active: Optional[bool] = Query(None),
    sortBy: str = Query("name"),
    sortOrder: str = Query("asc"),
    _: Actor = Depends(require_boss),
    service: CatalogService = Depends(get_catalog_service),
):
    return [service_to_response(s) for s in service.list_services(category, active, sortBy, sortOrder)]


@admin_router.get("/export")
async def export_services_csv(
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    response = CatalogService(db).export_csv()
    AuditService(db).log(actor, "EXPORT_SERVICES_CSV", "SERVICE", request=request)
    return response


@admin_router.get("/history", response_model=list[ServiceHistoryResponse])
async def service_history(
    serviceId: Optional[int] = Query(None),
    _: Actor = Depends(require_boss),
    service: CatalogService = Depends(get_catalog_service),
):
    return [
        ServiceHistoryResponse(
            id=h.id,
            serviceId=h.service_id,
            field=h.field,
            oldValue=h.old_value,
            newValue=h.new_value,
            updatedById=h.updated_by_id,
            createdAt=h.created_at,
        )
        for h in service.history(serviceId)
    ]


@admin_router.post("", response_model=ServiceResponse)
async def create_service(
    data: ServiceCreate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    created = CatalogService(db).create_service(data)
    AuditService(db).log(actor, "SERVICE_CREATE", "SERVICE", created.id, request=request)
    return service_to_response(created)


@admin_router.post("/batch-update", response_model=list[ServiceResponse])
async def batch_update_services(
    data: ServiceBatchUpdate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    updated = CatalogService(db).batch_update(data.serviceIds, data.isActive, data.category, actor.id)
    AuditService(db).log(
        actor,
        "SERVICE_BATCH_UPDATE",
        "SERVICE",
        metadata={"serviceIds": data.serviceIds, "isActive": data.isActive, "category": data.category},
        request=request,
    )
    return [service_to_response(s) for s in updated]


@admin_router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    updated = CatalogService(db).update_service(service_id, data, actor.id)
    AuditService(db).log(
        actor, "SERVICE_UPDATE", "SERVICE", service_id, metadata=data.model_dump(exclude_none=True), request=request
    )
    return service_to_response(updated)


@admin_router.delete("/{service_id}")
async def delete_service(
    service_id: int,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    result = CatalogService(db).delete_service(service_id)
    AuditService(db).log(actor, "SERVICE_DELETE", "SERVICE", service_id, request=request)
    return result


# Variants


@admin_router.get("/{service_id}/variants", response_model=list[VariantResponse])
async def list_variants(
    service_id: int,
    _: Actor = Depends(require_boss),
    service: CatalogService = Depends(get_catalog_service),
):
    return [variant_to_response(v) for v in service.list_variants(service_id)]


@admin_router.post("/{service_id}/variants", response_model=VariantResponse)
async def create_variant(
    service_id: int,
    data: VariantCreate,
    _: Actor = Depends(require_boss),
    service: CatalogService = Depends(get_catalog_service),
):
    return variant_to_response(service.create_variant(service_id, data))


@admin_router.post("/{service_id}/variants/initialize")
async def initialize_variants(
    service_id: int,
    _: Actor = Depends(require_boss),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.initialize_default_variants(service_id)


@admin_router.patch("/variants/{variant_id}", response_model=VariantResponse)
async def update_variant(
    variant_id: int,
    data: VariantUpdate,
    _: Actor = Depends(require_boss),
    service: CatalogService = Depends(get_catalog_service),
):
    return variant_to_response(service.update_variant(variant_id, data))


@admin_router.delete("/variants/{variant_id}")
async def delete_variant(
    variant_id: int,
    _: Actor = Depends(require_boss),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.delete_variant(variant_id)
