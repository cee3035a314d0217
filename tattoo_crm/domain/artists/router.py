"""Public artist profiles, the artist backoffice and BOSS artist administration"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import require_artist, require_boss
from ...database import get_db
from ..appointments.schemas import appointment_to_response
from ..appointments.service import status_audit_action
from ..audit.service import AuditService, build_diff
from ..notifications.schemas import to_response as notification_to_response
from .schemas import (
    AppointmentStatusRequest,
    ArtistAdminUpdate,
    ArtistCreate,
    ArtistProfileUpdate,
    ArtistResponse,
    AvailabilityCreate,
    AvailabilityResponse,
    AvailabilityUpdate,
    CustomerSummary,
    PortfolioCreate,
    PortfolioResponse,
    PortfolioUpdate,
    artist_to_response,
    availability_to_response,
    portfolio_to_response,
)
from .service import ArtistService

public_router = APIRouter(prefix="/artists", tags=["Artists"])
router = APIRouter(prefix="/artist", tags=["Artist Backoffice"])
admin_router = APIRouter(prefix="/admin/artists", tags=["Admin Artists"])


def get_artist_service(db: Session = Depends(get_db)) -> ArtistService:
    return ArtistService(db)


# ============================================================================
# PUBLIC
# ============================================================================


@public_router.get("", response_model=list[ArtistResponse])
async def list_artists(
    branchId: Optional[int] = Query(None),
    service: ArtistService = Depends(get_artist_service),
):
    return [artist_to_response(a) for a in service.list_artists(branchId)]


@public_router.get("/{artist_id}", response_model=ArtistResponse)
async def get_artist(artist_id: int, service: ArtistService = Depends(get_artist_service)):
    return artist_to_response(service.get_artist(artist_id))


@public_router.get("/{artist_id}/portfolio", response_model=list[PortfolioResponse])
async def get_artist_portfolio(artist_id: int, service: ArtistService = Depends(get_artist_service)):
    artist = service.get_artist(artist_id)
    return [portfolio_to_response(p) for p in service.portfolio(artist.user_id)]


# ============================================================================
# ARTIST BACKOFFICE
# ============================================================================


@router.get("/dashboard")
async def dashboard(
    actor: Actor = Depends(require_artist),
    service: ArtistService = Depends(get_artist_service),
):
    data = service.dashboard(actor)
    return {
        "todayAppointments": [appointment_to_response(a) for a in data["todayAppointments"]],
        "notifications": [notification_to_response(n) for n in data["notifications"]],
        "stats": data["stats"],
    }


@router.get("/appointments")
async def my_appointments(
    period: Optional[str] = Query(None, pattern="^(today|week|month)$"),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    actor: Actor = Depends(require_artist),
    service: ArtistService = Depends(get_artist_service),
):
    appointments = service.my_appointments(actor, period, startDate, endDate)
    return [appointment_to_response(a) for a in appointments]


@router.patch("/appointments/{appointment_id}/status")
async def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusRequest,
    request: Request,
    actor: Actor = Depends(require_artist),
    db: Session = Depends(get_db),
):
    appointment, previous = ArtistService(db).update_appointment_status(actor, appointment_id, data.status)
    result = appointment_to_response(appointment)
    AuditService(db).log(
        actor,
        status_audit_action(data.status),
        "APPOINTMENT",
        appointment_id,
        diff={"status": {"from": previous, "to": data.status}},
        request=request,
        branch_id=result.branchId,
    )
    return result


@router.get("/customers", response_model=list[CustomerSummary])
async def my_customers(
    actor: Actor = Depends(require_artist),
    service: ArtistService = Depends(get_artist_service),
):
    return service.my_customers(actor)


@router.patch("/profile", response_model=ArtistResponse)
async def update_profile(
    data: ArtistProfileUpdate,
    request: Request,
    actor: Actor = Depends(require_artist),
    db: Session = Depends(get_db),
):
    artist, before = ArtistService(db).update_profile(actor, data)
    after = data.model_dump(exclude_none=True)
    AuditService(db).log(
        actor, "ARTIST_PROFILE_UPDATE", "ARTIST", artist.id, diff=build_diff(before, after, before.keys()), request=request
    )
    return artist_to_response(artist)


# Portfolio


@router.get("/portfolio", response_model=list[PortfolioResponse])
async def my_portfolio(
    actor: Actor = Depends(require_artist),
    service: ArtistService = Depends(get_artist_service),
):
    return [portfolio_to_response(p) for p in service.portfolio(actor.id)]


@router.post("/portfolio", response_model=PortfolioResponse)
async def add_portfolio_item(
    data: PortfolioCreate,
    request: Request,
    actor: Actor = Depends(require_artist),
    db: Session = Depends(get_db),
):
    item = ArtistService(db).add_portfolio_item(actor, data)
    result = portfolio_to_response(item)
    AuditService(db).log(actor, "PORTFOLIO_CREATE", "PORTFOLIO", result.id, metadata={"title": result.title}, request=request)
    return result


@router.patch("/portfolio/{item_id}", response_model=PortfolioResponse)
async def update_portfolio_item(
    item_id: int,
    data: PortfolioUpdate,
    request: Request,
    actor: Actor = Depends(require_artist),
    db: Session = Depends(get_db),
):
    result = portfolio_to_response(ArtistService(db).update_portfolio_item(actor, item_id, data))
    AuditService(db).log(
        actor, "PORTFOLIO_UPDATE", "PORTFOLIO", item_id, metadata=data.model_dump(exclude_none=True), request=request
    )
    return result


@router.delete("/portfolio/{item_id}")
async def delete_portfolio_item(
    item_id: int,
    request: Request,
    actor: Actor = Depends(require_artist),
    db: Session = Depends(get_db),
):
    ArtistService(db).delete_portfolio_item(actor, item_id)
    AuditService(db).log(actor, "PORTFOLIO_DELETE", "PORTFOLIO", item_id, request=request)
    return {"success": True}


# Availability


@router.get("/availability", response_model=list[AvailabilityResponse])
async def list_availability(
    actor: Actor = Depends(require_artist),
    service: ArtistService = Depends(get_artist_service),
):
    return [availability_to_response(r) for r in service.list_availability(actor)]


@router.post("/availability", response_model=AvailabilityResponse)
async def create_availability(
    data: AvailabilityCreate,
    actor: Actor = Depends(require_artist),
    service: ArtistService = Depends(get_artist_service),
):
    return availability_to_response(service.create_availability(actor, data))


@router.patch("/availability/{record_id}", response_model=AvailabilityResponse)
async def update_availability(
    record_id: int,
    data: AvailabilityUpdate,
    actor: Actor = Depends(require_artist),
    service: ArtistService = Depends(get_artist_service),
):
    return availability_to_response(service.update_availability(actor, record_id, data))


@router.delete("/availability/{record_id}")
async def delete_availability(
    record_id: int,
    actor: Actor = Depends(require_artist),
    service: ArtistService = Depends(get_artist_service),
):
    service.delete_availability(actor, record_id)
    return {"success": True}


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.get("", response_model=list[ArtistResponse])
async def admin_list_artists(
    branchId: Optional[int] = Query(None),
    _: Actor = Depends(require_boss),
    service: ArtistService = Depends(get_artist_service),
):
    return [artist_to_response(a) for a in service.list_artists(branchId, include_inactive=True)]


@admin_router.post("", response_model=ArtistResponse)
async def admin_create_artist(
    data: ArtistCreate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    artist = ArtistService(db).create_artist(data)
    result = artist_to_response(artist)
    AuditService(db).log(
        actor,
        "ADMIN_ARTIST_CREATE",
        "ARTIST",
        result.id,
        metadata={"email": data.email, "branchId": data.branchId},
        request=request,
        branch_id=data.branchId,
    )
    return result


@admin_router.patch("/{artist_id}", response_model=ArtistResponse)
async def admin_update_artist(
    artist_id: int,
    data: ArtistAdminUpdate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    artist, before = ArtistService(db).admin_update(artist_id, data)
    after = data.model_dump(exclude_none=True)
    result = artist_to_response(artist)
    AuditService(db).log(
        actor,
        "ADMIN_ARTIST_UPDATE",
        "ARTIST",
        artist_id,
        diff=build_diff(before, after, before.keys()),
        request=request,
        branch_id=result.branchId,
    )
    return result


@admin_router.delete("/{artist_id}")
async def admin_delete_artist(
    artist_id: int,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    user_id = ArtistService(db).delete_artist(artist_id)
    AuditService(db).log(actor, "ADMIN_ARTIST_DELETE", "ARTIST", artist_id, metadata={"userId": user_id}, request=request)
    return {"success": True}
