"""Appointment routers - public booking, member self-service and staff administration"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import get_actor, get_current_user, require_boss
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...shared.validators import parse_date
from ..audit.service import AuditService, build_diff
from .schemas import (
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AvailabilityResponse,
    PublicAppointmentCreate,
    StaffAppointmentCreate,
    appointment_to_response,
)
from .service import AppointmentService, status_audit_action

public_router = APIRouter(prefix="/public/appointments", tags=["Public Appointments"])
router = APIRouter(prefix="/appointments", tags=["Appointments"])
admin_router = APIRouter(prefix="/admin/appointments", tags=["Admin Appointments"])

rate_limit_public_booking = create_rate_limiter(limit=10, window_seconds=600, key_prefix="public_booking")


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    return AppointmentService(db)


# ============================================================================
# PUBLIC
# ============================================================================


@public_router.get("/availability", response_model=AvailabilityResponse)
async def availability(
    branchId: int = Query(...),
    date: str = Query(..., min_length=8),
    artistId: Optional[int] = Query(None),
    durationMin: int = Query(60, ge=15, le=480),
    stepMin: int = Query(30, ge=5, le=60),
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        day = parse_date(date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    slots = service.available_slots(branchId, artistId, day, durationMin, stepMin)
    return AvailabilityResponse(date=day.isoformat(), slots=slots)


@public_router.post("", response_model=AppointmentResponse)
async def create_public_appointment(
    data: PublicAppointmentCreate,
    _: None = Depends(rate_limit_public_booking),
    service: AppointmentService = Depends(get_appointment_service),
):
    return appointment_to_response(service.create_public(data))


# ============================================================================
# MEMBER
# ============================================================================


@router.post("", response_model=AppointmentResponse)
async def create_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.create(
        current_user.id,
        data.branchId,
        data.startAt,
        data.endAt,
        artist_id=data.artistId,
        service_id=data.serviceId,
        notes=data.notes,
    )
    return appointment_to_response(appointment)


@router.get("/my", response_model=list[AppointmentResponse])
async def my_appointments(
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return [appointment_to_response(a) for a in service.my_appointments(current_user.id)]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return appointment_to_response(service.get_for_user(appointment_id, current_user))


# ============================================================================
# STAFF
# ============================================================================


@admin_router.get("", response_model=list[AppointmentResponse])
async def list_appointments(
    status: Optional[str] = Query(None),
    artistId: Optional[int] = Query(None),
    branchId: Optional[int] = Query(None),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None),
    actor: Actor = Depends(get_actor),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments = service.list_for_staff(actor, status, artistId, branchId, startDate, endDate, search)
    return [appointment_to_response(a) for a in appointments]


@admin_router.get("/{appointment_id}", response_model=AppointmentResponse)
async def admin_get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_actor),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.get_appointment(appointment_id)
    service.ensure_staff_access(actor, appointment)
    return appointment_to_response(appointment)


@admin_router.post("", response_model=AppointmentResponse)
async def admin_create_appointment(
    data: StaffAppointmentCreate,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    appointment = AppointmentService(db).create_by_staff(actor, data)
    AuditService(db).log(
        actor,
        "APPOINTMENT_CREATE",
        "APPOINTMENT",
        appointment.id,
        metadata={"userId": data.userId, "contactId": data.contactId},
        request=request,
        branch_id=appointment.branch_id,
    )
    return appointment_to_response(appointment)


@admin_router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    appointment, previous = AppointmentService(db).update_status(actor, appointment_id, data.status)
    AuditService(db).log(
        actor,
        status_audit_action(data.status),
        "APPOINTMENT",
        appointment.id,
        diff={"status": {"from": previous, "to": data.status}},
        request=request,
        branch_id=appointment.branch_id,
    )
    return appointment_to_response(appointment)


@admin_router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: int,
    data: AppointmentReschedule,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    appointment, before = AppointmentService(db).reschedule(actor, appointment_id, data)
    after = {
        "startAt": appointment.start_at,
        "endAt": appointment.end_at,
        "artistId": appointment.artist_id,
        "notes": appointment.notes,
    }
    AuditService(db).log(
        actor,
        "APPOINTMENT_RESCHEDULE",
        "APPOINTMENT",
        appointment.id,
        diff=build_diff(before, after, after.keys()),
        request=request,
        branch_id=appointment.branch_id,
    )
    return appointment_to_response(appointment)


@admin_router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: int,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    branch_id = AppointmentService(db).delete(appointment_id)
    AuditService(db).log(actor, "APPOINTMENT_DELETE", "APPOINTMENT", appointment_id, request=request, branch_id=branch_id)
    return {"success": True}
