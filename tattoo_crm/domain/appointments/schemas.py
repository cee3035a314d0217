from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...models_booking import APPOINTMENT_STATUSES
from ...shared.validators import validate_email, validate_phone
from ...utils.sanitization import TEXT_MAX_LENGTH


class _TimeWindow(BaseModel):
    startAt: datetime
    endAt: datetime

    @model_validator(mode="after")
    def check_window(self):
        if self.endAt <= self.startAt:
            raise ValueError("endAt must be after startAt")
        return self


class PublicAppointmentCreate(_TimeWindow):
    name: str = Field(min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None
    artistId: int
    serviceId: int
    notes: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class AppointmentCreate(_TimeWindow):
    """Booking made by a logged-in member"""

    branchId: int
    artistId: Optional[int] = None
    serviceId: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)


class StaffAppointmentCreate(_TimeWindow):
    """Booking entered by staff for a member (userId) or a lead (contactId)"""

    branchId: int
    artistId: Optional[int] = None
    serviceId: Optional[int] = None
    userId: Optional[int] = None
    contactId: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)

    @model_validator(mode="after")
    def check_customer(self):
        if not self.userId and not self.contactId:
            raise ValueError("userId or contactId is required")
        return self


class AppointmentStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        v = v.upper()
        if v not in APPOINTMENT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(APPOINTMENT_STATUSES)}")
        return v


class AppointmentReschedule(BaseModel):
    startAt: Optional[datetime] = None
    endAt: Optional[datetime] = None
    artistId: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)


class PersonSummary(BaseModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ServiceSummary(BaseModel):
    id: int
    name: str
    price: int
    durationMin: int


class BranchSummary(BaseModel):
    id: int
    name: str


class AppointmentResponse(BaseModel):
    id: int
    status: str
    startAt: datetime
    endAt: datetime
    notes: Optional[str] = None
    branchId: int
    userId: Optional[int] = None
    artistId: Optional[int] = None
    serviceId: Optional[int] = None
    contactId: Optional[int] = None
    cartId: Optional[int] = None
    cartSnapshot: Optional[dict[str, Any]] = None
    user: Optional[PersonSummary] = None
    artist: Optional[PersonSummary] = None
    service: Optional[ServiceSummary] = None
    branch: Optional[BranchSummary] = None
    createdAt: Optional[datetime] = None


class AvailabilityResponse(BaseModel):
    date: str
    slots: list[str]


def _person(user) -> Optional[PersonSummary]:
    if not user:
        return None
    return PersonSummary(id=user.id, name=user.name, email=user.email, phone=user.phone)


def appointment_to_response(a) -> AppointmentResponse:
    return AppointmentResponse(
        id=a.id,
        status=a.status,
        startAt=a.start_at,
        endAt=a.end_at,
        notes=a.notes,
        branchId=a.branch_id,
        userId=a.user_id,
        artistId=a.artist_id,
        serviceId=a.service_id,
        contactId=a.contact_id,
        cartId=a.cart_id,
        cartSnapshot=a.cart_snapshot,
        user=_person(a.user),
        artist=_person(a.artist),
        service=(
            ServiceSummary(id=a.service.id, name=a.service.name, price=a.service.price, durationMin=a.service.duration_min)
            if a.service
            else None
        ),
        branch=BranchSummary(id=a.branch.id, name=a.branch.name) if a.branch else None,
        createdAt=a.created_at,
    )
