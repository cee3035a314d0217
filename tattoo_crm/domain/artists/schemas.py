from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import validate_email, validate_hhmm, validate_phone
from ...utils.sanitization import TEXT_MAX_LENGTH

ARTIST_APPOINTMENT_STATUSES = ("CONFIRMED", "IN_PROGRESS", "COMPLETED")


class ArtistResponse(BaseModel):
    id: int
    userId: int
    displayName: str
    speciality: Optional[str] = None
    bio: Optional[str] = None
    photoUrl: Optional[str] = None
    styleTags: list[str] = []
    branchId: Optional[int] = None
    branchName: Optional[str] = None
    active: bool


class ArtistCreate(BaseModel):
    email: str
    password: str = Field(min_length=8)
    name: str = Field(min_length=1, max_length=255)
    phone: Optional[str] = None
    branchId: int
    displayName: Optional[str] = None
    speciality: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)
    photoUrl: Optional[str] = None
    styleTags: Optional[list[str]] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class ArtistProfileUpdate(BaseModel):
    displayName: Optional[str] = Field(None, min_length=1, max_length=255)
    speciality: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)
    photoUrl: Optional[str] = None
    styleTags: Optional[list[str]] = None


class ArtistAdminUpdate(ArtistProfileUpdate):
    branchId: Optional[int] = None
    active: Optional[bool] = None


class AppointmentStatusRequest(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        v = v.upper()
        if v not in ARTIST_APPOINTMENT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(ARTIST_APPOINTMENT_STATUSES)}")
        return v


class PortfolioCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)
    imageUrl: str = Field(min_length=1, max_length=500)
    tags: Optional[list[str]] = None


class PortfolioUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)
    imageUrl: Optional[str] = Field(None, min_length=1, max_length=500)
    tags: Optional[list[str]] = None


class PortfolioResponse(BaseModel):
    id: int
    artistId: int
    title: str
    description: Optional[str] = None
    imageUrl: str
    tags: list[str] = []
    createdAt: Optional[datetime] = None


class AvailabilityCreate(BaseModel):
    weekday: Optional[int] = Field(None, ge=0, le=6)
    specificDate: Optional[date] = None
    startTime: str
    endTime: str
    isBlocked: bool = False

    @field_validator("startTime", "endTime")
    @classmethod
    def check_time(cls, v):
        return validate_hhmm(v)

    @model_validator(mode="after")
    def check_day(self):
        if (self.weekday is None) == (self.specificDate is None):
            raise ValueError("Provide exactly one of weekday or specificDate")
        return self


class AvailabilityUpdate(BaseModel):
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    isBlocked: Optional[bool] = None

    @field_validator("startTime", "endTime")
    @classmethod
    def check_time(cls, v):
        return validate_hhmm(v)


class AvailabilityResponse(BaseModel):
    id: int
    artistId: int
    weekday: Optional[int] = None
    specificDate: Optional[date] = None
    startTime: str
    endTime: str
    isBlocked: bool


class CustomerSummary(BaseModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    appointmentCount: int
    lastVisit: Optional[datetime] = None


def artist_to_response(a) -> ArtistResponse:
    return ArtistResponse(
        id=a.id,
        userId=a.user_id,
        displayName=a.display_name,
        speciality=a.speciality,
        bio=a.bio,
        photoUrl=a.photo_url,
        styleTags=a.style_tags or [],
        branchId=a.branch_id,
        branchName=a.branch.name if a.branch else None,
        active=a.active,
    )


def portfolio_to_response(p) -> PortfolioResponse:
    return PortfolioResponse(
        id=p.id,
        artistId=p.artist_id,
        title=p.title,
        description=p.description,
        imageUrl=p.image_url,
        tags=p.tags or [],
        createdAt=p.created_at,
    )


def availability_to_response(r) -> AvailabilityResponse:
    return AvailabilityResponse(
        id=r.id,
        artistId=r.artist_id,
        weekday=r.weekday,
        specificDate=r.specific_date,
        startTime=r.start_time,
        endTime=r.end_time,
        isBlocked=r.is_blocked,
    )
