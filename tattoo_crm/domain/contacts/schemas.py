from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models_booking import CONTACT_STATUSES
from ...shared.validators import validate_email, validate_phone
from ...utils.sanitization import TEXT_MAX_LENGTH


class _ContactFields(BaseModel):
    @field_validator("email", check_fields=False)
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone", check_fields=False)
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class PublicContactCreate(_ContactFields):
    name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    branchId: int
    notes: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)


class ContactCreate(PublicContactCreate):
    ownerArtistId: Optional[int] = None


class ContactUpdate(_ContactFields):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    branchId: Optional[int] = None
    ownerArtistId: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v is None:
            return v
        v = v.upper()
        if v not in CONTACT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(CONTACT_STATUSES)}")
        return v


class ContactResponse(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    branchId: int
    branchName: Optional[str] = None
    ownerArtistId: Optional[int] = None
    ownerArtistName: Optional[str] = None
    notes: Optional[str] = None
    status: str
    createdAt: Optional[datetime] = None


class ContactStats(BaseModel):
    total: int
    pending: int
    contacted: int
    converted: int
    closed: int


class PhoneConflictResponse(BaseModel):
    normalizedPhone: Optional[str] = None
    userExists: bool
    contactExists: bool
    messageCode: str


def contact_to_response(c) -> ContactResponse:
    return ContactResponse(
        id=c.id,
        name=c.name,
        email=c.email,
        phone=c.phone,
        branchId=c.branch_id,
        branchName=c.branch.name if c.branch else None,
        ownerArtistId=c.owner_artist_id,
        ownerArtistName=c.owner_artist.name if c.owner_artist else None,
        notes=c.notes,
        status=c.status,
        createdAt=c.created_at,
    )
