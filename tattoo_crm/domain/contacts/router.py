from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import get_actor
from ...database import get_db
from ...rate_limiter import create_rate_limiter
from ..audit.service import AuditService, build_diff
from .schemas import (
    ContactCreate,
    ContactResponse,
    ContactStats,
    ContactUpdate,
    PhoneConflictResponse,
    PublicContactCreate,
    contact_to_response,
)
from .service import CONTACT_FIELDS, ContactService

public_router = APIRouter(prefix="/public", tags=["Public Contacts"])
router = APIRouter(prefix="/contacts", tags=["Contacts"])

rate_limit_public_contact = create_rate_limiter(limit=5, window_seconds=600, key_prefix="public_contact")


def get_contact_service(db: Session = Depends(get_db)) -> ContactService:
    return ContactService(db)


# ============================================================================
# PUBLIC
# ============================================================================


@public_router.post("/contacts", response_model=ContactResponse)
async def create_public_contact(
    data: PublicContactCreate,
    _: None = Depends(rate_limit_public_contact),
    service: ContactService = Depends(get_contact_service),
):
    return contact_to_response(service.create_public(data))


@public_router.get("/phone-conflicts", response_model=PhoneConflictResponse)
async def phone_conflicts(
    phone: Optional[str] = Query(None),
    service: ContactService = Depends(get_contact_service),
):
    return service.phone_conflicts(phone)


# ============================================================================
# STAFF
# ============================================================================


@router.get("/stats", response_model=ContactStats)
async def contact_stats(actor: Actor = Depends(get_actor), service: ContactService = Depends(get_contact_service)):
    return service.stats(actor)


@router.get("", response_model=list[ContactResponse])
async def list_contacts(
    status: Optional[str] = Query(None),
    branchId: Optional[int] = Query(None),
    actor: Actor = Depends(get_actor),
    service: ContactService = Depends(get_contact_service),
):
    return [contact_to_response(c) for c in service.list_contacts(actor, status, branchId)]


@router.get("/{contact_id}", response_model=ContactResponse)
async def get_contact(
    contact_id: int,
    actor: Actor = Depends(get_actor),
    service: ContactService = Depends(get_contact_service),
):
    return contact_to_response(service.get_readable(actor, contact_id))


@router.post("", response_model=ContactResponse)
async def create_contact(
    data: ContactCreate,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    contact = ContactService(db).create(actor, data)
    AuditService(db).log(actor, "CONTACT_CREATE", "CONTACT", contact.id, request=request, branch_id=contact.branch_id)
    return contact_to_response(contact)


@router.patch("/{contact_id}", response_model=ContactResponse)
async def update_contact(
    contact_id: int,
    data: ContactUpdate,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    contact, before = ContactService(db).update(actor, contact_id, data)
    after = {field: getattr(contact, attr) for field, attr in CONTACT_FIELDS.items()}
    AuditService(db).log(
        actor,
        "CONTACT_UPDATE",
        "CONTACT",
        contact.id,
        diff=build_diff(before, after, CONTACT_FIELDS),
        request=request,
        branch_id=contact.branch_id,
    )
    return contact_to_response(contact)


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: int,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    ContactService(db).delete(actor, contact_id)
    AuditService(db).log(actor, "CONTACT_DELETE", "CONTACT", contact_id, request=request)
    return {"success": True}


@router.post("/{contact_id}/convert", response_model=ContactResponse)
async def convert_contact(
    contact_id: int,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    contact = ContactService(db).convert(actor, contact_id)
    AuditService(db).log(
        actor,
        "CONTACT_CONVERT",
        "CONTACT",
        contact.id,
        metadata={"ownerArtistId": contact.owner_artist_id},
        request=request,
        branch_id=contact.branch_id,
    )
    return contact_to_response(contact)
