"""Contact (lead) service"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...access import Actor
from ...models import ROLE_ARTIST, Branch, User
from ...models_booking import CONTACT_STATUSES, Appointment, Contact
from ...shared.validators import validate_phone
from ...utils.sanitization import sanitize_text
from .schemas import ContactCreate, ContactUpdate, PublicContactCreate

logger = logging.getLogger(__name__)

# Fields an artist may not change on a contact they can see
ARTIST_LOCKED_FIELDS = ("branchId", "name", "email", "ownerArtistId")

CONTACT_FIELDS = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "branchId": "branch_id",
    "ownerArtistId": "owner_artist_id",
    "notes": "notes",
    "status": "status",
}


class ContactService:
    def __init__(self, db: Session):
        self.db = db

    def _ensure_branch(self, branch_id: int) -> None:
        if not self.db.query(Branch).filter(Branch.id == branch_id).first():
            raise HTTPException(status_code=404, detail="Branch not found")

    def _ensure_artist(self, user_id: int) -> None:
        owner = self.db.query(User).filter(User.id == user_id).first()
        if not owner:
            raise HTTPException(status_code=404, detail="Owner artist not found")
        if (owner.role or "").upper() != ROLE_ARTIST:
            raise HTTPException(status_code=400, detail="ownerArtistId must be an ARTIST")

    def _visible_query(self, actor: Actor):
        query = self.db.query(Contact)
        if actor.is_boss:
            return query
        with_artist_appointment = (
            self.db.query(Appointment.contact_id)
            .filter(Appointment.artist_id == actor.id, Appointment.contact_id.isnot(None))
        )
        return query.filter(
            or_(Contact.owner_artist_id == actor.id, Contact.id.in_(with_artist_appointment))
        )

    def get_readable(self, actor: Actor, contact_id: int) -> Contact:
        contact = self.db.query(Contact).filter(Contact.id == contact_id).first()
        if not contact:
            raise HTTPException(status_code=404, detail="Contact not found")
        if actor.is_boss:
            return contact
        is_owner = contact.owner_artist_id == actor.id
        has_appointment = any(a.artist_id == actor.id for a in contact.appointments)
        if not is_owner and not has_appointment:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return contact

    def create_public(self, data: PublicContactCreate) -> Contact:
        self._ensure_branch(data.branchId)
        contact = Contact(
            name=sanitize_text(data.name),
            email=data.email,
            phone=data.phone,
            branch_id=data.branchId,
            notes=sanitize_text(data.notes),
            status="PENDING",
        )
        self.db.add(contact)
        self.db.commit()
        self.db.refresh(contact)
        logger.info(f"📨 New public contact {contact.id} for branch {contact.branch_id}")
        return contact

    def create(self, actor: Actor, data: ContactCreate) -> Contact:
        if not actor.is_boss:
            raise HTTPException(status_code=403, detail="Only BOSS can create contacts")
        self._ensure_branch(data.branchId)
        if data.ownerArtistId:
            self._ensure_artist(data.ownerArtistId)

        contact = Contact(
            name=sanitize_text(data.name),
            email=data.email,
            phone=data.phone,
            branch_id=data.branchId,
            owner_artist_id=data.ownerArtistId,
            notes=sanitize_text(data.notes),
            status="PENDING",
        )
        self.db.add(contact)
        self.db.commit()
        self.db.refresh(contact)
        return contact

    def list_contacts(self, actor: Actor, status: Optional[str] = None, branch_id: Optional[int] = None) -> list[Contact]:
        query = self._visible_query(actor)
        if status:
            query = query.filter(Contact.status == status.upper())
        if branch_id:
            query = query.filter(Contact.branch_id == branch_id)
        return query.order_by(Contact.created_at.desc(), Contact.id.desc()).all()

    def update(self, actor: Actor, contact_id: int, data: ContactUpdate) -> tuple[Contact, dict]:
        contact = self.get_readable(actor, contact_id)
        updates = data.model_dump(exclude_none=True)
        if not actor.is_boss:
            for field in ARTIST_LOCKED_FIELDS:
                updates.pop(field, None)

        if "branchId" in updates:
            self._ensure_branch(updates["branchId"])
        if "ownerArtistId" in updates:
            self._ensure_artist(updates["ownerArtistId"])

        before = {field: getattr(contact, attr) for field, attr in CONTACT_FIELDS.items()}
        for field, value in updates.items():
            if field in ("name", "notes"):
                value = sanitize_text(value)
            setattr(contact, CONTACT_FIELDS[field], value)
        self.db.commit()
        self.db.refresh(contact)
        return contact, before

    def delete(self, actor: Actor, contact_id: int) -> None:
        if not actor.is_boss:
            raise HTTPException(status_code=403, detail="Only BOSS can delete contacts")
        contact = self.db.query(Contact).filter(Contact.id == contact_id).first()
        if not contact:
            raise HTTPException(status_code=404, detail="Contact not found")
        self.db.delete(contact)
        self.db.commit()

    def stats(self, actor: Actor) -> dict:
        query = self._visible_query(actor)
        counts = {status.lower(): query.filter(Contact.status == status).count() for status in CONTACT_STATUSES}
        return {"total": query.count(), **counts}

    def convert(self, actor: Actor, contact_id: int) -> Contact:
        """Mark a lead as converted; a lead can only be converted once."""
        contact = self.get_readable(actor, contact_id)
        appointments = sorted(contact.appointments, key=lambda a: (a.created_at is not None, a.created_at, a.id))
        existing = appointments[-1] if appointments else None
        if contact.status == "CONVERTED" or existing:
            raise HTTPException(
                status_code=409,
                detail={
                    "message": "Contact has already been converted to an appointment",
                    "existingAppointmentId": existing.id if existing else None,
                },
            )

        inferred_artist_id = next((a.artist_id for a in appointments if a.artist_id), None)
        if contact.owner_artist_id is None:
            contact.owner_artist_id = inferred_artist_id if actor.is_boss else actor.id
        contact.status = "CONVERTED"
        self.db.commit()
        self.db.refresh(contact)
        logger.info(f"🔁 Contact {contact.id} converted (owner={contact.owner_artist_id})")
        return contact

    def phone_conflicts(self, phone: Optional[str]) -> dict:
        """Tell the public booking form whether this phone is already known"""
        try:
            normalized = validate_phone(phone)
        except ValueError:
            normalized = None
        if not normalized:
            return {"normalizedPhone": None, "userExists": False, "contactExists": False, "messageCode": "INVALID"}

        user_exists = self.db.query(User.id).filter(User.phone == normalized).first() is not None
        contact_exists = self.db.query(Contact.id).filter(Contact.phone == normalized).first() is not None
        code = "USER_EXISTS" if user_exists else "CONTACT_EXISTS" if contact_exists else "OK"
        return {
            "normalizedPhone": normalized,
            "userExists": user_exists,
            "contactExists": contact_exists,
            "messageCode": code,
        }
