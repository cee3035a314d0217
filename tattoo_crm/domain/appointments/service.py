"""Appointment service - booking, conflict checks, availability and staff workflow"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...access import Actor, actor_from_user, ensure_artist_scope, ensure_branch_access
from ...models import ROLE_MEMBER, Artist, ArtistAvailability, Branch, Member, User
from ...models_booking import BLOCKING_STATUSES, Appointment, Contact, Order
from ...models_catalog import Service
from ...shared.validators import to_naive_utc
from ...utils.sanitization import sanitize_text
from ..notifications.service import NotificationService
from .availability import compute_available_slots, js_weekday

logger = logging.getLogger(__name__)

STATUS_AUDIT_ACTIONS = {
    "CANCELED": "APPOINTMENT_CANCEL",
    "NO_SHOW": "APPOINTMENT_NO_SHOW",
}


def status_audit_action(status: str) -> str:
    return STATUS_AUDIT_ACTIONS.get(status, "APPOINTMENT_UPDATE_STATUS")


class AppointmentService:
    def __init__(self, db: Session):
        self.db = db

    # ========================================================================
    # Lookups
    # ========================================================================

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def find_conflict(
        self,
        start_at: datetime,
        end_at: datetime,
        service_id: Optional[int] = None,
        artist_id: Optional[int] = None,
        exclude_id: Optional[int] = None,
    ) -> Optional[Appointment]:
        """First PENDING/CONFIRMED appointment overlapping the window on the same service or artist"""
        owners = []
        if service_id:
            owners.append(Appointment.service_id == service_id)
        if artist_id:
            owners.append(Appointment.artist_id == artist_id)
        if not owners:
            return None

        query = self.db.query(Appointment).filter(
            or_(*owners),
            Appointment.status.in_(BLOCKING_STATUSES),
            Appointment.start_at < end_at,
            Appointment.end_at > start_at,
        )
        if exclude_id:
            query = query.filter(Appointment.id != exclude_id)
        return query.first()

    def _ensure_no_conflict(self, start_at, end_at, service_id=None, artist_id=None, exclude_id=None) -> None:
        conflict = self.find_conflict(start_at, end_at, service_id, artist_id, exclude_id)
        if conflict:
            logger.info(f"⛔ Booking conflict with appointment {conflict.id}")
            raise HTTPException(status_code=400, detail="The selected time slot is already booked")

    def _ensure_refs(self, branch_id: int, artist_id: Optional[int], service_id: Optional[int]) -> None:
        if not self.db.query(Branch).filter(Branch.id == branch_id).first():
            raise HTTPException(status_code=404, detail="Branch not found")
        if artist_id and not self.db.query(User).filter(User.id == artist_id).first():
            raise HTTPException(status_code=404, detail="Artist not found")
        if service_id and not self.db.query(Service).filter(Service.id == service_id).first():
            raise HTTPException(status_code=404, detail="Service not found")

    def find_or_create_customer(
        self, name: str, email: str, phone: Optional[str], branch_id: Optional[int]
    ) -> User:
        user = self.db.query(User).filter(User.email == email).first()
        if user:
            return user
        user = User(
            email=email,
            hashed_password="",  # Set later through a password reset
            name=name,
            phone=phone,
            role=ROLE_MEMBER,
            branch_id=branch_id,
        )
        self.db.add(user)
        self.db.flush()
        self.db.add(Member(user_id=user.id))
        logger.info(f"👤 Created customer account {user.id} for public booking")
        return user

    # ========================================================================
    # Availability
    # ========================================================================

    def available_slots(
        self, branch_id: int, artist_id: Optional[int], day: date, duration_min: int, step_min: int
    ) -> list[str]:
        branch = self.db.query(Branch).filter(Branch.id == branch_id).first()
        if not branch:
            raise HTTPException(status_code=404, detail="Branch not found")

        records = []
        if artist_id:
            # A date-specific override replaces the weekly schedule for that day
            records = (
                self.db.query(ArtistAvailability)
                .filter(ArtistAvailability.artist_id == artist_id, ArtistAvailability.specific_date == day)
                .all()
            )
            if not records:
                records = (
                    self.db.query(ArtistAvailability)
                    .filter(
                        ArtistAvailability.artist_id == artist_id,
                        ArtistAvailability.specific_date.is_(None),
                        ArtistAvailability.weekday == js_weekday(day),
                    )
                    .all()
                )

        day_start = datetime(day.year, day.month, day.day)
        booked = self.db.query(Appointment).filter(
            Appointment.status.in_(BLOCKING_STATUSES),
            Appointment.start_at < day_start + timedelta(days=1),
            Appointment.end_at > day_start,
        )
        if artist_id:
            booked = booked.filter(Appointment.artist_id == artist_id)
        else:
            booked = booked.filter(Appointment.branch_id == branch_id)

        try:
            return compute_available_slots(
                branch.business_hours, day, duration_min, step_min, records, booked.all()
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    # ========================================================================
    # Booking
    # ========================================================================

    def create(
        self,
        user_id: Optional[int],
        branch_id: int,
        start_at: datetime,
        end_at: datetime,
        artist_id: Optional[int] = None,
        service_id: Optional[int] = None,
        contact_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Appointment:
        start_at, end_at = to_naive_utc(start_at), to_naive_utc(end_at)
        self._ensure_refs(branch_id, artist_id, service_id)
        self._ensure_no_conflict(start_at, end_at, service_id, artist_id)

        appointment = Appointment(
            user_id=user_id,
            branch_id=branch_id,
            artist_id=artist_id,
            service_id=service_id,
            contact_id=contact_id,
            start_at=start_at,
            end_at=end_at,
            status="PENDING",
            notes=sanitize_text(notes),
        )
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"📅 Appointment {appointment.id} booked for {start_at:%Y-%m-%d %H:%M}")
        return appointment

    def create_public(self, data) -> Appointment:
        artist = self.db.query(Artist).filter(Artist.user_id == data.artistId).first()
        if not artist or not artist.branch_id:
            raise HTTPException(status_code=404, detail="Artist or branch not found")
        customer = self.find_or_create_customer(data.name, data.email, data.phone, artist.branch_id)
        return self.create(
            customer.id,
            artist.branch_id,
            data.startAt,
            data.endAt,
            artist_id=data.artistId,
            service_id=data.serviceId,
            notes=data.notes,
        )

    def create_by_staff(self, actor: Actor, data) -> Appointment:
        ensure_branch_access(actor, data.branchId)
        artist_id = data.artistId
        if actor.is_artist:
            artist_id = artist_id or actor.id
            ensure_artist_scope(actor, artist_id)

        if data.userId and not self.db.query(User).filter(User.id == data.userId).first():
            raise HTTPException(status_code=404, detail="Member not found")
        if data.contactId and not self.db.query(Contact).filter(Contact.id == data.contactId).first():
            raise HTTPException(status_code=404, detail="Contact not found")

        return self.create(
            data.userId,
            data.branchId,
            data.startAt,
            data.endAt,
            artist_id=artist_id,
            service_id=data.serviceId,
            contact_id=data.contactId,
            notes=data.notes,
        )

    # ========================================================================
    # Reads
    # ========================================================================

    def my_appointments(self, user_id: int) -> list[Appointment]:
        return (
            self.db.query(Appointment)
            .filter(Appointment.user_id == user_id)
            .order_by(Appointment.start_at.desc())
            .all()
        )

    def get_for_user(self, appointment_id: int, user: User) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if appointment.user_id == user.id:
            return appointment
        actor = actor_from_user(user)
        if not actor:
            raise HTTPException(status_code=403, detail="Access denied")
        self.ensure_staff_access(actor, appointment)
        return appointment

    @staticmethod
    def ensure_staff_access(actor: Actor, appointment: Appointment) -> None:
        ensure_branch_access(actor, appointment.branch_id)
        ensure_artist_scope(actor, appointment.artist_id)

    def list_for_staff(
        self,
        actor: Actor,
        status: Optional[str] = None,
        artist_id: Optional[int] = None,
        branch_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> list[Appointment]:
        query = self.db.query(Appointment)
        if not actor.is_boss:
            query = query.filter(Appointment.branch_id == actor.branch_id)
        elif branch_id:
            query = query.filter(Appointment.branch_id == branch_id)
        if actor.is_artist:
            query = query.filter(Appointment.artist_id == actor.id)
        elif artist_id:
            query = query.filter(Appointment.artist_id == artist_id)

        if status:
            query = query.filter(Appointment.status == status.upper())
        if start:
            query = query.filter(Appointment.start_at >= to_naive_utc(start))
        if end:
            query = query.filter(Appointment.start_at <= to_naive_utc(end))
        if search:
            pattern = f"%{search}%"
            query = query.join(User, Appointment.user_id == User.id).filter(
                or_(User.name.ilike(pattern), User.email.ilike(pattern))
            )
        return query.order_by(Appointment.start_at.desc(), Appointment.id.desc()).all()

    # ========================================================================
    # Staff updates
    # ========================================================================

    def update_status(self, actor: Actor, appointment_id: int, status: str) -> tuple[Appointment, str]:
        """Returns the appointment and its previous status"""
        appointment = self.get_appointment(appointment_id)
        self.ensure_staff_access(actor, appointment)
        previous = appointment.status
        appointment.status = status

        if status == "COMPLETED" and appointment.service:
            has_order = self.db.query(Order).filter(Order.appointment_id == appointment.id).first()
            if not has_order:
                price = appointment.service.price
                self.db.add(
                    Order(
                        member_id=appointment.user_id,
                        branch_id=appointment.branch_id,
                        appointment_id=appointment.id,
                        total_amount=price,
                        final_amount=price,
                        payment_type="ONE_TIME",
                        status="PENDING_PAYMENT",
                        notes=f"Generated on completion of appointment {appointment.id}",
                    )
                )
                logger.info(f"🧾 Order generated for completed appointment {appointment.id}")

        self.db.commit()
        self.db.refresh(appointment)

        if status == "CONFIRMED" and previous != "CONFIRMED" and appointment.artist_id:
            self._notify_artist(appointment)
        return appointment, previous

    def _notify_artist(self, appointment: Appointment) -> None:
        customer = appointment.user.name if appointment.user else "customer"
        try:
            NotificationService(self.db).create_for_user(
                appointment.artist_id,
                title="Appointment confirmed",
                message=f"{customer} at {appointment.start_at:%Y-%m-%d %H:%M}",
                type="APPOINTMENT",
                data={"appointmentId": appointment.id},
            )
        except Exception as e:
            logger.error(f"❌ Failed to notify artist {appointment.artist_id}: {e}")
            self.db.rollback()

    def reschedule(self, actor: Actor, appointment_id: int, data) -> tuple[Appointment, dict]:
        appointment = self.get_appointment(appointment_id)
        self.ensure_staff_access(actor, appointment)

        before = {
            "startAt": appointment.start_at,
            "endAt": appointment.end_at,
            "artistId": appointment.artist_id,
            "notes": appointment.notes,
        }
        start_at = to_naive_utc(data.startAt) or appointment.start_at
        end_at = to_naive_utc(data.endAt) or appointment.end_at
        if end_at <= start_at:
            raise HTTPException(status_code=400, detail="endAt must be after startAt")
        artist_id = data.artistId or appointment.artist_id
        if actor.is_artist:
            ensure_artist_scope(actor, artist_id)

        if (start_at, end_at, artist_id) != (appointment.start_at, appointment.end_at, appointment.artist_id):
            self._ensure_no_conflict(start_at, end_at, appointment.service_id, artist_id, appointment.id)

        appointment.start_at = start_at
        appointment.end_at = end_at
        appointment.artist_id = artist_id
        if data.notes is not None:
            appointment.notes = sanitize_text(data.notes)
        self.db.commit()
        self.db.refresh(appointment)
        return appointment, before

    def delete(self, appointment_id: int) -> int:
        """Returns the branch of the deleted appointment"""
        appointment = self.get_appointment(appointment_id)
        if appointment.bill:
            raise HTTPException(status_code=409, detail="Appointment has a bill; void the bill instead")
        branch_id = appointment.branch_id
        self.db.delete(appointment)
        self.db.commit()
        logger.info(f"🗑️ Appointment {appointment_id} deleted")
        return branch_id
