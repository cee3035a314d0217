"""Artist service - public profiles, artist backoffice and BOSS administration"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ...access import Actor
from ...models import ROLE_ARTIST, Artist, ArtistAvailability, Branch, PortfolioItem, User
from ...models_booking import Appointment
from ...security_utils import hash_password
from ...shared.validators import to_naive_utc
from ...utils.sanitization import sanitize_text
from ..notifications.service import NotificationService
from .schemas import (
    ArtistAdminUpdate,
    ArtistCreate,
    ArtistProfileUpdate,
    AvailabilityCreate,
    AvailabilityUpdate,
    PortfolioCreate,
    PortfolioUpdate,
)

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {
    "displayName": "display_name",
    "speciality": "speciality",
    "bio": "bio",
    "photoUrl": "photo_url",
    "styleTags": "style_tags",
    "branchId": "branch_id",
    "active": "active",
}


def period_bounds(period: Optional[str], now: datetime) -> tuple[datetime, datetime]:
    """[start, end) for today / week (Sunday start) / month; default is the next 30 days"""
    today = datetime(now.year, now.month, now.day)
    if period == "today":
        return today, today + timedelta(days=1)
    if period == "week":
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start, start + timedelta(days=7)
    if period == "month":
        start = today.replace(day=1)
        end = (start + timedelta(days=32)).replace(day=1)
        return start, end
    return today, today + timedelta(days=30)


class ArtistService:
    def __init__(self, db: Session):
        self.db = db

    # ========================================================================
    # Public
    # ========================================================================

    def list_artists(self, branch_id: Optional[int] = None, include_inactive: bool = False) -> list[Artist]:
        query = self.db.query(Artist)
        if not include_inactive:
            query = query.filter(Artist.active.is_(True))
        if branch_id:
            query = query.filter(Artist.branch_id == branch_id)
        return query.order_by(Artist.display_name).all()

    def get_artist(self, artist_id: int) -> Artist:
        artist = self.db.query(Artist).filter(Artist.id == artist_id).first()
        if not artist:
            raise HTTPException(status_code=404, detail="Artist not found")
        return artist

    def get_by_user(self, user_id: int) -> Artist:
        artist = self.db.query(Artist).filter(Artist.user_id == user_id).first()
        if not artist:
            raise HTTPException(status_code=404, detail="Artist profile not found")
        return artist

    def portfolio(self, artist_user_id: int) -> list[PortfolioItem]:
        return (
            self.db.query(PortfolioItem)
            .filter(PortfolioItem.artist_id == artist_user_id)
            .order_by(PortfolioItem.created_at.desc(), PortfolioItem.id.desc())
            .all()
        )

    # ========================================================================
    # Backoffice
    # ========================================================================

    def dashboard(self, actor: Actor, now: Optional[datetime] = None) -> dict:
        start, end = period_bounds("today", now or datetime.utcnow())
        today_appointments = (
            self.db.query(Appointment)
            .filter(Appointment.artist_id == actor.id, Appointment.start_at >= start, Appointment.start_at < end)
            .order_by(Appointment.start_at.asc())
            .all()
        )
        notifications = NotificationService(self.db)
        return {
            "todayAppointments": today_appointments,
            "notifications": notifications.list_for_user(actor.id, limit=3),
            "stats": {
                "todayAppointmentsCount": len(today_appointments),
                "unreadNotificationsCount": notifications.unread_count(actor.id),
            },
        }

    def my_appointments(
        self,
        actor: Actor,
        period: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Appointment]:
        if start and end:
            start, end = to_naive_utc(start), to_naive_utc(end)
        else:
            start, end = period_bounds(period, datetime.utcnow())
        return (
            self.db.query(Appointment)
            .filter(Appointment.artist_id == actor.id, Appointment.start_at >= start, Appointment.start_at < end)
            .order_by(Appointment.start_at.asc())
            .all()
        )

    def update_appointment_status(self, actor: Actor, appointment_id: int, status: str) -> tuple[Appointment, str]:
        appointment = (
            self.db.query(Appointment)
            .filter(Appointment.id == appointment_id, Appointment.artist_id == actor.id)
            .first()
        )
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found or not assigned to you")
        if status == "COMPLETED" and appointment.status == "COMPLETED":
            raise HTTPException(status_code=400, detail="Appointment is already completed")

        previous = appointment.status
        appointment.status = status
        self.db.commit()
        self.db.refresh(appointment)
        return appointment, previous

    def my_customers(self, actor: Actor) -> list[dict]:
        rows = (
            self.db.query(User, func.count(Appointment.id), func.max(Appointment.start_at))
            .join(Appointment, Appointment.user_id == User.id)
            .filter(Appointment.artist_id == actor.id)
            .group_by(User.id)
            .order_by(func.max(Appointment.start_at).desc())
            .all()
        )
        return [
            {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "phone": user.phone,
                "appointmentCount": count,
                "lastVisit": last_visit,
            }
            for user, count, last_visit in rows
        ]

    def _apply_profile(self, artist: Artist, updates: dict) -> dict:
        before = {field: getattr(artist, attr) for field, attr in PROFILE_FIELDS.items()}
        for field, value in updates.items():
            if field == "bio":
                value = sanitize_text(value)
            setattr(artist, PROFILE_FIELDS[field], value)
        return before

    def update_profile(self, actor: Actor, data: ArtistProfileUpdate) -> tuple[Artist, dict]:
        artist = self.get_by_user(actor.id)
        before = self._apply_profile(artist, data.model_dump(exclude_none=True))
        self.db.commit()
        self.db.refresh(artist)
        return artist, before

    # Portfolio

    def add_portfolio_item(self, actor: Actor, data: PortfolioCreate) -> PortfolioItem:
        item = PortfolioItem(
            artist_id=actor.id,
            title=sanitize_text(data.title),
            description=sanitize_text(data.description),
            image_url=data.imageUrl,
            tags=data.tags or [],
        )
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def _own_portfolio_item(self, actor: Actor, item_id: int) -> PortfolioItem:
        item = (
            self.db.query(PortfolioItem)
            .filter(PortfolioItem.id == item_id, PortfolioItem.artist_id == actor.id)
            .first()
        )
        if not item:
            raise HTTPException(status_code=404, detail="Portfolio item not found")
        return item

    def update_portfolio_item(self, actor: Actor, item_id: int, data: PortfolioUpdate) -> PortfolioItem:
        item = self._own_portfolio_item(actor, item_id)
        if data.title is not None:
            item.title = sanitize_text(data.title)
        if data.description is not None:
            item.description = sanitize_text(data.description)
        if data.imageUrl is not None:
            item.image_url = data.imageUrl
        if data.tags is not None:
            item.tags = data.tags
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_portfolio_item(self, actor: Actor, item_id: int) -> None:
        item = self._own_portfolio_item(actor, item_id)
        self.db.delete(item)
        self.db.commit()

    # Availability rules

    def list_availability(self, actor: Actor) -> list[ArtistAvailability]:
        return (
            self.db.query(ArtistAvailability)
            .filter(ArtistAvailability.artist_id == actor.id)
            .order_by(ArtistAvailability.specific_date, ArtistAvailability.weekday, ArtistAvailability.start_time)
            .all()
        )

    def create_availability(self, actor: Actor, data: AvailabilityCreate) -> ArtistAvailability:
        record = ArtistAvailability(
            artist_id=actor.id,
            weekday=data.weekday,
            specific_date=data.specificDate,
            start_time=data.startTime,
            end_time=data.endTime,
            is_blocked=data.isBlocked,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def _own_availability(self, actor: Actor, record_id: int) -> ArtistAvailability:
        record = (
            self.db.query(ArtistAvailability)
            .filter(ArtistAvailability.id == record_id, ArtistAvailability.artist_id == actor.id)
            .first()
        )
        if not record:
            raise HTTPException(status_code=404, detail="Availability rule not found")
        return record

    def update_availability(self, actor: Actor, record_id: int, data: AvailabilityUpdate) -> ArtistAvailability:
        record = self._own_availability(actor, record_id)
        if data.startTime is not None:
            record.start_time = data.startTime
        if data.endTime is not None:
            record.end_time = data.endTime
        if data.isBlocked is not None:
            record.is_blocked = data.isBlocked
        self.db.commit()
        self.db.refresh(record)
        return record

    def delete_availability(self, actor: Actor, record_id: int) -> None:
        record = self._own_availability(actor, record_id)
        self.db.delete(record)
        self.db.commit()

    # ========================================================================
    # BOSS administration
    # ========================================================================

    def create_artist(self, data: ArtistCreate) -> Artist:
        if self.db.query(User).filter(User.email == data.email).first():
            raise HTTPException(status_code=400, detail="Email already registered")
        if not self.db.query(Branch).filter(Branch.id == data.branchId).first():
            raise HTTPException(status_code=404, detail="Branch not found")

        user = User(
            email=data.email,
            hashed_password=hash_password(data.password),
            name=data.name,
            phone=data.phone,
            role=ROLE_ARTIST,
            branch_id=data.branchId,
        )
        self.db.add(user)
        self.db.flush()
        artist = Artist(
            user_id=user.id,
            branch_id=data.branchId,
            display_name=data.displayName or data.name,
            speciality=data.speciality,
            bio=sanitize_text(data.bio),
            photo_url=data.photoUrl,
            style_tags=data.styleTags or [],
        )
        self.db.add(artist)
        self.db.commit()
        self.db.refresh(artist)
        logger.info(f"🎨 Created artist {artist.display_name} (user {user.id})")
        return artist

    def admin_update(self, artist_id: int, data: ArtistAdminUpdate) -> tuple[Artist, dict]:
        artist = self.get_artist(artist_id)
        updates = data.model_dump(exclude_none=True)
        if "branchId" in updates:
            if not self.db.query(Branch).filter(Branch.id == updates["branchId"]).first():
                raise HTTPException(status_code=404, detail="Branch not found")
            artist.user.branch_id = updates["branchId"]
        if "active" in updates:
            artist.user.is_active = updates["active"]
        before = self._apply_profile(artist, updates)
        self.db.commit()
        self.db.refresh(artist)
        return artist, before

    def delete_artist(self, artist_id: int) -> int:
        """Remove the artist profile and its login; returns the user id"""
        artist = self.get_artist(artist_id)
        user = artist.user
        user_id = user.id
        self.db.delete(artist)
        self.db.delete(user)
        self.db.commit()
        logger.info(f"🗑️ Deleted artist {artist_id} (user {user_id})")
        return user_id
