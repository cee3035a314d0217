"""Notification service - in-app notifications, announcements and appointment reminders"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ROLE_ARTIST, Artist, Notification, User
from ...models_booking import Appointment

logger = logging.getLogger(__name__)

ANNOUNCEMENT_SCOPES = ("ALL_ARTISTS", "BRANCH_ARTISTS", "SINGLE_ARTIST")
REMINDER_LEAD = timedelta(hours=24)
REMINDER_LOOKAHEAD = timedelta(hours=48)
REMINDER_INTERVAL = timedelta(minutes=5)


def reminder_dedup_key(appointment_id: int) -> str:
    return f"appt-reminder-24h:{appointment_id}"


def is_reminder_due(start_at: datetime, now: datetime, interval: timedelta = REMINDER_INTERVAL) -> bool:
    """True when the appointment starts inside [now+24h, now+24h+interval)"""
    window_start = now + REMINDER_LEAD
    return window_start <= start_at < window_start + interval


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def _has_dedup_key(self, user_id: int, dedup_key: str) -> bool:
        # JSON path filters differ per backend; the candidate set per user is small
        rows = (
            self.db.query(Notification.data)
            .filter(Notification.user_id == user_id, Notification.data.isnot(None))
            .all()
        )
        return any(isinstance(data, dict) and data.get("dedupKey") == dedup_key for (data,) in rows)

    def create_for_user(
        self,
        user_id: int,
        title: str,
        message: str,
        type: str = "SYSTEM",
        data: Optional[dict] = None,
        dedup_key: Optional[str] = None,
    ) -> Optional[Notification]:
        """Create a notification; returns None when dedup_key was already delivered"""
        if dedup_key and self._has_dedup_key(user_id, dedup_key):
            logger.debug(f"⏭️ Notification {dedup_key} already sent to user {user_id}")
            return None

        payload = dict(data or {})
        if dedup_key:
            payload["dedupKey"] = dedup_key

        notification = Notification(
            user_id=user_id, title=title, message=message, type=type, data=payload or None
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def broadcast_announcement(
        self,
        title: str,
        message: str,
        scope: str,
        branch_id: Optional[int] = None,
        artist_id: Optional[int] = None,
    ) -> dict:
        if scope not in ANNOUNCEMENT_SCOPES:
            raise HTTPException(status_code=400, detail=f"scope must be one of {', '.join(ANNOUNCEMENT_SCOPES)}")

        query = self.db.query(User).filter(User.role == ROLE_ARTIST, User.is_active.is_(True))
        if scope == "BRANCH_ARTISTS":
            if not branch_id:
                raise HTTPException(status_code=400, detail="branchId is required for BRANCH_ARTISTS")
            query = query.filter(User.branch_id == branch_id)
        elif scope == "SINGLE_ARTIST":
            if not artist_id:
                raise HTTPException(status_code=400, detail="artistId is required for SINGLE_ARTIST")
            query = query.filter(User.id == artist_id)

        recipients = query.all()
        if scope == "SINGLE_ARTIST" and not recipients:
            raise HTTPException(status_code=404, detail="Artist not found")

        for user in recipients:
            self.db.add(
                Notification(
                    user_id=user.id,
                    title=title,
                    message=message,
                    type="MESSAGE",
                    data={"scope": scope},
                )
            )
        self.db.commit()
        logger.info(f"📣 Announcement '{title}' sent to {len(recipients)} artist(s) ({scope})")
        return {"sent": len(recipients)}

    def list_for_user(self, user_id: int, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.id.desc()).limit(max(1, min(limit, 200))).all()

    def unread_count(self, user_id: int) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .count()
        )

    def mark_read(self, notification_id: int, user_id: int) -> Notification:
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self, user_id: int) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self.db.commit()
        return updated

    def send_due_reminders(self, now: Optional[datetime] = None) -> int:
        """
        For every active artist, look at their next CONFIRMED appointment within 48h and
        notify when it falls in the 24h reminder window.
        """
        now = now or datetime.utcnow()
        artist_ids = [row[0] for row in self.db.query(Artist.user_id).filter(Artist.active.is_(True)).all()]
        sent = 0

        for artist_id in artist_ids:
            appointment = (
                self.db.query(Appointment)
                .filter(
                    Appointment.artist_id == artist_id,
                    Appointment.status == "CONFIRMED",
                    Appointment.start_at >= now,
                    Appointment.start_at < now + REMINDER_LOOKAHEAD,
                )
                .order_by(Appointment.start_at.asc())
                .first()
            )
            if not appointment or not is_reminder_due(appointment.start_at, now):
                continue

            customer = appointment.user.name if appointment.user else "customer"
            created = self.create_for_user(
                artist_id,
                title="Appointment in 24 hours",
                message=f"Reminder: {customer} at {appointment.start_at:%Y-%m-%d %H:%M}",
                type="APPOINTMENT",
                data={"appointmentId": appointment.id},
                dedup_key=reminder_dedup_key(appointment.id),
            )
            if created:
                sent += 1

        if sent:
            logger.info(f"⏰ Sent {sent} appointment reminder(s)")
        return sent
