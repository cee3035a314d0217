"""
Admin dashboard aggregates.

Revenue is counted from recorded payments by paid_at; results are cached in
Redis for five minutes per branch and date range.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...cache import ANALYTICS_PREFIX, cached
from ...models import ROLE_MEMBER, Artist, Branch, Member, User
from ...models_billing import AppointmentBill, Payment
from ...models_booking import Appointment
from ...models_catalog import Service

logger = logging.getLogger(__name__)

RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
DEFAULT_RANGE = "30d"


def range_days(date_range: Optional[str]) -> int:
    return RANGE_DAYS.get(date_range or DEFAULT_RANGE, RANGE_DAYS[DEFAULT_RANGE])


def percent_change(current: int, previous: int) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 2)


def _cache_key(self, branch_id=None, date_range=None, now=None):
    return f"{ANALYTICS_PREFIX}:{branch_id or 'all'}:{date_range or DEFAULT_RANGE}"


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def _payments(self, branch_id: Optional[int], start: datetime, end: datetime):
        query = (
            self.db.query(Payment)
            .join(AppointmentBill, Payment.bill_id == AppointmentBill.id)
            .filter(Payment.paid_at >= start, Payment.paid_at < end)
        )
        if branch_id:
            query = query.filter(AppointmentBill.branch_id == branch_id)
        return query

    def _revenue(self, branch_id: Optional[int], start: datetime, end: datetime) -> int:
        total = self._payments(branch_id, start, end).with_entities(func.coalesce(func.sum(Payment.amount), 0)).scalar()
        return int(total or 0)

    def revenue_stats(self, branch_id: Optional[int], days: int, now: datetime) -> dict:
        start = now - timedelta(days=days)
        month_start = datetime(now.year, now.month, 1)

        total = self._revenue(branch_id, start, now)
        previous = self._revenue(branch_id, start - timedelta(days=days), start)
        last_week = self._revenue(branch_id, now - timedelta(days=7), now)

        by_branch = (
            self._payments(branch_id, start, now)
            .join(Branch, AppointmentBill.branch_id == Branch.id)
            .with_entities(Branch.id, Branch.name, func.sum(Payment.amount))
            .group_by(Branch.id, Branch.name)
            .all()
        )
        by_service = (
            self._payments(branch_id, start, now)
            .join(Appointment, AppointmentBill.appointment_id == Appointment.id)
            .join(Service, Appointment.service_id == Service.id)
            .with_entities(Service.id, Service.name, func.sum(Payment.amount), func.count(Payment.id))
            .group_by(Service.id, Service.name)
            .all()
        )
        by_method = (
            self._payments(branch_id, start, now)
            .with_entities(Payment.method, func.sum(Payment.amount), func.count(Payment.id))
            .group_by(Payment.method)
            .all()
        )

        return {
            "total": total,
            "monthly": self._revenue(branch_id, month_start, now),
            "dailyAverage": round(last_week / 7),
            "trend": percent_change(total, previous),
            "byBranch": sorted(
                [{"branchId": bid, "branchName": name, "amount": int(amount or 0)} for bid, name, amount in by_branch],
                key=lambda x: x["amount"],
                reverse=True,
            ),
            "byService": sorted(
                [
                    {"serviceId": sid, "serviceName": name, "amount": int(amount or 0), "count": count}
                    for sid, name, amount, count in by_service
                ],
                key=lambda x: x["amount"],
                reverse=True,
            ),
            "byPaymentMethod": sorted(
                [{"method": method or "UNKNOWN", "amount": int(amount or 0), "count": count} for method, amount, count in by_method],
                key=lambda x: x["amount"],
                reverse=True,
            ),
        }

    def member_stats(self, branch_id: Optional[int], now: datetime) -> dict:
        members = self.db.query(Member).join(User, Member.user_id == User.id).filter(User.role == ROLE_MEMBER)
        if branch_id:
            members = members.filter(User.branch_id == branch_id)

        month_start = datetime(now.year, now.month, 1)
        active = (
            self._payments(branch_id, now - timedelta(days=30), now)
            .with_entities(func.count(func.distinct(AppointmentBill.customer_id)))
            .scalar()
        )
        by_level = (
            members.with_entities(Member.membership_level, func.count(Member.id)).group_by(Member.membership_level).all()
        )
        top_spenders = members.order_by(Member.total_spent.desc()).limit(10).all()

        return {
            "total": members.count(),
            "newThisMonth": members.filter(Member.created_at >= month_start).count(),
            "activeLast30Days": int(active or 0),
            "byLevel": [{"level": level or "NONE", "count": count} for level, count in by_level],
            "topSpenders": [
                {"memberId": m.id, "userId": m.user_id, "name": m.user.name, "totalSpent": m.total_spent}
                for m in top_spenders
            ],
            "totalBalance": int(members.with_entities(func.coalesce(func.sum(Member.balance), 0)).scalar() or 0),
        }

    def appointment_stats(self, branch_id: Optional[int], days: int, now: datetime) -> dict:
        query = self.db.query(Appointment).filter(Appointment.created_at >= now - timedelta(days=days))
        upcoming = self.db.query(Appointment).filter(
            Appointment.start_at >= now, Appointment.status.in_(("PENDING", "CONFIRMED"))
        )
        if branch_id:
            query = query.filter(Appointment.branch_id == branch_id)
            upcoming = upcoming.filter(Appointment.branch_id == branch_id)

        by_status = query.with_entities(Appointment.status, func.count(Appointment.id)).group_by(Appointment.status).all()
        return {
            "total": query.count(),
            "byStatus": {status: count for status, count in by_status},
            "upcoming": upcoming.count(),
        }

    def artist_stats(self, branch_id: Optional[int], days: int, now: datetime) -> dict:
        artists = self.db.query(Artist).filter(Artist.active.is_(True))
        if branch_id:
            artists = artists.filter(Artist.branch_id == branch_id)

        completed = (
            self.db.query(User.id, User.name, func.count(Appointment.id).label("completed"))
            .join(Appointment, Appointment.artist_id == User.id)
            .filter(Appointment.status == "COMPLETED", Appointment.start_at >= now - timedelta(days=days))
        )
        if branch_id:
            completed = completed.filter(Appointment.branch_id == branch_id)
        top = completed.group_by(User.id, User.name).order_by(func.count(Appointment.id).desc()).limit(5).all()

        return {
            "total": artists.count(),
            "topPerformers": [{"artistId": uid, "artistName": name, "completed": count} for uid, name, count in top],
        }

    @cached(_cache_key, ttl=300)
    def get_analytics(self, branch_id: Optional[int] = None, date_range: Optional[str] = None, now=None) -> dict:
        now = now or datetime.utcnow()
        days = range_days(date_range)
        logger.info(f"📊 Computing analytics for branch={branch_id or 'all'} range={date_range or DEFAULT_RANGE}")
        return {
            "dateRange": date_range or DEFAULT_RANGE,
            "generatedAt": now.isoformat(),
            "revenue": self.revenue_stats(branch_id, days, now),
            "members": self.member_stats(branch_id, now),
            "appointments": self.appointment_stats(branch_id, days, now),
            "artists": self.artist_stats(branch_id, days, now),
        }
