"""Member repository - Database operations for members and stored value"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Branch, Member, TopupHistory, User
from ...models_billing import AppointmentBill, Payment

SORT_FIELDS = {
    "name": User.name,
    "email": User.email,
    "role": User.role,
    "branch": Branch.name,
    "totalSpent": Member.total_spent,
    "membershipLevel": Member.membership_level,
    "balance": Member.balance,
    "createdAt": Member.created_at,
}


class MemberRepository:
    """Repository for member database operations"""

    @staticmethod
    def filtered_query(
        db: Session,
        search: Optional[str] = None,
        role: Optional[str] = None,
        status: Optional[str] = None,
        branch_id: Optional[int] = None,
        membership_level: Optional[str] = None,
    ):
        """Members joined to their user; "all" means no filter for role/status/level"""
        query = db.query(Member).join(User, Member.user_id == User.id).outerjoin(Branch, User.branch_id == Branch.id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        if role and role != "all":
            query = query.filter(User.role == role)
        if status and status != "all":
            query = query.filter(User.status == status)
        if branch_id:
            query = query.filter(User.branch_id == branch_id)
        if membership_level and membership_level != "all":
            query = query.filter(Member.membership_level == membership_level)
        return query

    @staticmethod
    def apply_sort(query, sort_field: Optional[str], sort_order: Optional[str]):
        column = SORT_FIELDS.get(sort_field or "", Member.created_at)
        direction = column.asc() if sort_order == "asc" else column.desc()
        return query.order_by(direction, Member.id.desc())

    @staticmethod
    def get_member(db: Session, member_id: int) -> Optional[Member]:
        return db.query(Member).filter(Member.id == member_id).first()

    @staticmethod
    def get_by_user(db: Session, user_id: int) -> Optional[Member]:
        return db.query(Member).filter(Member.user_id == user_id).first()

    @staticmethod
    def topup_history(db: Session, member_id: int) -> list[TopupHistory]:
        return (
            db.query(TopupHistory)
            .filter(TopupHistory.member_id == member_id)
            .order_by(TopupHistory.created_at.desc(), TopupHistory.id.desc())
            .all()
        )

    @staticmethod
    def paid_totals_by_customer(db: Session) -> dict[int, int]:
        """Sum of payments on non-VOID bills, keyed by customer user id"""
        rows = (
            db.query(AppointmentBill.customer_id, func.coalesce(func.sum(Payment.amount), 0))
            .join(Payment, Payment.bill_id == AppointmentBill.id)
            .filter(AppointmentBill.status != "VOID", AppointmentBill.customer_id.isnot(None))
            .group_by(AppointmentBill.customer_id)
            .all()
        )
        return {customer_id: int(total) for customer_id, total in rows}
