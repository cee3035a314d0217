"""Member service - member accounts, stored value and loyalty totals"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ROLE_ARTIST, Member, TopupHistory, User
from ...models_booking import Appointment, Order
from ...security_utils import hash_password
from .repository import MemberRepository
from .schemas import MemberCreate, MemberUpdate

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class MemberService:
    """Service layer for member business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MemberRepository()

    def get_member(self, member_id: int) -> Member:
        member = self.repo.get_member(self.db, member_id)
        if not member:
            raise HTTPException(status_code=404, detail="Member not found")
        return member

    def list_members(
        self,
        search: Optional[str] = None,
        role: Optional[str] = None,
        status: Optional[str] = None,
        branch_id: Optional[int] = None,
        membership_level: Optional[str] = None,
        sort_field: Optional[str] = None,
        sort_order: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> dict:
        query = self.repo.filtered_query(self.db, search, role, status, branch_id, membership_level)
        total = query.count()

        page_size = min(max(page_size or 10, 1), MAX_PAGE_SIZE)
        total_pages = max(1, -(-total // page_size))
        page = min(max(page or 1, 1), total_pages)

        members = (
            self.repo.apply_sort(query, sort_field, sort_order)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        if role == "ADMIN":
            admin_count, member_count = total, 0
        elif role == "MEMBER":
            admin_count, member_count = 0, total
        else:
            without_role = self.repo.filtered_query(self.db, search, None, status, branch_id, membership_level)
            admin_count = without_role.filter(User.role == "ADMIN").count()
            member_count = without_role.filter(User.role == "MEMBER").count()

        return {
            "data": members,
            "total": total,
            "page": page,
            "pageSize": page_size,
            "stats": {"totalMembers": total, "adminCount": admin_count, "memberCount": member_count},
        }

    def detail(self, member_id: int) -> dict:
        member = self.get_member(member_id)
        appointments = (
            self.db.query(Appointment)
            .filter(Appointment.user_id == member.user_id)
            .order_by(Appointment.start_at.desc())
            .all()
        )
        orders = (
            self.db.query(Order)
            .filter(Order.member_id == member.user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )
        return {"member": member, "appointments": appointments, "orders": orders}

    def create_member(self, data: MemberCreate) -> Member:
        if self.db.query(User).filter(User.email == data.email).first():
            raise HTTPException(status_code=400, detail="Email already registered")

        user = User(
            name=data.name,
            email=data.email,
            hashed_password=hash_password(data.password),
            phone=data.phone,
            role=data.role,
            branch_id=data.branchId,
        )
        self.db.add(user)
        self.db.flush()
        member = Member(
            user_id=user.id,
            total_spent=data.totalSpent,
            balance=data.balance,
            membership_level=data.membershipLevel,
        )
        self.db.add(member)
        self.db.commit()
        self.db.refresh(member)
        logger.info(f"✅ Created member {member.id} ({user.email})")
        return member

    def update_member(self, member_id: int, data: MemberUpdate) -> tuple[Member, dict]:
        member = self.get_member(member_id)
        user = member.user
        before = {
            "name": user.name,
            "email": user.email,
            "phone": user.phone,
            "totalSpent": member.total_spent,
            "balance": member.balance,
            "membershipLevel": member.membership_level,
        }

        if data.email and data.email != user.email:
            if self.db.query(User).filter(User.email == data.email, User.id != user.id).first():
                raise HTTPException(status_code=400, detail="Email already registered")
            user.email = data.email
        if data.name:
            user.name = data.name
        if data.phone:
            user.phone = data.phone
        if data.totalSpent is not None:
            member.total_spent = data.totalSpent
        if data.balance is not None:
            member.balance = data.balance
        if data.membershipLevel:
            member.membership_level = data.membershipLevel

        self.db.commit()
        self.db.refresh(member)
        return member, before

    def delete_member(self, member_id: int) -> int:
        """Delete the member and its user account; returns the user id"""
        member = self.get_member(member_id)
        user = member.user
        user_id = user.id
        self.db.delete(member)
        self.db.delete(user)
        self.db.commit()
        logger.info(f"🗑️ Deleted member {member_id} (user {user_id})")
        return user_id

    def update_role(self, member_id: int, role: str) -> Member:
        member = self.get_member(member_id)
        member.user.role = role
        self.db.commit()
        self.db.refresh(member)
        return member

    def update_status(self, member_id: int, status: str) -> Member:
        member = self.get_member(member_id)
        member.user.status = status
        member.user.is_active = status == "ACTIVE"
        self.db.commit()
        self.db.refresh(member)
        return member

    def reset_password(self, member_id: int, password: str) -> None:
        if not password or len(password) < 8:
            raise HTTPException(status_code=400, detail="Password must be at least 8 characters")
        member = self.get_member(member_id)
        member.user.hashed_password = hash_password(password)
        self.db.commit()

    def set_primary_artist(self, member_id: int, artist_id: Optional[int]) -> Member:
        member = self.get_member(member_id)
        if artist_id:
            artist = self.db.query(User).filter(User.id == artist_id).first()
            if not artist or (artist.role or "").upper() != ROLE_ARTIST:
                raise HTTPException(status_code=400, detail="artistId must be an ARTIST user")
        member.primary_artist_id = artist_id
        self.db.commit()
        self.db.refresh(member)
        return member

    # ========================================================================
    # Stored value
    # ========================================================================

    def apply_stored_value(
        self,
        member: Member,
        amount: int,
        type: str,
        operator_id: Optional[int],
        note: Optional[str] = None,
    ) -> None:
        """
        Move stored value without committing. `amount` is positive; TOPUP and REFUND
        credit the balance, SPEND debits it and counts toward total spent.
        """
        if amount <= 0:
            raise HTTPException(status_code=400, detail="Amount must be greater than 0")
        if type == "SPEND":
            if member.balance < amount:
                raise HTTPException(
                    status_code=400,
                    detail=f"Insufficient balance: current {member.balance}, requested {amount}",
                )
            member.balance -= amount
            member.total_spent += amount
        else:
            member.balance += amount
        self.db.add(TopupHistory(member_id=member.id, operator_id=operator_id, amount=amount, type=type, note=note))

    def topup(self, member_id: int, amount: int, operator_id: Optional[int], note: Optional[str] = None) -> Member:
        member = self.get_member(member_id)
        self.apply_stored_value(member, amount, "TOPUP", operator_id, note)
        self.db.commit()
        self.db.refresh(member)
        logger.info(f"💰 Member {member.id} topped up {amount}")
        return member

    def spend(self, member_id: int, amount: int, operator_id: Optional[int], note: Optional[str] = None) -> Member:
        member = self.get_member(member_id)
        self.apply_stored_value(member, amount, "SPEND", operator_id, note)
        self.db.commit()
        self.db.refresh(member)
        logger.info(f"💸 Member {member.id} spent {amount}")
        return member

    def topup_history(self, member_id: int) -> list[TopupHistory]:
        self.get_member(member_id)
        return self.repo.topup_history(self.db, member_id)

    def me(self, user: User) -> dict:
        member = self.repo.get_by_user(self.db, user.id)
        if not member:
            raise HTTPException(status_code=404, detail="Member profile not found")
        return {"member": member, "history": self.repo.topup_history(self.db, member.id)}

    # ========================================================================
    # Loyalty totals
    # ========================================================================

    def recompute_totals(self) -> dict:
        """Rebuild total_spent from payments on non-VOID bills"""
        totals = self.repo.paid_totals_by_customer(self.db)
        updated = 0
        for member in self.db.query(Member).all():
            total = max(0, totals.get(member.user_id, 0))
            if member.total_spent != total:
                member.total_spent = total
                updated += 1
        self.db.commit()
        logger.info(f"🔄 Recomputed member totals: {updated} member(s) changed")
        return {"customersWithPayments": len(totals), "updated": updated}
