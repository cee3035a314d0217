"""Order service - orders and installment plans"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...access import Actor, ensure_branch_access
from ...models import Branch, User
from ...models_booking import Appointment, Installment, Order
from ...shared.validators import to_naive_utc
from ...utils.sanitization import sanitize_text
from .installments import order_status_after_payment, plan_installments
from .schemas import OrderCreate

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, db: Session):
        self.db = db

    def get_order(self, order_id: int) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        return order

    def create(self, member_id: int, data: OrderCreate) -> Order:
        if not self.db.query(Branch).filter(Branch.id == data.branchId).first():
            raise HTTPException(status_code=404, detail="Branch not found")
        if data.appointmentId and not self.db.query(Appointment).filter(Appointment.id == data.appointmentId).first():
            raise HTTPException(status_code=404, detail="Appointment not found")
        if not self.db.query(User).filter(User.id == member_id).first():
            raise HTTPException(status_code=404, detail="Member not found")

        order = Order(
            member_id=member_id,
            branch_id=data.branchId,
            appointment_id=data.appointmentId,
            total_amount=data.totalAmount,
            final_amount=data.totalAmount,
            payment_type=data.paymentType,
            status="PENDING_PAYMENT",
            notes=sanitize_text(data.notes),
        )
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"🧾 Created order {order.id} ({order.total_amount} TWD)")
        return order

    def list_orders(
        self,
        actor: Actor,
        branch_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        query = self.db.query(Order)
        if not actor.is_boss:
            query = query.filter(Order.branch_id == actor.branch_id)
        elif branch_id:
            query = query.filter(Order.branch_id == branch_id)
        if status:
            query = query.filter(Order.status == status.upper())

        page = max(1, page)
        limit = min(max(1, limit), 100)
        total = query.count()
        orders = (
            query.order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "orders": orders,
            "pagination": {"page": page, "limit": limit, "total": total, "pages": -(-total // limit)},
        }

    def my_orders(self, user_id: int) -> list[Order]:
        return (
            self.db.query(Order)
            .filter(Order.member_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )

    def get_for_staff(self, actor: Actor, order_id: int) -> Order:
        order = self.get_order(order_id)
        ensure_branch_access(actor, order.branch_id)
        return order

    def update_status(
        self, actor: Actor, order_id: int, status: str, payment_method: Optional[str] = None
    ) -> tuple[Order, str]:
        order = self.get_for_staff(actor, order_id)
        previous = order.status
        order.status = status
        if payment_method:
            order.payment_method = payment_method.upper()
        self.db.commit()
        self.db.refresh(order)
        return order, previous

    # ========================================================================
    # Installments
    # ========================================================================

    def generate_installments(self, actor: Actor, order_id: int, count: int) -> list[Installment]:
        order = self.get_for_staff(actor, order_id)
        if order.installments:
            raise HTTPException(status_code=409, detail="Installments already exist for this order")
        try:
            plan = plan_installments(order.total_amount, count, datetime.utcnow().date())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        for planned in plan:
            self.db.add(
                Installment(
                    order_id=order.id,
                    installment_no=planned.installment_no,
                    due_date=planned.due_date,
                    amount=planned.amount,
                    status="UNPAID",
                )
            )
        order.payment_type = "INSTALLMENT"
        order.status = "INSTALLMENT_ACTIVE"
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"📆 Order {order.id} split into {count} installment(s)")
        return order.installments

    def mark_installment_paid(
        self, actor: Actor, installment_id: int, paid_at: Optional[datetime] = None, note: Optional[str] = None
    ) -> Installment:
        installment = self.db.query(Installment).filter(Installment.id == installment_id).first()
        if not installment:
            raise HTTPException(status_code=404, detail="Installment not found")
        order = installment.order
        ensure_branch_access(actor, order.branch_id)

        installment.status = "PAID"
        installment.paid_at = to_naive_utc(paid_at) or datetime.utcnow()
        if note is not None:
            installment.note = sanitize_text(note)
        self.db.flush()

        order.status = order_status_after_payment([i.status for i in order.installments])
        self.db.commit()
        self.db.refresh(installment)
        logger.info(f"💳 Installment {installment.id} paid; order {order.id} is {order.status}")
        return installment
