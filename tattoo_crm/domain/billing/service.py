"""Billing service - appointment bills, payments, split rules and reports"""

import csv
import logging
from datetime import datetime, timedelta
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...access import Actor
from ...cache import invalidate_analytics_cache
from ...models import Member, User
from ...models_billing import AppointmentBill, AppointmentBillItem, ArtistSplitRule, Payment, PaymentAllocation
from ...models_booking import Appointment
from ...shared.validators import to_naive_utc
from ...utils.sanitization import sanitize_text
from ..members.service import MemberService
from .allocation import (
    DEFAULT_SPLIT,
    BillLine,
    BillTotals,
    Split,
    allocate_payment,
    bill_status_after_payment,
    normalize_split,
    split_for_artist_rate,
    totals_from_cart_snapshot,
    totals_from_lines,
)
from .schemas import BillUpdate, PaymentCreate, SplitRuleCreate, paid_total

logger = logging.getLogger(__name__)

REPORT_DEFAULT_DAYS = 30


class BillingService:
    def __init__(self, db: Session):
        self.db = db

    # ========================================================================
    # Access
    # ========================================================================

    def readable_appointment(self, actor: Actor, appointment_id: int) -> Appointment:
        """Non-BOSS staff are limited to their branch; artists to their own appointments"""
        appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        if not actor.is_boss and (actor.branch_id is None or appointment.branch_id != actor.branch_id):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        if actor.is_artist and appointment.artist_id and appointment.artist_id != actor.id:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return appointment

    # ========================================================================
    # Bills
    # ========================================================================

    @staticmethod
    def derive_totals(appointment: Appointment) -> BillTotals:
        totals = totals_from_cart_snapshot(appointment.cart_snapshot)
        if totals:
            return totals
        if appointment.service:
            price = appointment.service.price
            line = BillLine(appointment.service_id, appointment.service.name, price, price, None, None, 0)
            return totals_from_lines([line])
        raise HTTPException(status_code=400, detail="Appointment has no billable items (no cart snapshot or service)")

    def _ensure_bill(self, appointment: Appointment) -> AppointmentBill:
        """Create the bill on first use; an existing bill keeps manual edits"""
        bill = appointment.bill
        if bill and bill.items:
            return bill

        totals = self.derive_totals(appointment)
        if not bill:
            bill = AppointmentBill(
                appointment=appointment,
                branch_id=appointment.branch_id,
                customer_id=appointment.user_id,
                artist_id=appointment.artist_id,
                currency="TWD",
                list_total=totals.list_total,
                discount_total=totals.discount_total,
                bill_total=totals.bill_total,
                status="OPEN",
            )
            self.db.add(bill)
            self.db.flush()
            logger.info(f"🧾 Created bill {bill.id} for appointment {appointment.id}")

        for line in totals.lines:
            bill.items.append(
                AppointmentBillItem(
                    service_id=line.service_id,
                    name_snapshot=line.name,
                    base_price_snapshot=line.base_price,
                    final_price_snapshot=line.final_price,
                    variants_snapshot=line.variants,
                    notes=line.notes,
                    sort_order=line.sort_order,
                )
            )
        self.db.flush()
        return bill

    def ensure_bill(self, actor: Actor, appointment_id: int) -> AppointmentBill:
        appointment = self.readable_appointment(actor, appointment_id)
        bill = self._ensure_bill(appointment)
        self.db.commit()
        self.db.refresh(bill)
        return bill

    def get_bill(self, actor: Actor, appointment_id: int) -> AppointmentBill:
        appointment = self.readable_appointment(actor, appointment_id)
        if not appointment.bill:
            raise HTTPException(status_code=404, detail="No bill has been created for this appointment")
        return appointment.bill

    def _bill_query(
        self,
        actor: Actor,
        branch_id: Optional[int] = None,
        artist_id: Optional[int] = None,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        customer_search: Optional[str] = None,
    ):
        query = self.db.query(AppointmentBill)
        if actor.is_boss:
            if branch_id:
                query = query.filter(AppointmentBill.branch_id == branch_id)
        else:
            query = query.filter(AppointmentBill.branch_id == actor.branch_id)
        if actor.is_artist:
            query = query.filter(AppointmentBill.artist_id == actor.id)
        elif artist_id:
            query = query.filter(AppointmentBill.artist_id == artist_id)
        if status and status.lower() != "all":
            query = query.filter(AppointmentBill.status == status.upper())
        if start:
            query = query.filter(AppointmentBill.created_at >= to_naive_utc(start))
        if end:
            query = query.filter(AppointmentBill.created_at <= to_naive_utc(end))
        if customer_search and customer_search.strip():
            pattern = f"%{customer_search.strip()}%"
            query = query.join(User, AppointmentBill.customer_id == User.id).filter(
                or_(User.name.ilike(pattern), User.email.ilike(pattern), User.phone.ilike(pattern))
            )
        return query.order_by(AppointmentBill.created_at.desc(), AppointmentBill.id.desc())

    def list_bills(self, actor: Actor, **filters) -> list[AppointmentBill]:
        return self._bill_query(actor, **filters).all()

    def update_bill(self, actor: Actor, appointment_id: int, data: BillUpdate) -> tuple[AppointmentBill, dict]:
        appointment = self.readable_appointment(actor, appointment_id)
        bill = self._ensure_bill(appointment)
        before = {"discountTotal": bill.discount_total, "billTotal": bill.bill_total, "status": bill.status}

        if data.discountTotal is not None:
            bill.discount_total = data.discountTotal
            bill.bill_total = max(0, bill.list_total - data.discountTotal)
        if data.status:
            bill.status = data.status
            if data.status == "VOID":
                bill.void_reason = sanitize_text(data.voidReason) or bill.void_reason
                bill.voided_at = datetime.utcnow()
            else:
                bill.void_reason = None
                bill.voided_at = None

        self.db.commit()
        self.db.refresh(bill)
        return bill, before

    # ========================================================================
    # Payments
    # ========================================================================

    def resolve_split(self, artist_id: Optional[int], branch_id: int, at: datetime) -> Split:
        """Branch-specific rule beats a global one; the latest effective_from <= at wins"""
        if not artist_id:
            return DEFAULT_SPLIT
        rules = (
            self.db.query(ArtistSplitRule)
            .filter(
                ArtistSplitRule.artist_id == artist_id,
                ArtistSplitRule.effective_from <= at,
                or_(ArtistSplitRule.branch_id == branch_id, ArtistSplitRule.branch_id.is_(None)),
            )
            .all()
        )
        if not rules:
            return DEFAULT_SPLIT
        rule = max(rules, key=lambda r: (r.branch_id is not None, r.effective_from, r.id))
        return normalize_split(rule.artist_rate_bps, rule.shop_rate_bps)

    def _apply_stored_value(self, actor: Actor, bill: AppointmentBill, amount: int, note: Optional[str]) -> None:
        member = self.db.query(Member).filter(Member.user_id == bill.customer_id).first()
        if not member:
            raise HTTPException(status_code=400, detail="Customer has no stored value account")
        members = MemberService(self.db)
        if amount > 0:
            members.apply_stored_value(member, amount, "SPEND", actor.id, note)
        else:
            members.apply_stored_value(member, -amount, "REFUND", actor.id, note)

    def record_payment(self, actor: Actor, appointment_id: int, data: PaymentCreate) -> tuple[AppointmentBill, Payment]:
        appointment = self.readable_appointment(actor, appointment_id)
        bill = self._ensure_bill(appointment)

        amount = int(data.amount)
        if amount == 0:
            raise HTTPException(status_code=400, detail="amount must be non-zero")
        method = data.method.strip().upper()
        paid_at = to_naive_utc(data.paidAt) or datetime.utcnow()
        notes = sanitize_text(data.notes)

        if method == "STORED_VALUE":
            self._apply_stored_value(actor, bill, amount, notes)

        allocated = {"ARTIST": 0, "SHOP": 0}
        for p in bill.payments:
            for a in p.allocations:
                allocated[a.target] = allocated.get(a.target, 0) + a.amount

        split = self.resolve_split(bill.artist_id, bill.branch_id, paid_at)
        artist_amount, shop_amount = allocate_payment(
            amount, bill.bill_total, split, allocated["ARTIST"], allocated["SHOP"]
        )

        payment = Payment(
            bill_id=bill.id,
            amount=amount,
            method=method,
            paid_at=paid_at,
            recorded_by_id=actor.id,
            notes=notes,
        )
        payment.allocations = [
            PaymentAllocation(target="ARTIST", amount=artist_amount),
            PaymentAllocation(target="SHOP", amount=shop_amount),
        ]
        bill.payments.append(payment)
        self.db.flush()

        bill.status = bill_status_after_payment(bill.status, paid_total(bill), bill.bill_total)
        self.db.commit()
        self.db.refresh(bill)
        invalidate_analytics_cache()
        logger.info(
            f"💳 Payment {payment.id} on bill {bill.id}: {amount} {method} "
            f"(artist {artist_amount}, shop {shop_amount}); bill {bill.status}"
        )
        return bill, payment

    # ========================================================================
    # Split rules
    # ========================================================================

    def list_split_rules(self, artist_id: Optional[int] = None, branch_id: Optional[int] = None) -> list[ArtistSplitRule]:
        query = self.db.query(ArtistSplitRule)
        if artist_id:
            query = query.filter(ArtistSplitRule.artist_id == artist_id)
        if branch_id:
            query = query.filter(ArtistSplitRule.branch_id == branch_id)
        return query.order_by(ArtistSplitRule.artist_id, ArtistSplitRule.effective_from.desc()).all()

    def create_split_rule(self, data: SplitRuleCreate) -> ArtistSplitRule:
        if not self.db.query(User).filter(User.id == data.artistId).first():
            raise HTTPException(status_code=404, detail="Artist not found")
        split = split_for_artist_rate(data.artistRateBps)
        rule = ArtistSplitRule(
            artist_id=data.artistId,
            branch_id=data.branchId,
            artist_rate_bps=split.artist_bps,
            shop_rate_bps=split.shop_bps,
            effective_from=to_naive_utc(data.effectiveFrom) or datetime.utcnow(),
        )
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)
        return rule

    # ========================================================================
    # Reports / export
    # ========================================================================

    def reports(
        self,
        actor: Actor,
        branch_id: Optional[int] = None,
        artist_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict:
        end = to_naive_utc(end) or datetime.utcnow()
        start = to_naive_utc(start) or end - timedelta(days=REPORT_DEFAULT_DAYS)

        query = (
            self.db.query(Payment)
            .join(AppointmentBill, Payment.bill_id == AppointmentBill.id)
            .filter(Payment.paid_at >= start, Payment.paid_at <= end)
        )
        if actor.is_boss:
            if branch_id:
                query = query.filter(AppointmentBill.branch_id == branch_id)
            if artist_id:
                query = query.filter(AppointmentBill.artist_id == artist_id)
        else:
            query = query.filter(AppointmentBill.branch_id == actor.branch_id)
            if actor.is_artist:
                query = query.filter(AppointmentBill.artist_id == actor.id)

        by_method: dict[str, dict] = {}
        by_target: dict[str, dict] = {}
        by_artist: dict[int, dict] = {}
        revenue = 0
        for payment in query.all():
            revenue += payment.amount
            method = payment.method or "UNKNOWN"
            entry = by_method.setdefault(method, {"method": method, "amount": 0, "count": 0})
            entry["amount"] += payment.amount
            entry["count"] += 1

            artist_share = 0
            for a in payment.allocations:
                by_target.setdefault(a.target, {"target": a.target, "amount": 0})["amount"] += a.amount
                if a.target == "ARTIST":
                    artist_share += a.amount

            bill_artist = payment.bill.artist_id
            if bill_artist:
                by_artist.setdefault(bill_artist, {"artistId": bill_artist, "amount": 0})["amount"] += artist_share

        return {
            "range": {"start": start, "end": end},
            "revenue": revenue,
            "byPaymentMethod": sorted(by_method.values(), key=lambda x: x["amount"], reverse=True),
            "allocations": list(by_target.values()),
            "byArtist": sorted(by_artist.values(), key=lambda x: x["amount"], reverse=True),
        }

    def export_csv(self, actor: Actor, **filters) -> StreamingResponse:
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(
            [
                "Bill ID",
                "Appointment ID",
                "Branch",
                "Customer",
                "Artist",
                "List Total",
                "Discount",
                "Bill Total",
                "Paid",
                "Due",
                "Status",
                "Created At",
            ]
        )
        for bill in self.list_bills(actor, **filters):
            paid = paid_total(bill)
            writer.writerow(
                [
                    bill.id,
                    bill.appointment_id,
                    bill.branch.name if bill.branch else "",
                    bill.customer.name if bill.customer else "",
                    bill.artist.name if bill.artist else "",
                    bill.list_total,
                    bill.discount_total,
                    bill.bill_total,
                    paid,
                    bill.bill_total - paid,
                    bill.status,
                    bill.created_at.isoformat() if bill.created_at else "",
                ]
            )
        output.seek(0)
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="bills.csv"'},
        )
