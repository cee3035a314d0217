from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...models_billing import BILL_STATUSES
from ...utils.sanitization import TEXT_MAX_LENGTH


class BillUpdate(BaseModel):
    discountTotal: Optional[int] = Field(None, ge=0)
    status: Optional[str] = None
    voidReason: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v is None:
            return v
        v = v.upper()
        if v not in BILL_STATUSES:
            raise ValueError(f"status must be one of {', '.join(BILL_STATUSES)}")
        return v


class PaymentCreate(BaseModel):
    amount: int
    method: str = Field(min_length=1, max_length=30)
    paidAt: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)

    @field_validator("amount")
    @classmethod
    def check_amount(cls, v):
        if v == 0:
            raise ValueError("amount must be non-zero")
        return v


class SplitRuleCreate(BaseModel):
    artistId: int
    branchId: Optional[int] = None
    artistRateBps: int
    effectiveFrom: Optional[datetime] = None


class BillItemResponse(BaseModel):
    id: int
    serviceId: Optional[int] = None
    nameSnapshot: str
    basePriceSnapshot: int
    finalPriceSnapshot: int
    variantsSnapshot: Optional[Any] = None
    notes: Optional[str] = None
    sortOrder: int


class AllocationResponse(BaseModel):
    target: str
    amount: int


class PaymentResponse(BaseModel):
    id: int
    amount: int
    method: str
    paidAt: Optional[datetime] = None
    recordedById: Optional[int] = None
    notes: Optional[str] = None
    allocations: list[AllocationResponse] = []


class BillSummary(BaseModel):
    paidTotal: int
    dueTotal: int


class BillResponse(BaseModel):
    id: int
    appointmentId: int
    branchId: int
    branchName: Optional[str] = None
    customerId: Optional[int] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    artistId: Optional[int] = None
    artistName: Optional[str] = None
    currency: str
    listTotal: int
    discountTotal: int
    billTotal: int
    status: str
    voidReason: Optional[str] = None
    voidedAt: Optional[datetime] = None
    appointmentStartAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    items: list[BillItemResponse] = []
    payments: list[PaymentResponse] = []
    summary: BillSummary


class SplitRuleResponse(BaseModel):
    id: int
    artistId: int
    artistName: Optional[str] = None
    branchId: Optional[int] = None
    branchName: Optional[str] = None
    artistRateBps: int
    shopRateBps: int
    effectiveFrom: datetime


def paid_total(bill) -> int:
    return sum(p.amount for p in bill.payments)


def bill_to_response(bill, with_lines: bool = True) -> BillResponse:
    paid = paid_total(bill)
    return BillResponse(
        id=bill.id,
        appointmentId=bill.appointment_id,
        branchId=bill.branch_id,
        branchName=bill.branch.name if bill.branch else None,
        customerId=bill.customer_id,
        customerName=bill.customer.name if bill.customer else None,
        customerPhone=bill.customer.phone if bill.customer else None,
        artistId=bill.artist_id,
        artistName=bill.artist.name if bill.artist else None,
        currency=bill.currency,
        listTotal=bill.list_total,
        discountTotal=bill.discount_total,
        billTotal=bill.bill_total,
        status=bill.status,
        voidReason=bill.void_reason,
        voidedAt=bill.voided_at,
        appointmentStartAt=bill.appointment.start_at if bill.appointment else None,
        createdAt=bill.created_at,
        items=[
            BillItemResponse(
                id=i.id,
                serviceId=i.service_id,
                nameSnapshot=i.name_snapshot,
                basePriceSnapshot=i.base_price_snapshot,
                finalPriceSnapshot=i.final_price_snapshot,
                variantsSnapshot=i.variants_snapshot,
                notes=i.notes,
                sortOrder=i.sort_order,
            )
            for i in bill.items
        ]
        if with_lines
        else [],
        payments=[
            PaymentResponse(
                id=p.id,
                amount=p.amount,
                method=p.method,
                paidAt=p.paid_at,
                recordedById=p.recorded_by_id,
                notes=p.notes,
                allocations=[AllocationResponse(target=a.target, amount=a.amount) for a in p.allocations],
            )
            for p in sorted(bill.payments, key=lambda p: (p.paid_at or datetime.min, p.id))
        ]
        if with_lines
        else [],
        summary=BillSummary(paidTotal=paid, dueTotal=bill.bill_total - paid),
    )


def split_rule_to_response(rule) -> SplitRuleResponse:
    return SplitRuleResponse(
        id=rule.id,
        artistId=rule.artist_id,
        artistName=rule.artist.name if rule.artist else None,
        branchId=rule.branch_id,
        branchName=rule.branch.name if rule.branch else None,
        artistRateBps=rule.artist_rate_bps,
        shopRateBps=rule.shop_rate_bps,
        effectiveFrom=rule.effective_from,
    )
