from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...models_booking import ORDER_STATUSES
from ...utils.sanitization import TEXT_MAX_LENGTH

PAYMENT_TYPES = ("ONE_TIME", "INSTALLMENT")


class OrderCreate(BaseModel):
    branchId: int
    appointmentId: Optional[int] = None
    totalAmount: int = Field(ge=0)
    paymentType: str = "ONE_TIME"
    memberId: Optional[int] = None  # Staff only; members always order for themselves
    notes: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)

    @field_validator("paymentType")
    @classmethod
    def check_payment_type(cls, v):
        v = v.upper()
        if v not in PAYMENT_TYPES:
            raise ValueError(f"paymentType must be one of {', '.join(PAYMENT_TYPES)}")
        return v


class OrderStatusUpdate(BaseModel):
    status: str
    paymentMethod: Optional[str] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        v = v.upper()
        if v not in ORDER_STATUSES:
            raise ValueError(f"status must be one of {', '.join(ORDER_STATUSES)}")
        return v


class InstallmentGenerate(BaseModel):
    count: int


class InstallmentPaid(BaseModel):
    paidAt: Optional[datetime] = None
    note: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)


class InstallmentResponse(BaseModel):
    id: int
    orderId: int
    installmentNo: int
    dueDate: datetime
    amount: int
    status: str
    paidAt: Optional[datetime] = None
    note: Optional[str] = None


class OrderResponse(BaseModel):
    id: int
    memberId: Optional[int] = None
    memberName: Optional[str] = None
    memberEmail: Optional[str] = None
    branchId: Optional[int] = None
    branchName: Optional[str] = None
    appointmentId: Optional[int] = None
    totalAmount: int
    finalAmount: int
    paymentType: str
    status: str
    paymentMethod: Optional[str] = None
    notes: Optional[str] = None
    cartSnapshot: Optional[dict[str, Any]] = None
    installments: list[InstallmentResponse] = []
    createdAt: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    pagination: Pagination


def installment_to_response(i) -> InstallmentResponse:
    return InstallmentResponse(
        id=i.id,
        orderId=i.order_id,
        installmentNo=i.installment_no,
        dueDate=i.due_date,
        amount=i.amount,
        status=i.status,
        paidAt=i.paid_at,
        note=i.note,
    )


def order_to_response(o) -> OrderResponse:
    return OrderResponse(
        id=o.id,
        memberId=o.member_id,
        memberName=o.member.name if o.member else None,
        memberEmail=o.member.email if o.member else None,
        branchId=o.branch_id,
        branchName=o.branch.name if o.branch else None,
        appointmentId=o.appointment_id,
        totalAmount=o.total_amount,
        finalAmount=o.final_amount,
        paymentType=o.payment_type,
        status=o.status,
        paymentMethod=o.payment_method,
        notes=o.notes,
        cartSnapshot=o.cart_snapshot,
        installments=[installment_to_response(i) for i in o.installments],
        createdAt=o.created_at,
    )
