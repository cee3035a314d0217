from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...access import Actor, actor_from_user, ensure_branch_access
from ...auth import get_actor, get_current_user
from ...database import get_db
from ...models import User
from ..audit.service import AuditService
from .schemas import (
    InstallmentGenerate,
    InstallmentPaid,
    InstallmentResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    installment_to_response,
    order_to_response,
)
from .service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])
admin_router = APIRouter(prefix="/admin/orders", tags=["Admin Orders"])


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


# ============================================================================
# MEMBER
# ============================================================================


@router.post("", response_model=OrderResponse)
async def create_order(
    data: OrderCreate,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return order_to_response(service.create(current_user.id, data))


@router.get("/my", response_model=list[OrderResponse])
async def my_orders(
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return [order_to_response(o) for o in service.my_orders(current_user.id)]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.get_order(order_id)
    if order.member_id != current_user.id:
        actor = actor_from_user(current_user)
        if not actor:
            raise HTTPException(status_code=403, detail="Access denied")
        ensure_branch_access(actor, order.branch_id)
    return order_to_response(order)


# ============================================================================
# STAFF
# ============================================================================


@admin_router.get("", response_model=OrderListResponse)
async def list_orders(
    branchId: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    result = service.list_orders(actor, branchId, status, page, limit)
    return {"orders": [order_to_response(o) for o in result["orders"]], "pagination": result["pagination"]}


@admin_router.post("", response_model=OrderResponse)
async def admin_create_order(
    data: OrderCreate,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    if not data.memberId:
        raise HTTPException(status_code=400, detail="memberId is required")
    ensure_branch_access(actor, data.branchId)
    order = OrderService(db).create(data.memberId, data)
    AuditService(db).log(actor, "ORDER_CREATE", "ORDER", order.id, request=request, branch_id=order.branch_id)
    return order_to_response(order)


@admin_router.get("/{order_id}", response_model=OrderResponse)
async def admin_get_order(
    order_id: int,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
):
    return order_to_response(service.get_for_staff(actor, order_id))


@admin_router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    order, previous = OrderService(db).update_status(actor, order_id, data.status, data.paymentMethod)
    AuditService(db).log(
        actor,
        "ORDER_UPDATE_STATUS",
        "ORDER",
        order.id,
        diff={"status": {"from": previous, "to": data.status}},
        request=request,
        branch_id=order.branch_id,
    )
    return order_to_response(order)


@admin_router.post("/{order_id}/installments", response_model=list[InstallmentResponse])
async def generate_installments(
    order_id: int,
    data: InstallmentGenerate,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    installments = OrderService(db).generate_installments(actor, order_id, data.count)
    result = [installment_to_response(i) for i in installments]
    AuditService(db).log(
        actor, "ORDER_INSTALLMENTS_GENERATE", "ORDER", order_id, metadata={"count": data.count}, request=request
    )
    return result


@admin_router.patch("/installments/{installment_id}/paid", response_model=InstallmentResponse)
async def mark_installment_paid(
    installment_id: int,
    data: InstallmentPaid,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    installment = OrderService(db).mark_installment_paid(actor, installment_id, data.paidAt, data.note)
    result = installment_to_response(installment)
    AuditService(db).log(
        actor, "INSTALLMENT_MARK_PAID", "INSTALLMENT", installment_id, metadata={"orderId": result.orderId}, request=request
    )
    return result
