from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import get_actor, require_boss
from ...database import get_db
from ..audit.service import AuditService
from .schemas import (
    BillResponse,
    BillUpdate,
    PaymentCreate,
    SplitRuleCreate,
    SplitRuleResponse,
    bill_to_response,
    split_rule_to_response,
)
from .service import BillingService

router = APIRouter(prefix="/admin/billing", tags=["Admin Billing"])


def get_billing_service(db: Session = Depends(get_db)) -> BillingService:
    return BillingService(db)


def bill_filters(
    branchId: Optional[int] = Query(None),
    artistId: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    customerSearch: Optional[str] = Query(None),
) -> dict:
    return {
        "branch_id": branchId,
        "artist_id": artistId,
        "status": status,
        "start": startDate,
        "end": endDate,
        "customer_search": customerSearch,
    }


# ============================================================================
# BILLS
# ============================================================================


@router.get("/bills", response_model=list[BillResponse])
async def list_bills(
    filters: dict = Depends(bill_filters),
    actor: Actor = Depends(get_actor),
    service: BillingService = Depends(get_billing_service),
):
    return [bill_to_response(b, with_lines=False) for b in service.list_bills(actor, **filters)]


@router.get("/bills/export")
async def export_bills_csv(
    request: Request,
    filters: dict = Depends(bill_filters),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    response = BillingService(db).export_csv(actor, **filters)
    used = {k: v.isoformat() if isinstance(v, datetime) else v for k, v in filters.items() if v is not None}
    AuditService(db).log(actor, "EXPORT_BILLING_CSV", "BILL", metadata=used, request=request)
    return response


@router.get("/appointments/{appointment_id}", response_model=BillResponse)
async def get_bill(
    appointment_id: int,
    actor: Actor = Depends(get_actor),
    service: BillingService = Depends(get_billing_service),
):
    return bill_to_response(service.get_bill(actor, appointment_id))


@router.post("/appointments/{appointment_id}/ensure", response_model=BillResponse)
async def ensure_bill(
    appointment_id: int,
    actor: Actor = Depends(get_actor),
    service: BillingService = Depends(get_billing_service),
):
    return bill_to_response(service.ensure_bill(actor, appointment_id))


@router.patch("/appointments/{appointment_id}", response_model=BillResponse)
async def update_bill(
    appointment_id: int,
    data: BillUpdate,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    bill, before = BillingService(db).update_bill(actor, appointment_id, data)
    result = bill_to_response(bill)
    after = {"discountTotal": result.discountTotal, "billTotal": result.billTotal, "status": result.status}
    diff = {k: {"from": before[k], "to": after[k]} for k in before if before[k] != after[k]}
    AuditService(db).log(actor, "BILL_UPDATE", "BILL", result.id, diff=diff, request=request, branch_id=result.branchId)
    return result


@router.post("/appointments/{appointment_id}/payments", response_model=BillResponse)
async def record_payment(
    appointment_id: int,
    data: PaymentCreate,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    bill, payment = BillingService(db).record_payment(actor, appointment_id, data)
    result = bill_to_response(bill)
    AuditService(db).log(
        actor,
        "BILL_RECORD_PAYMENT",
        "BILL",
        result.id,
        metadata={"paymentId": payment.id, "amount": payment.amount, "method": payment.method},
        request=request,
        branch_id=result.branchId,
    )
    return result


# ============================================================================
# SPLIT RULES
# ============================================================================


@router.get("/split-rules", response_model=list[SplitRuleResponse])
async def list_split_rules(
    artistId: Optional[int] = Query(None),
    branchId: Optional[int] = Query(None),
    _: Actor = Depends(require_boss),
    service: BillingService = Depends(get_billing_service),
):
    return [split_rule_to_response(r) for r in service.list_split_rules(artistId, branchId)]


@router.post("/split-rules", response_model=SplitRuleResponse)
async def create_split_rule(
    data: SplitRuleCreate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    result = split_rule_to_response(BillingService(db).create_split_rule(data))
    AuditService(db).log(
        actor,
        "SPLIT_RULE_CREATE",
        "SPLIT_RULE",
        result.id,
        metadata={"artistId": result.artistId, "branchId": result.branchId, "artistRateBps": result.artistRateBps},
        request=request,
    )
    return result


# ============================================================================
# REPORTS
# ============================================================================


@router.get("/reports")
async def billing_reports(
    branchId: Optional[int] = Query(None),
    artistId: Optional[int] = Query(None),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    actor: Actor = Depends(get_actor),
    service: BillingService = Depends(get_billing_service),
):
    return service.reports(actor, branchId, artistId, startDate, endDate)
