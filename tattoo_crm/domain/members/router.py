"""Member administration and self-service endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import get_current_user, require_boss
from ...database import get_db
from ...models import User
from ..appointments.schemas import appointment_to_response
from ..audit.service import AuditService, build_diff
from ..orders.schemas import order_to_response
from .schemas import (
    AmountRequest,
    MemberCreate,
    MemberListResponse,
    MemberResponse,
    MemberUpdate,
    PasswordReset,
    PrimaryArtistUpdate,
    RoleUpdate,
    StatusUpdate,
    TopupHistoryResponse,
    member_to_response,
    topup_to_response,
)
from .service import MemberService

router = APIRouter(prefix="/members", tags=["Members"])
admin_router = APIRouter(prefix="/admin/members", tags=["Admin Members"])


def get_member_service(db: Session = Depends(get_db)) -> MemberService:
    return MemberService(db)


@router.get("/me")
async def my_membership(
    current_user: User = Depends(get_current_user),
    service: MemberService = Depends(get_member_service),
):
    """Balance, total spent, level and stored value history of the current member"""
    result = service.me(current_user)
    member = result["member"]
    return {
        "id": member.id,
        "balance": member.balance,
        "totalSpent": member.total_spent,
        "membershipLevel": member.membership_level,
        "history": [topup_to_response(t) for t in result["history"]],
    }


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.get("", response_model=MemberListResponse)
async def list_members(
    search: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    branchId: Optional[int] = Query(None),
    membershipLevel: Optional[str] = Query(None),
    sortField: Optional[str] = Query(None),
    sortOrder: Optional[str] = Query(None),
    page: int = Query(1),
    pageSize: int = Query(10),
    _: Actor = Depends(require_boss),
    service: MemberService = Depends(get_member_service),
):
    result = service.list_members(
        search, role, status, branchId, membershipLevel, sortField, sortOrder, page, pageSize
    )
    result["data"] = [member_to_response(m) for m in result["data"]]
    return result


@admin_router.get("/{member_id}")
async def get_member(
    member_id: int,
    _: Actor = Depends(require_boss),
    service: MemberService = Depends(get_member_service),
):
    detail = service.detail(member_id)
    return {
        **member_to_response(detail["member"]).model_dump(),
        "appointments": [appointment_to_response(a) for a in detail["appointments"]],
        "orders": [order_to_response(o) for o in detail["orders"]],
    }


@admin_router.post("", response_model=MemberResponse)
async def create_member(
    data: MemberCreate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    member = MemberService(db).create_member(data)
    AuditService(db).log(
        actor, "MEMBER_CREATE", "MEMBER", member.id, metadata={"email": data.email, "role": data.role}, request=request
    )
    return member_to_response(member)


@admin_router.patch("/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: int,
    data: MemberUpdate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    member, before = MemberService(db).update_member(member_id, data)
    after = data.model_dump(exclude_none=True)
    AuditService(db).log(
        actor, "MEMBER_UPDATE", "MEMBER", member_id, diff=build_diff(before, after, before.keys()), request=request
    )
    return member_to_response(member)


@admin_router.delete("/{member_id}")
async def delete_member(
    member_id: int,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    user_id = MemberService(db).delete_member(member_id)
    AuditService(db).log(actor, "MEMBER_DELETE", "MEMBER", member_id, metadata={"userId": user_id}, request=request)
    return {"success": True}


@admin_router.patch("/{member_id}/role", response_model=MemberResponse)
async def update_member_role(
    member_id: int,
    data: RoleUpdate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    member = MemberService(db).update_role(member_id, data.role)
    AuditService(db).log(actor, "MEMBER_UPDATE_ROLE", "MEMBER", member_id, metadata={"role": data.role}, request=request)
    return member_to_response(member)


@admin_router.patch("/{member_id}/status", response_model=MemberResponse)
async def update_member_status(
    member_id: int,
    data: StatusUpdate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    member = MemberService(db).update_status(member_id, data.status)
    AuditService(db).log(
        actor, "MEMBER_UPDATE_STATUS", "MEMBER", member_id, metadata={"status": data.status}, request=request
    )
    return member_to_response(member)


@admin_router.post("/{member_id}/reset-password")
async def reset_member_password(
    member_id: int,
    data: PasswordReset,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    MemberService(db).reset_password(member_id, data.password)
    AuditService(db).log(actor, "MEMBER_RESET_PASSWORD", "MEMBER", member_id, request=request)
    return {"success": True}


@admin_router.patch("/{member_id}/primary-artist", response_model=MemberResponse)
async def set_primary_artist(
    member_id: int,
    data: PrimaryArtistUpdate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    member = MemberService(db).set_primary_artist(member_id, data.artistId)
    AuditService(db).log(
        actor, "MEMBER_SET_PRIMARY_ARTIST", "MEMBER", member_id, metadata={"artistId": data.artistId}, request=request
    )
    return member_to_response(member)


# Stored value


@admin_router.post("/{member_id}/topup", response_model=MemberResponse)
async def topup_member(
    member_id: int,
    data: AmountRequest,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    member = MemberService(db).topup(member_id, data.amount, actor.id, data.note)
    AuditService(db).log(actor, "MEMBER_TOPUP", "MEMBER", member_id, metadata={"amount": data.amount}, request=request)
    return member_to_response(member)


@admin_router.post("/{member_id}/spend", response_model=MemberResponse)
async def member_spend(
    member_id: int,
    data: AmountRequest,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    member = MemberService(db).spend(member_id, data.amount, actor.id, data.note)
    AuditService(db).log(actor, "MEMBER_SPEND", "MEMBER", member_id, metadata={"amount": data.amount}, request=request)
    return member_to_response(member)


@admin_router.get("/{member_id}/topup-history", response_model=list[TopupHistoryResponse])
async def topup_history(
    member_id: int,
    _: Actor = Depends(require_boss),
    service: MemberService = Depends(get_member_service),
):
    return [topup_to_response(t) for t in service.topup_history(member_id)]
