"""Auth router - token issuing and profile endpoints"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ..audit.service import AuditService
from .schemas import (
    BootstrapBossRequest,
    BranchSummary,
    ChangePasswordRequest,
    LoginRequest,
    MeResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from .service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])

rate_limit_login = create_rate_limiter(limit=10, window_seconds=300, key_prefix="login")
rate_limit_register = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="register")


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post("/register", response_model=TokenResponse)
async def register(
    data: RegisterRequest,
    _: None = Depends(rate_limit_register),
    service: AuthService = Depends(get_auth_service),
):
    return service.register(data)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    _: None = Depends(rate_limit_login),
    service: AuthService = Depends(get_auth_service),
):
    return service.login(data.email, data.password)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(data: RefreshRequest, service: AuthService = Depends(get_auth_service)):
    return service.refresh(data.refreshToken)


@router.get("/me", response_model=MeResponse)
async def me(current_user: User = Depends(get_current_user)):
    branch = current_user.branch
    return MeResponse(
        id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        role=current_user.role,
        branchId=current_user.branch_id,
        branch=BranchSummary(id=branch.id, name=branch.name) if branch else None,
        phone=current_user.phone,
        createdAt=current_user.created_at,
        lastLogin=current_user.last_login,
    )


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = AuthService(db).change_password(current_user, data.oldPassword, data.newPassword)
    AuditService(db).log(
        Actor(id=current_user.id, role=current_user.role, branch_id=current_user.branch_id),
        "CHANGE_PASSWORD",
        "USER",
        current_user.id,
        request=request,
        branch_id=current_user.branch_id,
    )
    return result


@router.post("/bootstrap-boss", response_model=TokenResponse)
async def bootstrap_boss(
    data: BootstrapBossRequest,
    _: None = Depends(rate_limit_register),
    service: AuthService = Depends(get_auth_service),
):
    """Create the first BOSS account (requires BOSS_INIT_SECRET)"""
    return service.bootstrap_boss(data)
