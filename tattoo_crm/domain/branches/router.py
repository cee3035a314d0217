from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import require_boss
from ...database import get_db
from ..audit.service import AuditService
from .schemas import BranchCreate, BranchResponse, BranchUpdate
from .service import BranchService

router = APIRouter(prefix="/branches", tags=["Branches"])


def get_branch_service(db: Session = Depends(get_db)) -> BranchService:
    return BranchService(db)


@router.get("", response_model=list[BranchResponse])
async def list_branches(service: BranchService = Depends(get_branch_service)):
    """Public list of active branches with record counts"""
    return service.list_branches()


@router.get("/{branch_id}", response_model=BranchResponse)
async def get_branch(branch_id: int, service: BranchService = Depends(get_branch_service)):
    return service.to_response(service.get_branch(branch_id))


@router.post("", response_model=BranchResponse)
async def create_branch(
    data: BranchCreate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    service = BranchService(db)
    branch = service.create_branch(data)
    AuditService(db).log(actor, "BRANCH_CREATE", "BRANCH", branch.id, request=request, branch_id=branch.id)
    return service.to_response(branch)


@router.patch("/{branch_id}", response_model=BranchResponse)
async def update_branch(
    branch_id: int,
    data: BranchUpdate,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    service = BranchService(db)
    branch = service.update_branch(branch_id, data)
    AuditService(db).log(
        actor,
        "BRANCH_UPDATE",
        "BRANCH",
        branch.id,
        metadata=data.model_dump(exclude_none=True),
        request=request,
        branch_id=branch.id,
    )
    return service.to_response(branch)
