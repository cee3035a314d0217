from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import require_boss
from ...database import get_db
from ...shared.validators import parse_datetime
from .service import AuditService

router = APIRouter(prefix="/admin/audit-logs", tags=["Audit"])


@router.get("")
async def list_audit_logs(
    action: Optional[str] = Query(None),
    entityType: Optional[str] = Query(None),
    entityId: Optional[str] = Query(None),
    actorUserId: Optional[int] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(50),
    _: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    """List audit log entries (BOSS only)"""
    try:
        start = parse_datetime(startDate)
        end = parse_datetime(endDate)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return AuditService(db).list_logs(action, entityType, entityId, actorUserId, start, end, page, limit)
