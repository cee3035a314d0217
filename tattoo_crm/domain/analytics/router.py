from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import require_boss
from ...cache import invalidate_analytics_cache
from ...database import get_db
from ..audit.service import AuditService
from .service import AnalyticsService

router = APIRouter(prefix="/admin", tags=["Admin Analytics"])


@router.get("/analytics")
async def get_analytics(
    branchId: Optional[int] = Query(None),
    dateRange: str = Query("30d", pattern="^(7d|30d|90d|1y)$"),
    _: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).get_analytics(branchId, dateRange)


@router.post("/cache/clear")
async def clear_cache(
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    deleted = invalidate_analytics_cache()
    AuditService(db).log(actor, "CACHE_CLEAR", "CACHE", metadata={"deleted": deleted}, request=request)
    return {"success": True, "deleted": deleted}
