from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import require_boss
from ...database import get_db
from ..audit.service import AuditService
from .service import DEFAULT_MESSAGE, MaintenanceService, disable_ephemeral

public_router = APIRouter(prefix="/public/maintenance", tags=["Maintenance"])
admin_router = APIRouter(prefix="/admin/maintenance", tags=["Admin Maintenance"])


class MaintenanceToggle(BaseModel):
    enabled: bool
    reason: Optional[str] = None


@public_router.get("")
async def public_state(db: Session = Depends(get_db)):
    state = MaintenanceService(db).get_state()
    return {"enabled": state["enabled"], "message": state.get("reason") or DEFAULT_MESSAGE, "since": state.get("since")}


@admin_router.get("")
async def admin_state(_: Actor = Depends(require_boss), db: Session = Depends(get_db)):
    return MaintenanceService(db).get_state()


@admin_router.patch("")
async def toggle_maintenance(
    data: MaintenanceToggle,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    service = MaintenanceService(db)
    if data.enabled:
        service.enable_persistent(data.reason, actor.id)
    else:
        service.disable_persistent(actor.id)
        disable_ephemeral()
    AuditService(db).log(
        actor, "MAINTENANCE_TOGGLE", "SYSTEM", metadata={"enabled": data.enabled, "reason": data.reason}, request=request
    )
    return {"success": True}
