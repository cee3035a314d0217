from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import get_current_user, require_boss
from ...database import get_db
from ...models import User
from ...utils.sanitization import sanitize_text
from .schemas import AnnouncementCreate, NotificationResponse, to_response
from .service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    unreadOnly: bool = Query(False),
    limit: int = Query(50),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return [to_response(n) for n in service.list_for_user(current_user.id, unreadOnly, limit)]


@router.get("/unread-count")
async def unread_count(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return {"count": service.unread_count(current_user.id)}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return to_response(service.mark_read(notification_id, current_user.id))


@router.post("/read-all")
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return {"updated": service.mark_all_read(current_user.id)}


@router.post("/announcements")
async def broadcast_announcement(
    data: AnnouncementCreate,
    _: Actor = Depends(require_boss),
    service: NotificationService = Depends(get_notification_service),
):
    """Send an announcement to artists (BOSS only)"""
    return service.broadcast_announcement(
        sanitize_text(data.title), sanitize_text(data.message), data.scope, data.branchId, data.artistId
    )
