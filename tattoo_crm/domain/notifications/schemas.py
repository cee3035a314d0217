from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...utils.sanitization import TEXT_MAX_LENGTH


class NotificationResponse(BaseModel):
    id: int
    title: str
    message: str
    type: str
    data: Optional[dict] = None
    isRead: bool
    createdAt: Optional[datetime] = None


class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1, max_length=TEXT_MAX_LENGTH)
    scope: str = "ALL_ARTISTS"
    branchId: Optional[int] = None
    artistId: Optional[int] = None


def to_response(n) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        title=n.title,
        message=n.message,
        type=n.type,
        data=n.data,
        isRead=n.is_read,
        createdAt=n.created_at,
    )
