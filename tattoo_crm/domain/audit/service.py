"""Audit service - best-effort append-only log of staff actions"""

import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ...access import Actor
from ...models import AuditLog

logger = logging.getLogger(__name__)


def request_meta(request: Optional[Request]) -> dict[str, Optional[str]]:
    """Client ip and user agent of the current request"""
    if request is None:
        return {}
    forwarded = request.headers.get("X-Forwarded-For")
    ip = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
    return {"ip": ip, "user_agent": request.headers.get("user-agent")}


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def build_diff(before: Any, after: dict[str, Any], fields: Iterable[str]) -> dict[str, dict]:
    """{field: {"from": old, "to": new}} for every listed field whose value changed"""
    diff = {}
    for field in fields:
        if field not in after:
            continue
        old = getattr(before, field, None) if not isinstance(before, dict) else before.get(field)
        new = after[field]
        if old != new:
            diff[field] = {"from": _jsonable(old), "to": _jsonable(new)}
    return diff


class AuditService:
    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        actor: Optional[Actor],
        action: str,
        entity_type: Optional[str] = None,
        entity_id: Any = None,
        diff: Optional[dict] = None,
        metadata: Optional[dict] = None,
        request: Optional[Request] = None,
        branch_id: Optional[int] = None,
    ) -> None:
        """
        Record an audit entry. Call after the business change is committed:
        a failure here is logged and rolled back without raising.
        """
        meta = request_meta(request)
        try:
            entry = AuditLog(
                actor_user_id=actor.id if actor else None,
                actor_role=actor.role if actor else None,
                branch_id=branch_id if branch_id is not None else (actor.branch_id if actor else None),
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id is not None else None,
                ip=meta.get("ip"),
                user_agent=(meta.get("user_agent") or "")[:500] or None,
                diff=diff or None,
                meta=metadata or None,
            )
            self.db.add(entry)
            self.db.commit()
        except Exception as e:
            logger.error(f"❌ Failed to write audit log {action}: {e}")
            self.db.rollback()

    def list_logs(
        self,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        actor_user_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        limit: int = 50,
    ) -> dict:
        query = self.db.query(AuditLog)
        if action:
            query = query.filter(AuditLog.action == action)
        if entity_type:
            query = query.filter(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.filter(AuditLog.entity_id == entity_id)
        if actor_user_id:
            query = query.filter(AuditLog.actor_user_id == actor_user_id)
        if start:
            query = query.filter(AuditLog.created_at >= start)
        if end:
            query = query.filter(AuditLog.created_at <= end)

        limit = max(1, min(limit, 200))
        page = max(1, page)
        total = query.count()
        rows = query.order_by(AuditLog.id.desc()).offset((page - 1) * limit).limit(limit).all()
        return {
            "items": [
                {
                    "id": r.id,
                    "actorUserId": r.actor_user_id,
                    "actorRole": r.actor_role,
                    "branchId": r.branch_id,
                    "action": r.action,
                    "entityType": r.entity_type,
                    "entityId": r.entity_id,
                    "ip": r.ip,
                    "userAgent": r.user_agent,
                    "diff": r.diff,
                    "metadata": r.meta,
                    "createdAt": r.created_at,
                }
                for r in rows
            ],
            "total": total,
            "page": page,
            "limit": limit,
        }
