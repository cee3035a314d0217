import logging
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from ...database import SessionLocal
from .service import DEFAULT_MESSAGE, MaintenanceService

logger = logging.getLogger(__name__)

# Reachable while maintenance is on; each also under an /api prefix
ALLOWED_PREFIXES = (
    "/health",
    "/public/maintenance",
    "/admin/maintenance",
    "/admin/backup/export",
    "/auth/login",
    "/auth/refresh",
    "/auth/me",
)
ALLOWED_EXACT = ("/admin/backup/restore",)


def is_allowed_path(path: str) -> bool:
    if path.startswith("/api/"):
        path = path[len("/api") :]
    if path in ALLOWED_EXACT:
        return True
    return any(path.startswith(prefix) for prefix in ALLOWED_PREFIXES)


def maintenance_response(state: dict) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={
            "maintenance": True,
            "message": state.get("reason") or DEFAULT_MESSAGE,
            "since": state.get("since"),
        },
        headers={"Cache-Control": "no-store", "Retry-After": "120"},
    )


class MaintenanceMiddleware(BaseHTTPMiddleware):
    """Answer 503 for everything outside the whitelist while maintenance is on"""

    def __init__(self, app, session_factory: Callable = SessionLocal):
        super().__init__(app)
        self.session_factory = session_factory

    def _state(self) -> dict:
        db = self.session_factory()
        try:
            return MaintenanceService(db).get_state()
        finally:
            db.close()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if is_allowed_path(path):
            return await call_next(request)

        try:
            state = self._state()
        except Exception as e:
            logger.error(f"❌ Could not read maintenance state: {e}")
            return await call_next(request)

        if state.get("enabled"):
            return maintenance_response(state)
        return await call_next(request)
