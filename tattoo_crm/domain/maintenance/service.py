"""
Maintenance mode state.

Two sources are combined: an in-process ephemeral flag (raised at
startup with MAINTENANCE_MODE=true) and a persisted flag stored in site
config so it survives restarts and is shared by every worker.
"""

import logging
import os
import threading
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..site_config.service import SiteConfigService

logger = logging.getLogger(__name__)

MAINTENANCE_KEY = "system.maintenance"
DEFAULT_MESSAGE = "System maintenance in progress, please try again later"

_lock = threading.Lock()
_ephemeral: dict = {"enabled": False, "reason": None, "since": None}


def _now_iso() -> str:
    return datetime.utcnow().isoformat() + "Z"


def enable_ephemeral(reason: Optional[str] = None) -> None:
    with _lock:
        _ephemeral.update(enabled=True, reason=reason, since=_now_iso())
    logger.warning(f"🚧 Maintenance enabled (ephemeral): {reason}")


def disable_ephemeral() -> None:
    with _lock:
        _ephemeral.update(enabled=False, reason=None, since=None)


def ephemeral_state() -> dict:
    with _lock:
        return dict(_ephemeral)


def enable_from_environment(environ=None) -> bool:
    """Raise the ephemeral flag when the process starts with MAINTENANCE_MODE=true.

    The flag lives outside the database, so it holds while a restore replaces
    the site config table.
    """
    environ = os.environ if environ is None else environ
    if str(environ.get("MAINTENANCE_MODE", "")).strip().lower() not in ("true", "1"):
        return False
    enable_ephemeral(environ.get("MAINTENANCE_REASON") or DEFAULT_MESSAGE)
    return True


class MaintenanceService:
    def __init__(self, db: Session):
        self.db = db

    def persisted_state(self) -> dict:
        value = SiteConfigService(self.db).get_value(MAINTENANCE_KEY)
        if not isinstance(value, dict):
            return {"enabled": False, "reason": None, "since": None}
        return {"enabled": bool(value.get("enabled")), "reason": value.get("reason"), "since": value.get("since")}

    def get_state(self) -> dict:
        """Enabled when either source is on; the ephemeral flag wins for reason/since"""
        ephemeral = ephemeral_state()
        if ephemeral["enabled"]:
            return ephemeral
        return self.persisted_state()

    def enable_persistent(self, reason: Optional[str], updated_by_id: Optional[int] = None) -> dict:
        state = {"enabled": True, "reason": reason or "System maintenance", "since": _now_iso()}
        SiteConfigService(self.db).set_value(MAINTENANCE_KEY, state, updated_by_id)
        logger.warning(f"🚧 Maintenance enabled: {state['reason']}")
        return state

    def disable_persistent(self, updated_by_id: Optional[int] = None) -> dict:
        state = {"enabled": False, "reason": None, "since": None}
        SiteConfigService(self.db).set_value(MAINTENANCE_KEY, state, updated_by_id)
        logger.info("✅ Maintenance disabled")
        return state
