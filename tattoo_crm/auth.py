import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .access import Actor, actor_from_user
from .database import get_db
from .models import User
from .security_utils import decode_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _load_user_from_token(token: str, db: Session) -> User:
    token_parts = token.split(".")
    if len(token_parts) != 3:
        logger.warning(f"⚠️ Malformed token received: {len(token_parts)} parts")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    payload = decode_jwt_token(token, "access")
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=401, detail="Invalid token claims") from e

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️ Token for unknown user {user_id}")
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active or user.status == "INACTIVE":
        raise HTTPException(status_code=401, detail="Account is disabled")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer access token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )
    return _load_user_from_token(credentials.credentials, db)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Current user when a valid token is sent, otherwise None (guest)"""
    if not credentials:
        return None
    try:
        return _load_user_from_token(credentials.credentials, db)
    except HTTPException:
        return None


async def get_actor(current_user: User = Depends(get_current_user)) -> Actor:
    """Staff user (BOSS or ARTIST)"""
    actor = actor_from_user(current_user)
    if not actor:
        logger.warning(f"🚫 Staff endpoint denied for user {current_user.id} ({current_user.role})")
        raise HTTPException(status_code=403, detail="Staff access required")
    return actor


async def require_boss(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_boss:
        raise HTTPException(status_code=403, detail="BOSS access required")
    return actor


async def require_artist(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_artist:
        raise HTTPException(status_code=403, detail="Artist access required")
    return actor
