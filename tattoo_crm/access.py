"""Role mapping and branch scoping for staff users"""

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException

from .models import LEGACY_BOSS_ROLES, ROLE_ARTIST, ROLE_BOSS


def map_legacy_role(role: Optional[str]) -> Optional[str]:
    """Collapse stored roles onto the two staff roles; None for non-staff."""
    if not role:
        return None
    role = role.upper()
    if role == ROLE_BOSS or role in LEGACY_BOSS_ROLES:
        return ROLE_BOSS
    if role == ROLE_ARTIST:
        return ROLE_ARTIST
    return None


@dataclass
class Actor:
    id: int
    role: str
    branch_id: Optional[int]
    legacy_role: Optional[str] = None

    @property
    def is_boss(self) -> bool:
        return self.role == ROLE_BOSS

    @property
    def is_artist(self) -> bool:
        return self.role == ROLE_ARTIST


def actor_from_user(user) -> Optional[Actor]:
    role = map_legacy_role(user.role)
    if not role:
        return None
    return Actor(id=user.id, role=role, branch_id=user.branch_id, legacy_role=user.role)


def ensure_branch_access(actor: Actor, branch_id: Optional[int]) -> None:
    """Non-BOSS staff may only touch records of their own branch."""
    if actor.is_boss:
        return
    if actor.branch_id is None or branch_id != actor.branch_id:
        raise HTTPException(status_code=403, detail="Access denied for this branch")


def ensure_artist_scope(actor: Actor, artist_id: Optional[int]) -> None:
    """Artists may only touch their own records."""
    if actor.is_artist and artist_id != actor.id:
        raise HTTPException(status_code=403, detail="Access denied")
