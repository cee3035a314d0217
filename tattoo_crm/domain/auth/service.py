"""Auth service - registration, login, token refresh and password changes"""

import hmac
import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import BOSS_INIT_SECRET
from ...models import ROLE_BOSS, ROLE_MEMBER, Member, User
from ...security_utils import create_token_pair, decode_jwt_token, hash_password, verify_password
from .schemas import BootstrapBossRequest, RegisterRequest

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register(self, data: RegisterRequest) -> dict:
        if self.db.query(User).filter(User.email == data.email).first():
            raise HTTPException(status_code=400, detail="Email already registered")

        user = User(
            email=data.email,
            hashed_password=hash_password(data.password),
            name=data.name,
            phone=data.phone,
            role=ROLE_MEMBER,
        )
        self.db.add(user)
        self.db.flush()
        self.db.add(Member(user_id=user.id))
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"✅ Registered member {user.email}")
        return create_token_pair(user)

    def login(self, email: str, password: str) -> dict:
        user = self.db.query(User).filter(User.email == email).first()
        if not user:
            logger.info(f"❌ Login for unknown email {email}")
            raise HTTPException(status_code=401, detail="Invalid credentials")
        if not verify_password(password, user.hashed_password):
            logger.info(f"❌ Wrong password for {email}")
            raise HTTPException(status_code=401, detail="Invalid credentials")
        if not user.is_active or user.status == "INACTIVE":
            raise HTTPException(status_code=401, detail="Account is disabled")

        user.last_login = datetime.utcnow()
        self.db.commit()
        return create_token_pair(user)

    def refresh(self, refresh_token: str) -> dict:
        payload = decode_jwt_token(refresh_token, "refresh")
        if not payload:
            raise HTTPException(status_code=401, detail="Invalid refresh token")
        user = self.db.query(User).filter(User.id == int(payload["sub"])).first()
        if not user or not user.is_active:
            raise HTTPException(status_code=401, detail="Invalid refresh token")
        return create_token_pair(user)

    def change_password(self, user: User, old_password: str, new_password: str) -> dict:
        if not verify_password(old_password, user.hashed_password):
            raise HTTPException(status_code=400, detail="Old password is incorrect")
        user.hashed_password = hash_password(new_password)
        self.db.commit()
        return {"success": True}

    def bootstrap_boss(self, data: BootstrapBossRequest) -> dict:
        """Create the first BOSS account, guarded by BOSS_INIT_SECRET"""
        if not BOSS_INIT_SECRET:
            raise HTTPException(status_code=404, detail="Not found")
        if not hmac.compare_digest(data.secret, BOSS_INIT_SECRET):
            raise HTTPException(status_code=403, detail="Invalid init secret")
        if self.db.query(User).filter(User.role == ROLE_BOSS).first():
            raise HTTPException(status_code=409, detail="A BOSS account already exists")
        if self.db.query(User).filter(User.email == data.email).first():
            raise HTTPException(status_code=400, detail="Email already registered")

        user = User(
            email=data.email,
            hashed_password=hash_password(data.password),
            name=data.name,
            role=ROLE_BOSS,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"👑 Bootstrapped BOSS account {user.email}")
        return create_token_pair(user)
