from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Staff roles. Legacy admin roles are still accepted on existing accounts.
ROLE_BOSS = "BOSS"
ROLE_ARTIST = "ARTIST"
ROLE_MEMBER = "MEMBER"
ROLE_ADMIN = "ADMIN"
LEGACY_BOSS_ROLES = ("ADMIN", "SUPER_ADMIN", "BRANCH_MANAGER")


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
    # {"1": [{"start": "10:00", "end": "22:00"}]} or {"days": {"1": {"open": "10:00", "close": "22:00"}}}
    business_hours = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="branch")
    artists = relationship("Artist", back_populates="branch")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    role = Column(String(50), default=ROLE_MEMBER, nullable=False)  # BOSS, ARTIST, MEMBER
    status = Column(String(20), default="ACTIVE", nullable=False)  # ACTIVE, INACTIVE
    is_active = Column(Boolean, default=True, nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    branch = relationship("Branch", back_populates="users")
    member = relationship("Member", back_populates="user", uselist=False, foreign_keys="Member.user_id")
    artist = relationship("Artist", back_populates="user", uselist=False)


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    total_spent = Column(Integer, default=0, nullable=False)
    balance = Column(Integer, default=0, nullable=False)  # Stored value (TWD)
    membership_level = Column(String(50), nullable=True)  # Free-form label set by staff
    primary_artist_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="member", foreign_keys=[user_id])
    primary_artist = relationship("User", foreign_keys=[primary_artist_id])
    topups = relationship(
        "TopupHistory", back_populates="member", cascade="all, delete-orphan", order_by="TopupHistory.id.desc()"
    )


class TopupHistory(Base):
    __tablename__ = "topup_history"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    operator_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    amount = Column(Integer, nullable=False)  # Always positive, direction is in `type`
    type = Column(String(20), default="TOPUP", nullable=False)  # TOPUP, SPEND, REFUND
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    member = relationship("Member", back_populates="topups")
    operator = relationship("User")


class Artist(Base):
    __tablename__ = "artists"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    display_name = Column(String(255), nullable=False)
    speciality = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    photo_url = Column(String(500), nullable=True)
    style_tags = Column(JSON, default=list, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="artist")
    branch = relationship("Branch", back_populates="artists")


class ArtistAvailability(Base):
    """Weekly working window (weekday) or a one-off date override for an artist user."""

    __tablename__ = "artist_availability"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    weekday = Column(Integer, nullable=True)  # 0=Sunday .. 6=Saturday
    specific_date = Column(Date, nullable=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM, may be before start (crosses midnight)
    is_blocked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class PortfolioItem(Base):
    __tablename__ = "portfolio_items"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=False)
    tags = Column(JSON, default=list, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(30), default="SYSTEM", nullable=False)  # APPOINTMENT, MESSAGE, SYSTEM
    data = Column(JSON, nullable=True)  # May carry {"dedupKey": ...}
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    actor_role = Column(String(50), nullable=True)
    branch_id = Column(Integer, nullable=True)
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(String(100), nullable=True)
    ip = Column(String(100), nullable=True)
    user_agent = Column(String(500), nullable=True)
    diff = Column(JSON, nullable=True)
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)

    actor = relationship("User")


class SiteConfig(Base):
    __tablename__ = "site_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(JSON, nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
