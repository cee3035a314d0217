from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, default=0, nullable=False)
    currency = Column(String(10), default="TWD", nullable=False)
    duration_min = Column(Integer, default=60, nullable=False)
    category = Column(String(100), nullable=True, index=True)
    image_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    has_variants = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    variants = relationship(
        "ServiceVariant",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="ServiceVariant.sort_order",
    )
    history = relationship("ServiceHistory", back_populates="service", cascade="all, delete-orphan")


class ServiceVariant(Base):
    __tablename__ = "service_variants"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    # size, color, position, side, design_fee, style, complexity, technique, custom
    type = Column(String(30), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price_modifier = Column(Integer, default=0, nullable=False)
    duration_modifier = Column(Integer, default=0, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_required = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # colorPriceDiff / excludeSizes / zColorPrice / sizePrices
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    service = relationship("Service", back_populates="variants")


class ServiceHistory(Base):
    __tablename__ = "service_history"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    field = Column(String(50), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    service = relationship("Service", back_populates="history")


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    session_id = Column(String(255), nullable=True, index=True)
    status = Column(String(20), default="active", nullable=False)  # active, checked_out, expired
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    items = relationship(
        "CartItem", back_populates="cart", cascade="all, delete-orphan", order_by="CartItem.id"
    )


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    selected_variants = Column(JSON, nullable=False)
    base_price = Column(Integer, nullable=False)
    final_price = Column(Integer, nullable=False)
    estimated_duration = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    reference_images = Column(JSON, default=list, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    cart = relationship("Cart", back_populates="items")
    service = relationship("Service")
