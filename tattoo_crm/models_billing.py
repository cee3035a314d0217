from sqlalchemy import (
    JSON,
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

BILL_STATUSES = ("OPEN", "SETTLED", "VOID")
ALLOCATION_TARGETS = ("ARTIST", "SHOP")


class AppointmentBill(Base):
    __tablename__ = "appointment_bills"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(
        Integer, ForeignKey("appointments.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    artist_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    currency = Column(String(10), default="TWD", nullable=False)
    list_total = Column(Integer, default=0, nullable=False)
    discount_total = Column(Integer, default=0, nullable=False)
    bill_total = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default="OPEN", nullable=False, index=True)
    void_reason = Column(Text, nullable=True)
    voided_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointment = relationship("Appointment", back_populates="bill")
    branch = relationship("Branch")
    customer = relationship("User", foreign_keys=[customer_id])
    artist = relationship("User", foreign_keys=[artist_id])
    items = relationship(
        "AppointmentBillItem",
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="AppointmentBillItem.sort_order",
    )
    payments = relationship(
        "Payment", back_populates="bill", cascade="all, delete-orphan", order_by="Payment.id"
    )


class AppointmentBillItem(Base):
    __tablename__ = "appointment_bill_items"

    id = Column(Integer, primary_key=True, index=True)
    bill_id = Column(Integer, ForeignKey("appointment_bills.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    name_snapshot = Column(String(255), nullable=False)
    base_price_snapshot = Column(Integer, default=0, nullable=False)
    final_price_snapshot = Column(Integer, default=0, nullable=False)
    variants_snapshot = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)

    bill = relationship("AppointmentBill", back_populates="items")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    bill_id = Column(Integer, ForeignKey("appointment_bills.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Negative for refunds
    method = Column(String(30), nullable=False)  # CASH, CARD, TRANSFER, STORED_VALUE, ...
    paid_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
    recorded_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    bill = relationship("AppointmentBill", back_populates="payments")
    recorded_by = relationship("User")
    allocations = relationship(
        "PaymentAllocation", back_populates="payment", cascade="all, delete-orphan"
    )


class PaymentAllocation(Base):
    __tablename__ = "payment_allocations"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True)
    target = Column(String(10), nullable=False)  # ARTIST, SHOP
    amount = Column(Integer, nullable=False)

    payment = relationship("Payment", back_populates="allocations")


class ArtistSplitRule(Base):
    """Artist/shop revenue share in basis points; branch_id NULL applies to all branches."""

    __tablename__ = "artist_split_rules"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="CASCADE"), nullable=True)
    artist_rate_bps = Column(Integer, nullable=False)
    shop_rate_bps = Column(Integer, nullable=False)
    effective_from = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    artist = relationship("User")
    branch = relationship("Branch")
