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

# Appointment lifecycle
APPOINTMENT_STATUSES = ("PENDING", "CONFIRMED", "IN_PROGRESS", "COMPLETED", "CANCELED", "NO_SHOW")
# Statuses that hold a time slot
BLOCKING_STATUSES = ("PENDING", "CONFIRMED")

CONTACT_STATUSES = ("PENDING", "CONTACTED", "CONVERTED", "CLOSED")

ORDER_STATUSES = (
    "PENDING_PAYMENT",
    "PAID",
    "PARTIALLY_PAID",
    "PAID_COMPLETE",
    "INSTALLMENT_ACTIVE",
    "CANCELLED",
)


class Contact(Base):
    """Inbound lead from the public site or added by staff."""

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    owner_artist_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), default="PENDING", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    branch = relationship("Branch")
    owner_artist = relationship("User")
    appointments = relationship("Appointment", back_populates="contact")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    artist_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True)
    contact_id = Column(Integer, ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True)
    start_at = Column(DateTime, nullable=False, index=True)
    end_at = Column(DateTime, nullable=False)
    status = Column(String(20), default="PENDING", nullable=False, index=True)
    notes = Column(Text, nullable=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="SET NULL"), nullable=True)
    cart_snapshot = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    artist = relationship("User", foreign_keys=[artist_id])
    branch = relationship("Branch")
    service = relationship("Service")
    contact = relationship("Contact", back_populates="appointments")
    bill = relationship("AppointmentBill", back_populates="appointment", uselist=False)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True)
    total_amount = Column(Integer, nullable=False)
    final_amount = Column(Integer, nullable=False)
    payment_type = Column(String(20), default="ONE_TIME", nullable=False)  # ONE_TIME, INSTALLMENT
    status = Column(String(30), default="PENDING_PAYMENT", nullable=False)
    payment_method = Column(String(30), nullable=True)
    notes = Column(Text, nullable=True)
    cart_snapshot = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    member = relationship("User")
    branch = relationship("Branch")
    appointment = relationship("Appointment")
    installments = relationship(
        "Installment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Installment.installment_no",
    )


class Installment(Base):
    __tablename__ = "installments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    installment_no = Column(Integer, nullable=False)
    due_date = Column(DateTime, nullable=False)
    amount = Column(Integer, nullable=False)
    status = Column(String(20), default="UNPAID", nullable=False)  # UNPAID, PAID
    paid_at = Column(DateTime, nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    order = relationship("Order", back_populates="installments")
