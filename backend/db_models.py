"""
SQLAlchemy ORM models for the UniLedger payments service.

Tables:
    users           - accounts referenced by events, payments and memberships
    events          - club events, optionally ticketed in ALGO
    event_payments  - one row per verification attempt (audit trail)
    event_members   - access grants to an event's private content
"""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, Integer, BigInteger, String, Float, DateTime, Text, ForeignKey,
    UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship

from database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Registered users. Managed by the identity layer, read-only here."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(200), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Event(Base):
    """Club events. ticket_price is in ALGO; null or 0 means free."""
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    banner_url = Column(Text, nullable=True)
    event_date = Column(DateTime, nullable=True)
    location = Column(String(200), nullable=True)
    ticket_price = Column(Float, nullable=True)
    wallet_address = Column(String(58), nullable=True)  # payment destination
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    payments = relationship("EventPayment", back_populates="event", lazy="select")
    members = relationship("EventMember", back_populates="event", lazy="select")


class EventPayment(Base):
    """
    On-chain ticket payment attempts.

    transaction_id is the idempotency key: a given Algorand transaction can
    back at most one row, whatever its status.
    """
    __tablename__ = "event_payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    transaction_id = Column(String(64), unique=True, nullable=False, index=True)
    wallet_address = Column(String(58), nullable=False)  # payer-supplied, not trusted
    amount = Column(Float, nullable=False)  # ALGO
    amount_micro = Column(BigInteger, nullable=True)  # as observed on chain, null if never fetched
    status = Column(String(20), nullable=False, default="pending")  # "pending" | "verified" | "failed"
    failure_reason = Column(String(50), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    event = relationship("Event", back_populates="payments")

    __table_args__ = (
        # For intent lookups: verified payment by (event, user)
        Index("ix_event_payments_event_user_status", "event_id", "user_id", "status"),
        # For payment history ordered newest first
        Index("ix_event_payments_user_created", "user_id", "created_at"),
    )


class EventMember(Base):
    """Membership rows granting access to an event."""
    __tablename__ = "event_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="member")  # "owner" | "volunteer" | "member"
    joined_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    event = relationship("Event", back_populates="members")

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_member"),
    )
