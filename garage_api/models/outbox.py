"""
Outbox of secondary effects.

Goods-request fan-out and booking synchronisation run after the primary
write has committed. Each attempt is recorded here so a failure can be
inspected and retried instead of disappearing into the log.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Text, Enum as SQLEnum
import enum

from garage_api.database import Base
from garage_api.utils import utcnow


class OutboxKind(str, enum.Enum):
    GOODS_REQUEST = "goods_request"
    BOOKING_SYNC = "booking_sync"


class OutboxStatus(str, enum.Enum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


class OutboxEvent(Base):
    """Outbox event database model."""

    __tablename__ = "outbox_events"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(SQLEnum(OutboxKind), nullable=False, index=True)
    source = Column(String, nullable=False, index=True)
    payload = Column(JSON, default=dict, nullable=False)
    status = Column(SQLEnum(OutboxStatus), default=OutboxStatus.PENDING, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
