"""
Goods request model for database.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Text, Enum as SQLEnum
import enum

from garage_api.database import Base
from garage_api.utils import utcnow


class GoodsRequestStatus(str, enum.Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class GoodsRequest(Base):
    """A claim for one inventory item on behalf of one job."""

    __tablename__ = "goods_requests"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(String, unique=True, nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True)
    requested_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True)
    quantity = Column(Float, nullable=False)
    purpose = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(SQLEnum(GoodsRequestStatus), default=GoodsRequestStatus.PENDING, nullable=False, index=True)
    fulfilled_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    fulfilled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
