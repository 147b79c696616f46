"""
Booking model for database.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, JSON, Text, Enum as SQLEnum
import enum

from garage_api.database import Base
from garage_api.utils import utcnow


class BookingStatus(str, enum.Enum):
    """Booking status enumeration."""
    PENDING = "pending"
    INSPECTING = "inspecting"
    WORKING = "working"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class Priority(str, enum.Enum):
    """Priority shared by bookings and jobs."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Edges allowed when staff move a booking by hand. Job-driven changes
# arrive through the status synchronisation and do not consult this table.
BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.INSPECTING, BookingStatus.CANCELLED},
    BookingStatus.INSPECTING: {BookingStatus.WORKING, BookingStatus.ON_HOLD, BookingStatus.CANCELLED},
    BookingStatus.WORKING: {BookingStatus.COMPLETED, BookingStatus.ON_HOLD, BookingStatus.CANCELLED},
    BookingStatus.ON_HOLD: {BookingStatus.WORKING, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


class Booking(Base):
    """Booking database model."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(String, unique=True, nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="SET NULL"), nullable=True)
    service_type = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True)
    priority = Column(SQLEnum(Priority), default=Priority.MEDIUM, nullable=False)
    scheduled_date = Column(DateTime(timezone=True), nullable=True)
    inspector_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    estimated_cost = Column(Float, nullable=True)
    notes = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "customer_id": self.customer_id,
            "vehicle_id": self.vehicle_id,
            "service_type": self.service_type,
            "status": self.status.value,
        }
