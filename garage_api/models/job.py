"""
Job model for database.

Assigned labourers, requirements, the work log and inspection reports are
embedded JSON documents. Mutating them in place is not tracked by the ORM,
so callers always assign a fresh list/dict.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, JSON, Text, Enum as SQLEnum
import enum

from garage_api.database import Base
from garage_api.models.booking import BookingStatus, Priority
from garage_api.utils import utcnow


class JobStatus(str, enum.Enum):
    """Job status enumeration."""
    PENDING = "pending"
    WORKING = "working"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


# The only moves a technician may make on a job assigned to them.
TECHNICIAN_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.WORKING},
    JobStatus.WORKING: {JobStatus.COMPLETED, JobStatus.ON_HOLD},
    JobStatus.ON_HOLD: {JobStatus.WORKING},
}

# Booking status pushed when a job enters a status; pending has no counterpart.
JOB_TO_BOOKING_STATUS = {
    JobStatus.WORKING: BookingStatus.WORKING,
    JobStatus.COMPLETED: BookingStatus.COMPLETED,
    JobStatus.ON_HOLD: BookingStatus.ON_HOLD,
    JobStatus.CANCELLED: BookingStatus.CANCELLED,
}


def empty_requirements() -> dict:
    return {"skills": [], "tools": [], "materials": []}


def empty_inspection_report() -> dict:
    return {"pre_work": None, "post_work": None}


class Job(Base):
    """Job database model."""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(String, unique=True, nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False, default="general")
    priority = Column(SQLEnum(Priority), default=Priority.MEDIUM, nullable=False)
    status = Column(SQLEnum(JobStatus), default=JobStatus.PENDING, nullable=False, index=True)

    assigned_labourers = Column(JSON, default=list, nullable=False)
    requirements = Column(JSON, default=empty_requirements, nullable=False)
    work_log = Column(JSON, default=list, nullable=False)
    inspection_report = Column(JSON, default=empty_inspection_report, nullable=False)

    estimated_hours = Column(Float, default=0.0, nullable=False)
    actual_hours = Column(Float, default=0.0, nullable=False)
    estimated_cost = Column(Float, default=0.0, nullable=False)
    actual_cost = Column(Float, default=0.0, nullable=False)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    inspected_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def labourer_ids(self) -> list[int]:
        return [entry["labourer"] for entry in self.assigned_labourers or []]

    def is_assigned(self, user_id: int) -> bool:
        return user_id in self.labourer_ids()
