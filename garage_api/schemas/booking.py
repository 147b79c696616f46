"""
Pydantic schemas for Booking.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List
from garage_api.schemas.common import REQUEST_CONFIG
from garage_api.models.booking import BookingStatus, Priority


class BookingNote(BaseModel):
    """Audit note appended to a booking."""
    text: str
    job: Optional[str] = None
    status: Optional[BookingStatus] = None
    author: Optional[int] = None
    created_at: datetime


class BookingBase(BaseModel):
    service_type: str = Field(..., min_length=1)
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    scheduled_date: Optional[datetime] = None
    estimated_cost: Optional[float] = Field(None, ge=0)
    vehicle_id: Optional[int] = None


class BookingCreate(BookingBase):
    """Staff must name the customer; customers book for themselves."""
    customer_id: Optional[int] = None

    model_config = REQUEST_CONFIG


class BookingUpdate(BaseModel):
    service_type: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    scheduled_date: Optional[datetime] = None
    estimated_cost: Optional[float] = Field(None, ge=0)
    vehicle_id: Optional[int] = None

    model_config = REQUEST_CONFIG


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    note: Optional[str] = None

    model_config = REQUEST_CONFIG


class InspectorAssignment(BaseModel):
    inspector_id: int

    model_config = REQUEST_CONFIG


class BookingSummary(BaseModel):
    id: int
    booking_id: str
    customer_id: int
    vehicle_id: Optional[int] = None
    service_type: str
    status: BookingStatus


class Booking(BookingBase):
    """Schema for booking responses."""
    id: int
    booking_id: str
    customer_id: int
    status: BookingStatus
    inspector_id: Optional[int] = None
    notes: List[BookingNote] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BookingResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    booking: Booking


class BookingListResponse(BaseModel):
    success: bool = True
    count: int
    total: int
    total_pages: int
    current_page: int
    bookings: List[Booking]
