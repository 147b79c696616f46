"""
Booking routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from garage_api.database import get_db
from garage_api.models.booking import BookingStatus
from garage_api.models.user import User
from garage_api.policy import authorize
from garage_api.schemas.booking import (
    Booking as BookingSchema,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdate,
    BookingUpdate,
    InspectorAssignment,
)
from garage_api.services import bookings

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _one(booking, message: Optional[str] = None) -> BookingResponse:
    return BookingResponse(message=message, booking=BookingSchema.model_validate(booking))


@router.get("/", response_model=BookingListResponse)
async def get_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    customer_id: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("bookings.read"))
):
    """
    List bookings. Customers only see their own.
    """
    listing = await bookings.list_bookings(db, current_user, booking_status, customer_id, page, limit)
    listing["bookings"] = [BookingSchema.model_validate(b) for b in listing["bookings"]]
    return BookingListResponse(**listing)


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking: BookingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("bookings.create"))
):
    """
    Create a booking.
    """
    created = await bookings.create_booking(db, booking, current_user)
    return _one(created, "Booking created successfully")


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("bookings.read"))
):
    """Get a specific booking by ID."""
    booking = await bookings.get_booking(db, booking_id)
    bookings.ensure_can_view(booking, current_user)
    return _one(booking)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: int,
    booking_update: BookingUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("bookings.update"))
):
    """Update booking details."""
    booking = await bookings.get_booking(db, booking_id)
    booking = await bookings.update_booking(db, booking, booking_update.model_dump(exclude_unset=True))
    return _one(booking, "Booking updated successfully")


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    status_update: BookingStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("bookings.update_status"))
):
    """
    Move a booking along its status workflow.
    """
    booking = await bookings.get_booking(db, booking_id)
    booking = await bookings.change_status(db, booking, status_update.status, current_user, status_update.note)
    return _one(booking, f"Booking status updated to {booking.status.value}")


@router.patch("/{booking_id}/inspector", response_model=BookingResponse)
async def assign_inspector(
    booking_id: int,
    assignment: InspectorAssignment,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("bookings.assign_inspector"))
):
    """
    Assign an inspecting technician. A pending booking moves to inspecting.
    """
    booking = await bookings.get_booking(db, booking_id)
    booking = await bookings.assign_inspector(db, booking, assignment.inspector_id, current_user)
    return _one(booking, "Inspector assigned successfully")


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("bookings.delete"))
):
    """Delete a booking."""
    booking = await bookings.get_booking(db, booking_id)
    await bookings.delete_booking(db, booking)
    return None
