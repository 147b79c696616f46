"""
Bookings: customer service requests that jobs are created under.
"""
import logging
import math
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from garage_api.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from garage_api.models.booking import Booking, BookingStatus, BOOKING_TRANSITIONS
from garage_api.models.user import User, UserRole, UserStatus
from garage_api.models.vehicle import Vehicle
from garage_api.policy import STAFF_ROLES
from garage_api.schemas.booking import BookingCreate
from garage_api.services.directory import get_user
from garage_api.services.sequence import next_identifier
from garage_api.utils import utcnow

logger = logging.getLogger(__name__)


async def get_booking(db: AsyncSession, booking_pk: int) -> Booking:
    booking = await db.get(Booking, booking_pk)
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


def ensure_can_view(booking: Booking, user: User) -> None:
    if user.role == UserRole.CUSTOMER and booking.customer_id != user.id:
        raise PermissionDeniedError("Access denied. Booking belongs to another customer")


def _note(text: str, user: User, status: Optional[BookingStatus] = None) -> dict:
    return {
        "text": text,
        "job": None,
        "status": status.value if status else None,
        "author": user.id,
        "created_at": utcnow().isoformat(),
    }


async def _check_vehicle(db: AsyncSession, vehicle_pk: Optional[int], customer_pk: int) -> None:
    if vehicle_pk is None:
        return
    vehicle = await db.get(Vehicle, vehicle_pk)
    if vehicle is None:
        raise NotFoundError("Vehicle not found")
    if vehicle.owner_id is not None and vehicle.owner_id != customer_pk:
        raise ValidationError("Vehicle does not belong to this customer")


async def create_booking(db: AsyncSession, data: BookingCreate, user: User) -> Booking:
    """Customers book for themselves; staff must name the customer."""
    if user.role == UserRole.CUSTOMER:
        customer = user
    else:
        if data.customer_id is None:
            raise ValidationError("customer_id is required")
        customer = await get_user(db, data.customer_id)
        if customer.role != UserRole.CUSTOMER:
            raise ValidationError("Bookings can only be made for customers")
    if customer.status != UserStatus.ACTIVE:
        raise ValidationError("Customer account is not active")

    await _check_vehicle(db, data.vehicle_id, customer.id)

    fields = data.model_dump(exclude={"customer_id"})
    booking = Booking(
        **fields,
        booking_id=await next_identifier(db, "booking"),
        customer_id=customer.id,
        status=BookingStatus.PENDING,
        notes=[],
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    logger.info("Booking %s created for %s", booking.booking_id, customer.user_id)
    return booking


async def list_bookings(
    db: AsyncSession,
    user: User,
    status: Optional[BookingStatus] = None,
    customer_pk: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    query = select(Booking)
    if user.role == UserRole.CUSTOMER:
        customer_pk = user.id
    if customer_pk is not None:
        query = query.where(Booking.customer_id == customer_pk)
    if status:
        query = query.where(Booking.status == status)

    page = max(1, page)
    limit = max(1, min(100, limit))
    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(
        query.order_by(Booking.created_at.desc(), Booking.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    bookings = list(result.scalars().all())
    return {
        "count": len(bookings),
        "total": total,
        "total_pages": math.ceil(total / limit),
        "current_page": page,
        "bookings": bookings,
    }


async def update_booking(db: AsyncSession, booking: Booking, changes: dict) -> Booking:
    if booking.status in (BookingStatus.COMPLETED, BookingStatus.CANCELLED):
        raise ValidationError(f"Cannot edit a {booking.status.value} booking")
    if "vehicle_id" in changes:
        await _check_vehicle(db, changes["vehicle_id"], booking.customer_id)
    for field, value in changes.items():
        setattr(booking, field, value)
    await db.commit()
    await db.refresh(booking)
    return booking


async def change_status(
    db: AsyncSession,
    booking: Booking,
    new_status: BookingStatus,
    user: User,
    note: Optional[str] = None,
) -> Booking:
    """Manual status change, restricted to ``BOOKING_TRANSITIONS``."""
    if new_status not in BOOKING_TRANSITIONS[booking.status]:
        raise ValidationError(
            f"Invalid status transition from {booking.status.value} to {new_status.value}"
        )
    previous = booking.status
    booking.status = new_status
    text = f"Status changed to {new_status.value}"
    if note:
        text = f"{text}: {note}"
    booking.notes = [*(booking.notes or []), _note(text, user, new_status)]
    await db.commit()
    await db.refresh(booking)
    logger.info("Booking %s: %s -> %s by %s", booking.booking_id, previous.value, new_status.value, user.user_id)
    return booking


async def assign_inspector(db: AsyncSession, booking: Booking, inspector_pk: int, user: User) -> Booking:
    """Assign an inspecting staff member and move a pending booking to inspecting."""
    inspector = await get_user(db, inspector_pk)
    if inspector.role not in STAFF_ROLES or inspector.status != UserStatus.ACTIVE:
        raise ValidationError("Inspector must be an active service advisor, manager or admin")
    if booking.status not in (BookingStatus.PENDING, BookingStatus.INSPECTING):
        raise ValidationError("Inspector can only be assigned to pending or inspecting bookings")

    booking.inspector_id = inspector.id
    notes = [*(booking.notes or [])]
    if booking.status == BookingStatus.PENDING:
        booking.status = BookingStatus.INSPECTING
        notes.append(_note(f"Status changed to inspecting: inspector {inspector.user_id} assigned",
                           user, BookingStatus.INSPECTING))
    booking.notes = notes
    await db.commit()
    await db.refresh(booking)
    return booking


async def delete_booking(db: AsyncSession, booking: Booking) -> None:
    logger.info("Booking %s deleted", booking.booking_id)
    await db.delete(booking)
    await db.commit()
