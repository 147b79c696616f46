"""
Propagation of job status changes onto the parent booking.

One way and last writer wins: whichever job under a booking changed
status most recently decides the booking status. A job entering
``pending`` has no booking counterpart and propagates nothing.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from garage_api.exceptions import NotFoundError
from garage_api.models.booking import Booking, BookingStatus
from garage_api.models.job import Job, JOB_TO_BOOKING_STATUS
from garage_api.models.outbox import OutboxKind
from garage_api.services import outbox
from garage_api.utils import as_utc, utcnow

logger = logging.getLogger(__name__)


def booking_status_for(job_status) -> Optional[BookingStatus]:
    return JOB_TO_BOOKING_STATUS.get(job_status)


def _newer_status_note(booking: Booking, changed_at: datetime) -> Optional[dict]:
    for note in booking.notes or []:
        if note.get("status") and note.get("created_at"):
            if as_utc(datetime.fromisoformat(note["created_at"])) > changed_at:
                return note
    return None


async def _ensure_current(db: AsyncSession, booking: Booking, payload: dict) -> None:
    """Refuse a change that a later job or booking status change has overtaken."""
    job = await db.get(Job, payload["job"])
    if job is not None and job.status.value != payload["job_status"]:
        raise outbox.SupersededEffect(
            f"Job {payload['job_id']} is now {job.status.value}, not {payload['job_status']}"
        )
    changed_at = as_utc(datetime.fromisoformat(payload["changed_at"]))
    note = _newer_status_note(booking, changed_at)
    if note is not None:
        raise outbox.SupersededEffect(
            f"Booking {booking.booking_id} was set to {note['status']} after this change"
        )


@outbox.handler(OutboxKind.BOOKING_SYNC)
async def apply_booking_sync(db: AsyncSession, payload: dict) -> Booking:
    """Set the booking status and append the audit note described by ``payload``."""
    booking_pk = payload.get("booking")
    booking = await db.get(Booking, booking_pk) if booking_pk is not None else None
    if booking is None:
        raise NotFoundError(f"Booking {booking_pk} not found for job {payload['job_id']}")
    await _ensure_current(db, booking, payload)

    new_status = BookingStatus(payload["booking_status"])
    booking.status = new_status
    booking.notes = [
        *(booking.notes or []),
        {
            "text": f"Status changed to {new_status.value} by job {payload['job_id']}",
            "job": payload["job_id"],
            "status": new_status.value,
            "author": payload.get("changed_by"),
            "created_at": payload["changed_at"],
        },
    ]
    await db.flush()
    logger.info("Booking %s set to %s by job %s", booking.booking_id, new_status.value, payload["job_id"])
    return booking


async def propagate_job_status(db: AsyncSession, job: Job, changed_by: Optional[int] = None):
    """
    Push the job's current status to its booking.

    Must be called after the job change is committed. Returns the outbox
    outcome, or None when the status has no booking counterpart.
    """
    target = booking_status_for(job.status)
    if target is None:
        return None

    payload = {
        "job": job.id,
        "job_id": job.job_id,
        "booking": job.booking_id,
        "job_status": job.status.value,
        "booking_status": target.value,
        "changed_by": changed_by,
        "changed_at": utcnow().isoformat(),
    }
    return await outbox.dispatch(db, OutboxKind.BOOKING_SYNC, f"job:{job.id}", payload)
