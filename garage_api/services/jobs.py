"""
Job lifecycle: creation from a booking, technician assignment, the status
state machine, work logging and inspection reports.

Status changes are committed before they are pushed to the parent booking
(see ``status_sync``); material requirements fan out into goods requests
after the job itself is committed. Neither secondary effect can undo or
fail the job write.
"""
import logging
import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from garage_api.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from garage_api.models.booking import Booking, BookingStatus, Priority
from garage_api.models.goods_request import GoodsRequest
from garage_api.models.job import (
    Job,
    JobStatus,
    TECHNICIAN_TRANSITIONS,
    empty_inspection_report,
)
from garage_api.models.outbox import OutboxKind
from garage_api.models.user import User, UserRole
from garage_api.schemas.booking import BookingSummary
from garage_api.schemas.job import Job as JobSchema, JobCreate, InspectionCreate
from garage_api.schemas.user import UserSummary
from garage_api.services import outbox
from garage_api.services.directory import users_by_pk, verify_technicians
from garage_api.services.sequence import next_identifier
from garage_api.services.status_sync import propagate_job_status
from garage_api.utils import as_utc, utcnow

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {"created_at", "job_id", "title", "priority", "status", "estimated_hours", "actual_hours"}
PRE_WORK_TYPES = {"pre", "preWork", "pre_work"}
POST_WORK_TYPES = {"post", "postWork", "post_work"}


async def get_job(db: AsyncSession, job_pk: int) -> Job:
    job = await db.get(Job, job_pk)
    if job is None:
        raise NotFoundError("Job not found")
    return job


def ensure_assigned(job: Job, user: User) -> None:
    if not job.is_assigned(user.id):
        raise PermissionDeniedError("Access denied. Job not assigned to you")


def ensure_can_view(job: Job, user: User) -> None:
    """Technicians only see jobs assigned to them."""
    if user.role == UserRole.TECHNICIAN:
        ensure_assigned(job, user)


def _hours_between(start: datetime, end: datetime) -> float:
    return (as_utc(end) - as_utc(start)).total_seconds() / 3600.0


def _hours_by_labourer(work_log: Iterable[dict]) -> Counter:
    totals = Counter()
    for entry in work_log:
        totals[entry["labourer"]] += entry["hours_worked"]
    return totals


async def create_job(db: AsyncSession, booking_pk: int, data: JobCreate, user: User):
    """
    Create a job under an inspecting booking.

    Returns ``(job, goods_requests, goods_request_errors)``. Validation
    failures raise before anything is written; goods request failures are
    reported, not raised.
    """
    booking = await db.get(Booking, booking_pk)
    if booking is None:
        raise NotFoundError("Booking not found")
    if booking.status != BookingStatus.INSPECTING:
        raise ValidationError("Booking must be in 'inspecting' status to create jobs")

    labourer_pks = list(data.assigned_labourers)
    if data.assigned_technician is not None and data.assigned_technician not in labourer_pks:
        labourer_pks.append(data.assigned_technician)
    technicians = await verify_technicians(db, labourer_pks)

    now = utcnow()
    job = Job(
        job_id=await next_identifier(db, "job"),
        booking_id=booking.id,
        title=data.title,
        description=data.description,
        category=data.category,
        priority=data.priority,
        status=JobStatus.PENDING,
        requirements=data.requirements.model_dump(),
        assigned_labourers=[
            {"labourer": t.id, "assigned_at": now.isoformat(), "hours_worked": 0.0}
            for t in technicians
        ],
        work_log=[],
        inspection_report=empty_inspection_report(),
        estimated_hours=data.estimated_hours,
        estimated_cost=data.estimated_cost,
        notes=data.notes,
        created_by=user.id,
    )
    db.add(job)
    await db.commit()
    logger.info(
        "Job %s created for booking %s by %s with %d labourer(s)",
        job.job_id, booking.booking_id, user.user_id, len(technicians),
    )

    # A failed effect rolls the session back and expires loaded objects, so
    # everything the loop needs is read up front.
    job_pk, creator_pk = job.id, user.id
    goods_requests: list[GoodsRequest] = []
    errors: list[str] = []
    for ordinal, material in enumerate(data.requirements.materials, start=1):
        payload = {
            "job": job_pk,
            "job_title": data.title,
            "ordinal": ordinal,
            "item_id": material.item_id,
            "quantity": material.requested_quantity,
            "requested_by": creator_pk,
        }
        outcome = await outbox.dispatch(db, OutboxKind.GOODS_REQUEST, f"job:{job_pk}", payload)
        if outcome.ok:
            goods_requests.append(outcome.result)
        else:
            errors.append(f"{material.item_id}: {outcome.error}")

    await db.refresh(job)
    for goods_request in goods_requests:
        await db.refresh(goods_request)
    return job, goods_requests, errors


async def update_job_status(
    db: AsyncSession,
    job_pk: int,
    new_status: JobStatus,
    user: User,
    notes: Optional[str] = None,
) -> Job:
    """
    Move a job to ``new_status`` and push the change to its booking.

    Technicians are held to ``TECHNICIAN_TRANSITIONS`` on jobs assigned to
    them. Staff may set any status.
    """
    job = await get_job(db, job_pk)

    if user.role == UserRole.TECHNICIAN:
        ensure_assigned(job, user)
        if new_status not in TECHNICIAN_TRANSITIONS.get(job.status, set()):
            raise ValidationError(
                f"Invalid status transition from {job.status.value} to {new_status.value}"
            )

    previous = job.status
    now = utcnow()
    job.status = new_status
    if new_status == JobStatus.WORKING and job.started_at is None:
        job.started_at = now
    if new_status == JobStatus.COMPLETED and job.completed_at is None:
        job.completed_at = now
    if notes:
        job.notes = notes
    await db.commit()
    logger.info("Job %s: %s -> %s by %s", job.job_id, previous.value, new_status.value, user.user_id)

    await propagate_job_status(db, job, changed_by=user.id)
    await db.refresh(job)
    return job


async def assign_labourers(db: AsyncSession, job_pk: int, labourer_pks: list[int]) -> Job:
    """Replace the labourers on a pending job. All ids must be active technicians."""
    job = await get_job(db, job_pk)
    if job.status != JobStatus.PENDING:
        raise ValidationError("Can only assign labourers to pending jobs")

    technicians = await verify_technicians(db, labourer_pks)

    required_skills = set((job.requirements or {}).get("skills") or [])
    if required_skills and not any(required_skills & set(t.specializations or []) for t in technicians):
        raise ValidationError("None of the selected labourers have the required skills")

    logged = _hours_by_labourer(job.work_log or [])
    now = utcnow().isoformat()
    job.assigned_labourers = [
        {"labourer": t.id, "assigned_at": now, "hours_worked": logged.get(t.id, 0.0)}
        for t in technicians
    ]
    await db.commit()
    await db.refresh(job)
    logger.info("Job %s assigned to %s", job.job_id, ", ".join(t.user_id for t in technicians))
    return job


async def add_work_log(
    db: AsyncSession,
    job_pk: int,
    start_time: datetime,
    end_time: datetime,
    description: Optional[str],
    user: User,
) -> Job:
    """Record a block of technician time and roll it into the hour totals."""
    if user.role != UserRole.TECHNICIAN:
        raise PermissionDeniedError("Only technicians can add work logs")

    job = await get_job(db, job_pk)
    ensure_assigned(job, user)

    if as_utc(start_time) >= as_utc(end_time):
        raise ValidationError("End time must be after start time")

    entry = {
        "labourer": user.id,
        "start_time": as_utc(start_time).isoformat(),
        "end_time": as_utc(end_time).isoformat(),
        "hours_worked": _hours_between(start_time, end_time),
        "description": description,
        "logged_at": utcnow().isoformat(),
    }
    work_log = [*(job.work_log or []), entry]
    totals = _hours_by_labourer(work_log)

    job.work_log = work_log
    job.actual_hours = sum(e["hours_worked"] for e in work_log)
    job.assigned_labourers = [
        {**assignment, "hours_worked": totals.get(assignment["labourer"], 0.0)}
        for assignment in job.assigned_labourers
    ]
    await db.commit()
    await db.refresh(job)
    logger.info("Job %s: %.2fh logged by %s", job.job_id, entry["hours_worked"], user.user_id)
    return job


async def add_inspection_report(db: AsyncSession, job_pk: int, data: InspectionCreate, user: User) -> Job:
    job = await get_job(db, job_pk)
    now = utcnow()
    report = dict(job.inspection_report or empty_inspection_report())

    record = {
        "condition": data.condition,
        "issues": list(data.issues),
        "photos": list(data.photos),
        "inspector": user.id,
        "inspected_at": now.isoformat(),
    }

    if data.type in PRE_WORK_TYPES:
        report["pre_work"] = record
    elif data.type in POST_WORK_TYPES:
        if job.status != JobStatus.COMPLETED:
            raise ValidationError("Job must be completed before post-work inspection")
        record.update(quality_rating=data.quality_rating, approved=bool(data.approved))
        report["post_work"] = record
        if data.approved:
            job.approved_at = now
            job.inspected_by = user.id
    else:
        raise ValidationError("Invalid inspection type. Use 'pre' or 'post'")

    job.inspection_report = report
    await db.commit()
    await db.refresh(job)
    return job


async def update_job(db: AsyncSession, job_pk: int, changes: dict) -> Job:
    job = await get_job(db, job_pk)
    for field, value in changes.items():
        setattr(job, field, value)
    await db.commit()
    await db.refresh(job)
    return job


async def delete_job(db: AsyncSession, job_pk: int) -> dict:
    job = await get_job(db, job_pk)
    if job.status in (JobStatus.WORKING, JobStatus.COMPLETED):
        raise ValidationError("Cannot delete jobs that are in progress or completed")
    summary = {"id": job.id, "job_id": job.job_id, "title": job.title}
    await db.delete(job)
    await db.commit()
    logger.info("Job %s deleted", summary["job_id"])
    return summary


def _split(values: Optional[str]) -> list[str]:
    return [v.strip() for v in (values or "").split(",") if v.strip()]


async def list_jobs(
    db: AsyncSession,
    user: User,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    booking_pk: Optional[int] = None,
    assigned_to: Optional[int] = None,
    created_by: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> dict:
    """
    Filtered, paginated job listing.

    Comma separated ``status``/``priority``/``category`` select any of the
    given values. Technicians are always limited to their own jobs.
    """
    query = select(Job)
    statuses = _split(status)
    if statuses:
        query = query.where(Job.status.in_([JobStatus(s) for s in statuses if s in JobStatus._value2member_map_]))
    priorities = _split(priority)
    if priorities:
        query = query.where(Job.priority.in_([Priority(p) for p in priorities if p in Priority._value2member_map_]))
    categories = _split(category)
    if categories:
        query = query.where(Job.category.in_(categories))
    if booking_pk is not None:
        query = query.where(Job.booking_id == booking_pk)
    if created_by is not None:
        query = query.where(Job.created_by == created_by)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.where(or_(Job.job_id.ilike(pattern), Job.title.ilike(pattern), Job.description.ilike(pattern)))

    if user.role == UserRole.TECHNICIAN:
        assigned_to = user.id

    column = getattr(Job, sort_by if sort_by in SORTABLE_FIELDS else "created_at")
    order = desc(column) if sort_order == "desc" else asc(column)
    result = await db.execute(query.order_by(order, Job.id.desc()))
    jobs = list(result.scalars().all())

    # Assignment lives in an embedded list, so it is filtered here.
    if assigned_to is not None:
        jobs = [job for job in jobs if job.is_assigned(assigned_to)]

    page = max(1, page)
    limit = max(1, min(100, limit))
    total = len(jobs)
    window = jobs[(page - 1) * limit: page * limit]
    return {
        "count": len(window),
        "total": total,
        "total_pages": math.ceil(total / limit),
        "current_page": page,
        "jobs": window,
    }


async def created_job_stats(db: AsyncSession, user: User) -> dict:
    result = await db.execute(select(Job).where(Job.created_by == user.id))
    jobs = list(result.scalars().all())
    return {
        "total": len(jobs),
        "by_status": dict(Counter(job.status.value for job in jobs)),
        "by_priority": dict(Counter(job.priority.value for job in jobs)),
        "by_category": dict(Counter(job.category for job in jobs)),
        "total_assigned_labourers": sum(len(job.assigned_labourers or []) for job in jobs),
    }


async def job_stats(db: AsyncSession) -> dict:
    status_rows = await db.execute(select(Job.status, func.count(Job.id)).group_by(Job.status))
    category_rows = await db.execute(
        select(Job.category, func.count(Job.id), func.avg(Job.actual_hours), func.avg(Job.actual_cost))
        .group_by(Job.category)
    )
    priority_rows = await db.execute(select(Job.priority, func.count(Job.id)).group_by(Job.priority))
    completed_count, avg_actual, avg_estimated, revenue = (await db.execute(
        select(
            func.count(Job.id),
            func.avg(Job.actual_hours),
            func.avg(Job.estimated_hours),
            func.coalesce(func.sum(Job.actual_cost), 0),
        ).where(Job.status == JobStatus.COMPLETED)
    )).one()

    open_jobs = await db.execute(
        select(Job.created_at, Job.estimated_hours)
        .where(Job.status.notin_([JobStatus.COMPLETED, JobStatus.CANCELLED]))
    )
    now = utcnow()
    overdue = sum(
        1 for created_at, estimated in open_jobs.all()
        if created_at is not None and as_utc(created_at) + timedelta(hours=estimated or 0) < now
    )
    total = (await db.execute(select(func.count(Job.id)))).scalar_one()

    return {
        "total": total,
        "overdue": overdue,
        "status_breakdown": [{"status": s.value, "count": c} for s, c in status_rows.all()],
        "category_breakdown": [
            {
                "category": cat,
                "count": count,
                "avg_hours": float(hours or 0),
                "avg_cost": float(cost or 0),
            }
            for cat, count, hours, cost in category_rows.all()
        ],
        "priority_breakdown": [{"priority": p.value, "count": c} for p, c in priority_rows.all()],
        "completion": {
            "total_jobs": completed_count,
            "avg_actual_hours": float(avg_actual or 0),
            "avg_estimated_hours": float(avg_estimated or 0),
            "total_revenue": float(revenue or 0),
        } if completed_count else {},
    }


async def populate_jobs(db: AsyncSession, jobs: list[Job]) -> list[JobSchema]:
    """Serialise jobs with their booking, creator and labourers resolved."""
    booking_pks = {job.booking_id for job in jobs if job.booking_id is not None}
    bookings = {}
    if booking_pks:
        result = await db.execute(select(Booking).where(Booking.id.in_(booking_pks)))
        bookings = {b.id: b for b in result.scalars().all()}

    user_pks = set()
    for job in jobs:
        user_pks.add(job.created_by)
        user_pks.update(job.labourer_ids())
    users = await users_by_pk(db, user_pks)

    populated = []
    for job in jobs:
        out = JobSchema.model_validate(job)
        booking = bookings.get(job.booking_id)
        if booking is not None:
            out.booking = BookingSummary.model_validate(booking.summary())
        creator = users.get(job.created_by)
        if creator is not None:
            out.creator = UserSummary.model_validate(creator.summary())
        out.labourers = [
            UserSummary.model_validate(users[pk].summary()) for pk in job.labourer_ids() if pk in users
        ]
        populated.append(out)
    return populated


async def populate_job(db: AsyncSession, job: Job) -> JobSchema:
    return (await populate_jobs(db, [job]))[0]
