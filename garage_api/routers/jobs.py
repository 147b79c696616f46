"""
Job routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from garage_api.database import get_db
from garage_api.models.user import User
from garage_api.policy import authorize
from garage_api.schemas.job import (
    CreatedJobListResponse,
    InspectionCreate,
    JobCreate,
    JobCreateResponse,
    JobDeleteResponse,
    JobListResponse,
    JobResponse,
    JobStatsResponse,
    JobStatusUpdate,
    JobUpdate,
    LabourerAssignment,
    WorkLogCreate,
)
from garage_api.services import bookings, jobs
from garage_api.services.goods_requests import populate_goods_requests

router = APIRouter(prefix="/jobs", tags=["jobs"])


async def _one(db: AsyncSession, job, message: Optional[str] = None) -> JobResponse:
    return JobResponse(message=message, job=await jobs.populate_job(db, job))


async def _listing(db: AsyncSession, listing: dict, message: Optional[str] = None) -> dict:
    listing["jobs"] = await jobs.populate_jobs(db, listing["jobs"])
    listing["message"] = message
    return listing


@router.post("/booking/{booking_id}", response_model=JobCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    booking_id: int,
    job_in: JobCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.create"))
):
    """
    Create a job under an inspecting booking.

    Each material requirement raises a goods request. Requests that cannot
    be raised are listed in ``goods_request_errors``; the job is kept.
    """
    job, goods_requests, errors = await jobs.create_job(db, booking_id, job_in, current_user)
    message = "Job created successfully"
    if errors:
        message = f"{message}, but {len(errors)} goods request(s) failed"
    return JobCreateResponse(
        message=message,
        job=await jobs.populate_job(db, job),
        goods_requests=await populate_goods_requests(db, goods_requests),
        goods_request_errors=errors,
    )


@router.get("/", response_model=JobListResponse)
async def get_jobs(
    job_status: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    category: Optional[str] = None,
    booking: Optional[int] = None,
    assigned_to: Optional[int] = None,
    created_by: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.read"))
):
    """
    List jobs with filters, search and pagination.
    """
    listing = await jobs.list_jobs(
        db, current_user,
        status=job_status, priority=priority, category=category,
        booking_pk=booking, assigned_to=assigned_to, created_by=created_by,
        search=search, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order,
    )
    return JobListResponse(**await _listing(db, listing))


@router.get("/stats", response_model=JobStatsResponse)
async def get_job_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.stats"))
):
    """Job counts and averages by status, category and priority."""
    return JobStatsResponse(stats=await jobs.job_stats(db))


@router.get("/my-jobs", response_model=JobListResponse)
async def get_my_jobs(
    job_status: Optional[str] = Query(None, alias="status"),
    page: int = 1,
    limit: int = 10,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.mine"))
):
    """Jobs assigned to the current technician."""
    listing = await jobs.list_jobs(db, current_user, status=job_status, page=page, limit=limit)
    return JobListResponse(**await _listing(db, listing, "Your assigned jobs"))


@router.get("/my-created", response_model=CreatedJobListResponse)
async def get_my_created_jobs(
    job_status: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    category: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.created"))
):
    """
    Jobs created by the current user, with summary stats over all of them.
    """
    listing = await jobs.list_jobs(
        db, current_user,
        status=job_status, priority=priority, category=category,
        created_by=current_user.id, page=page, limit=limit,
    )
    listing = await _listing(db, listing, "Jobs you created")
    listing["stats"] = await jobs.created_job_stats(db, current_user)
    return CreatedJobListResponse(**listing)


@router.get("/booking/{booking_id}", response_model=JobListResponse)
async def get_jobs_by_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.read"))
):
    """All jobs under one booking."""
    await bookings.get_booking(db, booking_id)
    listing = await jobs.list_jobs(db, current_user, booking_pk=booking_id, page=1, limit=100)
    return JobListResponse(**await _listing(db, listing))


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.read"))
):
    """Get a specific job by ID."""
    job = await jobs.get_job(db, job_id)
    jobs.ensure_can_view(job, current_user)
    return await _one(db, job)


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: int,
    job_update: JobUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.update"))
):
    """Update job details."""
    changes = job_update.model_dump(exclude_unset=True, exclude_none=True)
    if job_update.requirements is not None:
        changes["requirements"] = job_update.requirements.model_dump()
    job = await jobs.update_job(db, job_id, changes)
    return await _one(db, job, "Job updated successfully")


@router.patch("/{job_id}/status", response_model=JobResponse)
async def update_job_status(
    job_id: int,
    status_update: JobStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.update_status"))
):
    """
    Change a job's status. The parent booking follows.
    """
    job = await jobs.update_job_status(db, job_id, status_update.status, current_user, status_update.notes)
    return await _one(db, job, f"Job status updated to {job.status.value}")


@router.put("/{job_id}/labourers", response_model=JobResponse)
async def assign_labourers(
    job_id: int,
    assignment: LabourerAssignment,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.assign_labourers"))
):
    """Replace the technicians assigned to a pending job."""
    job = await jobs.assign_labourers(db, job_id, assignment.labourer_ids)
    return await _one(db, job, "Labourers assigned successfully")


@router.post("/{job_id}/worklog", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def add_work_log(
    job_id: int,
    entry: WorkLogCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.work_log"))
):
    """Log time worked on a job."""
    job = await jobs.add_work_log(db, job_id, entry.start_time, entry.end_time, entry.description, current_user)
    return await _one(db, job, "Work log added successfully")


@router.post("/{job_id}/inspection", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def add_inspection_report(
    job_id: int,
    report: InspectionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.inspect"))
):
    """Record a pre-work or post-work inspection."""
    job = await jobs.add_inspection_report(db, job_id, report, current_user)
    return await _one(db, job, "Inspection report added successfully")


@router.delete("/{job_id}", response_model=JobDeleteResponse)
async def delete_job(
    job_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("jobs.delete"))
):
    """Delete a job that has not started."""
    summary = await jobs.delete_job(db, job_id)
    return JobDeleteResponse(message="Job deleted successfully", job=summary)
