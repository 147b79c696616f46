"""
Goods request routes.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from garage_api.database import get_db
from garage_api.exceptions import PermissionDeniedError
from garage_api.models.goods_request import GoodsRequestStatus
from garage_api.models.user import User, UserRole
from garage_api.policy import authorize
from garage_api.schemas.goods_request import GoodsRequestDecision, GoodsRequestListResponse, GoodsRequestResponse
from garage_api.services import goods_requests, jobs

router = APIRouter(prefix="/goods-requests", tags=["goods-requests"])


async def _one(db: AsyncSession, goods_request, message: Optional[str] = None) -> GoodsRequestResponse:
    populated = await goods_requests.populate_goods_requests(db, [goods_request])
    return GoodsRequestResponse(message=message, goods_request=populated[0])


async def _ensure_visible(db: AsyncSession, goods_request, current_user: User) -> None:
    if current_user.role != UserRole.TECHNICIAN:
        return
    if goods_request.job_id is None:
        raise PermissionDeniedError("Access denied. Goods request is not linked to your jobs")
    jobs.ensure_assigned(await jobs.get_job(db, goods_request.job_id), current_user)


@router.get("/", response_model=GoodsRequestListResponse)
async def get_goods_requests(
    request_status: Optional[GoodsRequestStatus] = Query(None, alias="status"),
    job: Optional[int] = None,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("goods_requests.read"))
):
    """
    List goods requests. Technicians only see requests for their jobs.
    """
    job_pks = None
    if current_user.role == UserRole.TECHNICIAN:
        listing = await jobs.list_jobs(db, current_user, page=1, limit=100)
        job_pks = [j.id for j in listing["jobs"]]
    found = await goods_requests.list_goods_requests(db, request_status, job, job_pks, limit)
    populated = await goods_requests.populate_goods_requests(db, found)
    return GoodsRequestListResponse(count=len(populated), goods_requests=populated)


@router.get("/{request_id}", response_model=GoodsRequestResponse)
async def get_goods_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("goods_requests.read"))
):
    """Get a specific goods request by ID."""
    goods_request = await goods_requests.get_goods_request(db, request_id)
    await _ensure_visible(db, goods_request, current_user)
    return await _one(db, goods_request)


@router.patch("/{request_id}/fulfill", response_model=GoodsRequestResponse)
async def fulfill_goods_request(
    request_id: int,
    decision: GoodsRequestDecision = GoodsRequestDecision(),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("goods_requests.fulfill"))
):
    """
    Issue the requested goods. Stock is subtracted here and nowhere else.
    """
    goods_request = await goods_requests.get_goods_request(db, request_id)
    goods_request = await goods_requests.fulfill(db, goods_request, current_user, decision.notes)
    return await _one(db, goods_request, "Goods request fulfilled")


@router.patch("/{request_id}/reject", response_model=GoodsRequestResponse)
async def reject_goods_request(
    request_id: int,
    decision: GoodsRequestDecision = GoodsRequestDecision(),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("goods_requests.fulfill"))
):
    """Reject a pending goods request."""
    goods_request = await goods_requests.get_goods_request(db, request_id)
    goods_request = await goods_requests.reject(db, goods_request, current_user, decision.notes)
    return await _one(db, goods_request, "Goods request rejected")
