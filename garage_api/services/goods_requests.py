"""
Goods requests: claims against inventory raised for a job.

Raising a request never touches stock. Stock is taken only when a
manager fulfils the request, through the same guarded subtraction used by
manual adjustments.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from garage_api.exceptions import NotFoundError, ValidationError
from garage_api.models.goods_request import GoodsRequest, GoodsRequestStatus
from garage_api.models.inventory import InventoryItem
from garage_api.models.outbox import OutboxKind
from garage_api.models.user import User
from garage_api.schemas.goods_request import GoodsRequest as GoodsRequestSchema
from garage_api.schemas.inventory import ItemSummary
from garage_api.services import outbox
from garage_api.services.inventory import StockOperation, apply_stock_change, find_by_item_id
from garage_api.utils import utcnow

logger = logging.getLogger(__name__)


def request_key(job_pk: int, ordinal: int) -> str:
    """Goods request identifier: the job's internal id plus the material line ordinal."""
    return f"GR-{job_pk}-{ordinal}"


@outbox.handler(OutboxKind.GOODS_REQUEST)
async def create_from_payload(db: AsyncSession, payload: dict) -> GoodsRequest:
    """Create the goods request for one material line. Idempotent on retry."""
    key = request_key(payload["job"], payload["ordinal"])
    existing = await db.execute(select(GoodsRequest).where(GoodsRequest.request_id == key))
    goods_request = existing.scalar_one_or_none()
    if goods_request is not None:
        return goods_request

    item = await find_by_item_id(db, payload["item_id"])
    if item is None:
        raise NotFoundError(f"Inventory item {payload['item_id']} not found")

    goods_request = GoodsRequest(
        request_id=key,
        job_id=payload["job"],
        requested_by=payload["requested_by"],
        item_id=item.id,
        quantity=payload["quantity"],
        purpose=f"Required for job: {payload['job_title']}",
        notes=f"Automatically created for job: {payload['job_title']}",
        status=GoodsRequestStatus.PENDING,
    )
    db.add(goods_request)
    await db.flush()
    logger.info("Goods request %s raised for %g x %s", key, goods_request.quantity, item.item_id)
    return goods_request


async def get_goods_request(db: AsyncSession, request_pk: int) -> GoodsRequest:
    goods_request = await db.get(GoodsRequest, request_pk)
    if goods_request is None:
        raise NotFoundError(f"No goods request with id: {request_pk}")
    return goods_request


async def list_goods_requests(
    db: AsyncSession,
    status: Optional[GoodsRequestStatus] = None,
    job_pk: Optional[int] = None,
    job_pks: Optional[list[int]] = None,
    limit: int = 100,
) -> list[GoodsRequest]:
    query = select(GoodsRequest)
    if status:
        query = query.where(GoodsRequest.status == status)
    if job_pk is not None:
        query = query.where(GoodsRequest.job_id == job_pk)
    if job_pks is not None:
        query = query.where(GoodsRequest.job_id.in_(job_pks))
    result = await db.execute(query.order_by(GoodsRequest.id.desc()).limit(limit))
    return list(result.scalars().all())


def _ensure_pending(goods_request: GoodsRequest) -> None:
    if goods_request.status != GoodsRequestStatus.PENDING:
        raise ValidationError(f"Goods request is already {goods_request.status.value}")


async def fulfill(db: AsyncSession, goods_request: GoodsRequest, user: User, notes: Optional[str] = None) -> GoodsRequest:
    """Issue the goods: subtract stock and mark the request fulfilled in one commit."""
    _ensure_pending(goods_request)
    item = await db.get(InventoryItem, goods_request.item_id) if goods_request.item_id else None
    if item is None:
        raise NotFoundError("Requested inventory item no longer exists")

    await apply_stock_change(
        db, item, StockOperation.SUBTRACT, goods_request.quantity,
        f"Goods request {goods_request.request_id}",
    )
    goods_request.status = GoodsRequestStatus.FULFILLED
    goods_request.fulfilled_by = user.id
    goods_request.fulfilled_at = utcnow()
    if notes:
        goods_request.notes = notes
    await db.commit()
    await db.refresh(goods_request)
    return goods_request


async def reject(db: AsyncSession, goods_request: GoodsRequest, user: User, notes: Optional[str] = None) -> GoodsRequest:
    _ensure_pending(goods_request)
    goods_request.status = GoodsRequestStatus.REJECTED
    goods_request.fulfilled_by = user.id
    goods_request.fulfilled_at = utcnow()
    if notes:
        goods_request.notes = notes
    await db.commit()
    await db.refresh(goods_request)
    logger.info("Goods request %s rejected by %s", goods_request.request_id, user.user_id)
    return goods_request


async def items_by_pk(db: AsyncSession, item_pks) -> dict[int, InventoryItem]:
    pks = {pk for pk in item_pks if pk is not None}
    if not pks:
        return {}
    result = await db.execute(select(InventoryItem).where(InventoryItem.id.in_(pks)))
    return {item.id: item for item in result.scalars().all()}


async def populate_goods_requests(db: AsyncSession, goods_requests: list[GoodsRequest]) -> list[GoodsRequestSchema]:
    items = await items_by_pk(db, (g.item_id for g in goods_requests))
    populated = []
    for goods_request in goods_requests:
        out = GoodsRequestSchema.model_validate(goods_request)
        item = items.get(goods_request.item_id)
        if item is not None:
            out.item = ItemSummary.model_validate(item)
        populated.append(out)
    return populated
