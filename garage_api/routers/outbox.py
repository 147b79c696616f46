"""
Outbox routes: inspect and retry best-effort side effects.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from garage_api.database import get_db
from garage_api.models.outbox import OutboxKind, OutboxStatus
from garage_api.models.user import User
from garage_api.policy import authorize
from garage_api.schemas.outbox import OutboxEvent as OutboxEventSchema, OutboxEventResponse, OutboxListResponse
from garage_api.services import outbox

router = APIRouter(prefix="/outbox", tags=["outbox"])


@router.get("/", response_model=OutboxListResponse)
async def get_events(
    event_status: Optional[OutboxStatus] = Query(None, alias="status"),
    kind: Optional[OutboxKind] = None,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("outbox.read"))
):
    """List side-effect events, newest first."""
    events = await outbox.list_events(db, event_status, kind, limit)
    return OutboxListResponse(count=len(events), events=[OutboxEventSchema.model_validate(e) for e in events])


@router.post("/{event_id}/retry", response_model=OutboxEventResponse)
async def retry_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("outbox.retry"))
):
    """
    Run a pending or failed event again. The outcome is recorded on the event.
    """
    outcome = await outbox.retry(db, event_id)
    await db.refresh(outcome.event)
    if not outcome.ok:
        message = f"Event failed again: {outcome.error}"
    elif outcome.event.status == OutboxStatus.SKIPPED:
        message = f"Event skipped: {outcome.event.last_error}"
    else:
        message = "Event applied"
    return OutboxEventResponse(message=message, event=OutboxEventSchema.model_validate(outcome.event))
