"""
Best-effort secondary effects with a durable record.

The primary write (a job, a status change) is committed before its side
effects run. Each effect is written to the outbox first, then executed; a
failure is logged and stored on the event instead of reaching the caller,
and the event can be retried later.
"""
import logging
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from garage_api.exceptions import NotFoundError, ValidationError
from garage_api.models.outbox import OutboxEvent, OutboxKind, OutboxStatus

logger = logging.getLogger(__name__)

Handler = Callable[[AsyncSession, dict], Awaitable[Any]]

_handlers: dict[OutboxKind, Handler] = {}


class SupersededEffect(Exception):
    """Raised by a handler when a newer write has made the effect obsolete."""


def handler(kind: OutboxKind):
    """Register the coroutine that performs effects of ``kind``."""

    def register(fn: Handler) -> Handler:
        _handlers[kind] = fn
        return fn

    return register


class EffectOutcome:
    """Result of running one outbox event."""

    def __init__(self, event: OutboxEvent, result: Any = None, error: Optional[str] = None):
        self.event = event
        self.result = result
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None


async def enqueue(db: AsyncSession, kind: OutboxKind, source: str, payload: dict) -> OutboxEvent:
    """Persist a pending event. Committed immediately so it survives a failed run."""
    event = OutboxEvent(kind=kind, source=source, payload=payload, status=OutboxStatus.PENDING, attempts=0)
    db.add(event)
    await db.commit()
    return event


async def run(db: AsyncSession, event: OutboxEvent) -> EffectOutcome:
    """Execute ``event`` and record the outcome. Never raises for handler errors."""
    run_effect = _handlers.get(event.kind)
    if run_effect is None:
        raise RuntimeError(f"No outbox handler registered for {event.kind.value}")

    try:
        result = await run_effect(db, dict(event.payload))
    except SupersededEffect as exc:
        await db.rollback()
        await db.refresh(event)
        event.status = OutboxStatus.SKIPPED
        event.attempts += 1
        event.last_error = str(exc)
        await db.commit()
        logger.info("Side effect %s for %s skipped: %s", event.kind.value, event.source, event.last_error)
        return EffectOutcome(event)
    except Exception as exc:
        # Discard whatever the handler left half-done; committed work is untouched.
        await db.rollback()
        await db.refresh(event)
        event.status = OutboxStatus.FAILED
        event.attempts += 1
        event.last_error = str(exc) or exc.__class__.__name__
        await db.commit()
        logger.warning(
            "Side effect %s for %s failed (attempt %d): %s",
            event.kind.value, event.source, event.attempts, event.last_error,
        )
        return EffectOutcome(event, error=event.last_error)

    event.status = OutboxStatus.DONE
    event.attempts += 1
    event.last_error = None
    await db.commit()
    logger.debug("Side effect %s for %s done", event.kind.value, event.source)
    return EffectOutcome(event, result=result)


async def dispatch(db: AsyncSession, kind: OutboxKind, source: str, payload: dict) -> EffectOutcome:
    """Enqueue and immediately run one effect."""
    event = await enqueue(db, kind, source, payload)
    return await run(db, event)


async def retry(db: AsyncSession, event_pk: int) -> EffectOutcome:
    event = await db.get(OutboxEvent, event_pk)
    if event is None:
        raise NotFoundError(f"No outbox event with id: {event_pk}")
    if event.status == OutboxStatus.DONE:
        raise ValidationError("Event has already been applied")
    if event.status == OutboxStatus.SKIPPED:
        raise ValidationError("Event was superseded by a later change")
    logger.info("Retrying side effect %s for %s", event.kind.value, event.source)
    return await run(db, event)


async def list_events(
    db: AsyncSession,
    status: Optional[OutboxStatus] = None,
    kind: Optional[OutboxKind] = None,
    limit: int = 100,
) -> list[OutboxEvent]:
    query = select(OutboxEvent)
    if status:
        query = query.where(OutboxEvent.status == status)
    if kind:
        query = query.where(OutboxEvent.kind == kind)
    result = await db.execute(query.order_by(OutboxEvent.id.desc()).limit(limit))
    return list(result.scalars().all())
