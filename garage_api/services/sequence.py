"""
Atomic identifier sequences.

Each human readable identifier (``JOB00001``, ``BK00001``...) draws its
number from a counter row that is incremented with a single UPDATE, so
concurrent creates never compute the same number.
"""
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from garage_api.models.counter import SequenceCounter
from garage_api.utils import format_identifier

# counter name -> identifier prefix
SEQUENCES = {
    "user": "USR",
    "booking": "BK",
    "job": "JOB",
    "inventory_item": "ITM",
}


async def ensure_counters(db: AsyncSession) -> None:
    """Create any missing counter rows. Called once at startup."""
    result = await db.execute(select(SequenceCounter.name))
    existing = set(result.scalars().all())
    for name in SEQUENCES:
        if name not in existing:
            db.add(SequenceCounter(name=name, value=0))
    await db.flush()


async def next_value(db: AsyncSession, name: str) -> int:
    """Increment counter ``name`` and return the new value."""
    result = await db.execute(
        update(SequenceCounter)
        .where(SequenceCounter.name == name)
        .values(value=SequenceCounter.value + 1)
        .returning(SequenceCounter.value)
        .execution_options(synchronize_session=False)
    )
    value = result.scalar_one_or_none()
    if value is None:
        db.add(SequenceCounter(name=name, value=1))
        await db.flush()
        value = 1
    return value


async def next_identifier(db: AsyncSession, name: str) -> str:
    return format_identifier(SEQUENCES[name], await next_value(db, name))
