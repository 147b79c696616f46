"""
Pydantic schemas for the side-effect outbox.
"""
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Any, Optional, List, Dict
from garage_api.models.outbox import OutboxKind, OutboxStatus


class OutboxEvent(BaseModel):
    id: int
    kind: OutboxKind
    source: str
    payload: Dict[str, Any]
    status: OutboxStatus
    attempts: int
    last_error: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OutboxEventResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    event: OutboxEvent


class OutboxListResponse(BaseModel):
    success: bool = True
    count: int
    events: List[OutboxEvent]
