"""
Pydantic schemas for Goods Request.
"""
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, List
from garage_api.schemas.common import REQUEST_CONFIG
from garage_api.models.goods_request import GoodsRequestStatus
from garage_api.schemas.inventory import ItemSummary


class GoodsRequest(BaseModel):
    """Schema for goods request responses."""
    id: int
    request_id: str
    job_id: Optional[int] = None
    requested_by: int
    item_id: Optional[int] = None
    quantity: float
    purpose: Optional[str] = None
    notes: Optional[str] = None
    status: GoodsRequestStatus
    fulfilled_by: Optional[int] = None
    fulfilled_at: Optional[datetime] = None
    created_at: datetime

    item: Optional[ItemSummary] = None

    model_config = ConfigDict(from_attributes=True)


class GoodsRequestDecision(BaseModel):
    notes: Optional[str] = None

    model_config = REQUEST_CONFIG


class GoodsRequestResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    goods_request: GoodsRequest


class GoodsRequestListResponse(BaseModel):
    success: bool = True
    count: int
    goods_requests: List[GoodsRequest]
