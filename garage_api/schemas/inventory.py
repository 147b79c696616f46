"""
Pydantic schemas for Inventory.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Any, Optional, List, Dict
from garage_api.schemas.common import REQUEST_CONFIG
from garage_api.models.inventory import ItemCategory, ItemUnit, ItemStatus


class ItemBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    part_number: Optional[str] = None
    brand: Optional[str] = None
    category: ItemCategory
    unit: ItemUnit
    unit_price: float = Field(..., ge=0)
    minimum_stock: float = Field(0, ge=0)
    supplier_name: Optional[str] = None
    supplier_contact: Optional[str] = None
    status: ItemStatus = ItemStatus.ACTIVE


class ItemCreate(ItemBase):
    current_stock: float = Field(0, ge=0)

    model_config = REQUEST_CONFIG


class ItemUpdate(BaseModel):
    """Stock is changed through the stock endpoints; ``current_stock`` here is a correction."""
    name: Optional[str] = None
    description: Optional[str] = None
    part_number: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[ItemCategory] = None
    unit: Optional[ItemUnit] = None
    unit_price: Optional[float] = Field(None, ge=0)
    current_stock: Optional[float] = Field(None, ge=0)
    minimum_stock: Optional[float] = Field(None, ge=0)
    supplier_name: Optional[str] = None
    supplier_contact: Optional[str] = None
    status: Optional[ItemStatus] = None

    model_config = REQUEST_CONFIG


class Item(ItemBase):
    """Schema for inventory item responses."""
    id: int
    item_id: str
    current_stock: float
    is_low_stock: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ItemSummary(BaseModel):
    id: int
    item_id: str
    name: str
    category: ItemCategory
    unit_price: float
    current_stock: float
    minimum_stock: float
    is_low_stock: bool

    model_config = ConfigDict(from_attributes=True)


class ItemResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    item: Item


class ItemListResponse(BaseModel):
    success: bool = True
    count: int
    total: int
    total_pages: int
    current_page: int
    items: List[Item]


class CategoryItemsResponse(BaseModel):
    success: bool = True
    category: ItemCategory
    count: int
    items: List[Item]


class SearchResponse(BaseModel):
    success: bool = True
    query: str
    count: int
    items: List[Item]


class LowStockResponse(BaseModel):
    success: bool = True
    count: int
    items: List[Item]
    alert: str


class StockUpdate(BaseModel):
    """Loosely typed on purpose: values are checked by the stock service so
    single and bulk adjustments report the same errors."""
    quantity: Any = None
    operation: Optional[str] = None
    reason: Optional[str] = None

    model_config = REQUEST_CONFIG


class BulkStockEntry(StockUpdate):
    item_id: Optional[str] = None


class BulkStockUpdate(BaseModel):
    items: List[BulkStockEntry] = []

    model_config = REQUEST_CONFIG


class StockOperationRecord(BaseModel):
    type: str
    quantity: float
    reason: str
    performed_at: datetime


class StockUpdateResponse(BaseModel):
    success: bool = True
    message: str
    item: ItemSummary
    operation: StockOperationRecord


class BulkStockResult(BaseModel):
    item_id: str
    name: str
    operation: str
    quantity: float
    previous_stock: float
    new_stock: float
    is_low_stock: bool
    reason: str


class BulkStockError(BaseModel):
    item_id: str
    error: str


class BulkStockResponse(BaseModel):
    success: bool
    message: str
    processed: int
    failed: int
    results: List[BulkStockResult]
    errors: List[BulkStockError]


class InventoryStatsResponse(BaseModel):
    success: bool = True
    stats: Dict[str, Any]


class ItemDeleteResponse(BaseModel):
    success: bool = True
    message: str
    item: Dict[str, Any]
