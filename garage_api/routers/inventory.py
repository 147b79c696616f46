"""
Inventory routes.

Fixed paths (search, stats, low-stock, category, item) are declared before
``/{item_pk}`` so they are not captured by it.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from garage_api.database import get_db
from garage_api.models.inventory import ItemCategory, ItemStatus
from garage_api.models.user import User
from garage_api.policy import authorize
from garage_api.schemas.inventory import (
    BulkStockResponse,
    BulkStockUpdate,
    CategoryItemsResponse,
    InventoryStatsResponse,
    Item as ItemSchema,
    ItemCreate,
    ItemDeleteResponse,
    ItemListResponse,
    ItemResponse,
    ItemSummary,
    ItemUpdate,
    LowStockResponse,
    SearchResponse,
    StockOperationRecord,
    StockUpdate,
    StockUpdateResponse,
)
from garage_api.services import inventory

router = APIRouter(prefix="/inventory", tags=["inventory"])


def _items(items) -> list[ItemSchema]:
    return [ItemSchema.model_validate(item) for item in items]


@router.get("/", response_model=ItemListResponse)
async def get_items(
    category: Optional[ItemCategory] = None,
    item_status: Optional[ItemStatus] = Query(None, alias="status"),
    brand: Optional[str] = None,
    low_stock: bool = False,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.read"))
):
    """
    List inventory items with filters and pagination.
    """
    listing = await inventory.list_items(
        db, category, item_status, brand, low_stock, search, page, limit, sort_by, sort_order,
    )
    listing["items"] = _items(listing["items"])
    return ItemListResponse(**listing)


@router.post("/", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    item: ItemCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.create"))
):
    """Add an item to the catalogue."""
    created = await inventory.create_item(db, item.model_dump())
    return ItemResponse(message="Inventory item created successfully", item=ItemSchema.model_validate(created))


@router.get("/search", response_model=SearchResponse)
async def search_items(
    q: str = "",
    category: Optional[ItemCategory] = None,
    limit: int = 20,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.read"))
):
    """Search by name, description, part number, item id, brand or supplier."""
    items = await inventory.search_items(db, q, category, limit)
    return SearchResponse(query=q.strip(), count=len(items), items=_items(items))


@router.get("/stats", response_model=InventoryStatsResponse)
async def get_inventory_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.stats"))
):
    """Stock value and counts by category and status."""
    return InventoryStatsResponse(stats=await inventory.inventory_stats(db))


@router.get("/low-stock", response_model=LowStockResponse)
async def get_low_stock_items(
    category: Optional[ItemCategory] = None,
    limit: int = 50,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.low_stock"))
):
    """Items at or below their minimum stock."""
    items = await inventory.low_stock_items(db, category, limit)
    alert = f"{len(items)} items need restocking" if items else "All items are adequately stocked"
    return LowStockResponse(count=len(items), items=_items(items), alert=alert)


@router.get("/category/{category}", response_model=CategoryItemsResponse)
async def get_items_by_category(
    category: ItemCategory,
    item_status: ItemStatus = Query(ItemStatus.ACTIVE, alias="status"),
    limit: int = 50,
    sort_by: str = "name",
    sort_order: str = "asc",
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.read"))
):
    """Items in one category."""
    items = await inventory.items_by_category(db, category, item_status, limit, sort_by, sort_order)
    return CategoryItemsResponse(category=category, count=len(items), items=_items(items))


@router.patch("/bulk-update-stock", response_model=BulkStockResponse)
async def bulk_update_stock(
    bulk: BulkStockUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.adjust_stock"))
):
    """
    Adjust several items at once. Each entry succeeds or fails on its own.
    """
    results, errors = await inventory.bulk_adjust_stock(db, [entry.model_dump() for entry in bulk.items])
    return BulkStockResponse(
        success=not errors,
        message=f"Processed {len(results)} items successfully, {len(errors)} failed",
        processed=len(results),
        failed=len(errors),
        results=results,
        errors=errors,
    )


@router.get("/item/{item_id}", response_model=ItemResponse)
async def get_item_by_item_id(
    item_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.read"))
):
    """Get an item by its ITM code."""
    item = await inventory.get_by_item_id(db, item_id)
    return ItemResponse(item=ItemSchema.model_validate(item))


@router.get("/{item_pk}", response_model=ItemResponse)
async def get_item(
    item_pk: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.read"))
):
    """Get a specific item by ID."""
    item = await inventory.get_item(db, item_pk)
    return ItemResponse(item=ItemSchema.model_validate(item))


@router.patch("/{item_pk}", response_model=ItemResponse)
async def update_item(
    item_pk: int,
    item_update: ItemUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.update"))
):
    """Update catalogue details."""
    item = await inventory.get_item(db, item_pk)
    item = await inventory.update_item(db, item, item_update.model_dump(exclude_unset=True))
    return ItemResponse(message="Inventory item updated successfully", item=ItemSchema.model_validate(item))


@router.patch("/{item_pk}/stock", response_model=StockUpdateResponse)
async def update_stock(
    item_pk: int,
    stock_update: StockUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.adjust_stock"))
):
    """
    Add or subtract stock. Subtractions beyond the available stock are refused.
    """
    change = await inventory.adjust_stock(
        db, item_pk, stock_update.quantity, stock_update.operation, stock_update.reason,
    )
    verb = "added to" if change.operation == inventory.StockOperation.ADD else "subtracted from"
    return StockUpdateResponse(
        message=f"Stock {verb} {change.item.name} successfully",
        item=ItemSummary.model_validate(change.item),
        operation=StockOperationRecord(
            type=change.operation.value,
            quantity=change.quantity,
            reason=change.reason,
            performed_at=change.performed_at,
        ),
    )


@router.delete("/{item_pk}", response_model=ItemDeleteResponse)
async def delete_item(
    item_pk: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("inventory.delete"))
):
    """Delete an item from the catalogue."""
    item = await inventory.get_item(db, item_pk)
    summary = await inventory.delete_item(db, item)
    return ItemDeleteResponse(message="Inventory item deleted successfully", item=summary)
