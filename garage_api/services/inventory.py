"""
Inventory ledger: catalogue maintenance and guarded stock adjustments.

Stock never goes below zero. Subtractions are applied with a conditional
UPDATE so two concurrent adjustments cannot both pass a stale check.
"""
import enum
import logging
import math
from typing import Any, Optional

from sqlalchemy import asc, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from garage_api.config import get_settings
from garage_api.exceptions import NotFoundError, ValidationError
from garage_api.models.inventory import InventoryItem, ItemCategory, ItemStatus
from garage_api.services.sequence import next_identifier
from garage_api.utils import utcnow

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "created_at", "name", "item_id", "unit_price", "current_stock", "minimum_stock", "category",
}


class StockOperation(str, enum.Enum):
    ADD = "add"
    SUBTRACT = "subtract"


class StockChange:
    """Outcome of one successful adjustment."""

    def __init__(self, item: InventoryItem, operation: StockOperation, quantity: float,
                 previous_stock: float, new_stock: float, reason: str):
        self.item = item
        self.operation = operation
        self.quantity = quantity
        self.previous_stock = previous_stock
        self.new_stock = new_stock
        self.reason = reason
        self.performed_at = utcnow()

    def as_result(self) -> dict:
        return {
            "item_id": self.item.item_id,
            "name": self.item.name,
            "operation": self.operation.value,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "is_low_stock": self.new_stock <= self.item.minimum_stock,
            "reason": self.reason,
        }


def parse_operation(operation: Any) -> StockOperation:
    try:
        return StockOperation(operation)
    except ValueError:
        raise ValidationError("Operation must be 'add' or 'subtract'")


def parse_quantity(quantity: Any) -> float:
    if isinstance(quantity, bool):
        raise ValidationError("Quantity must be a positive number")
    try:
        value = float(quantity)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a positive number")
    if math.isnan(value) or math.isinf(value) or value <= 0:
        raise ValidationError("Quantity must be a positive number")
    return value


async def get_item(db: AsyncSession, item_pk: int) -> InventoryItem:
    item = await db.get(InventoryItem, item_pk)
    if item is None:
        raise NotFoundError(f"No inventory item found with id: {item_pk}")
    return item


async def find_by_item_id(db: AsyncSession, item_id: str) -> Optional[InventoryItem]:
    if not item_id or not item_id.strip():
        return None
    result = await db.execute(
        select(InventoryItem).where(InventoryItem.item_id == item_id.strip().upper())
    )
    return result.scalar_one_or_none()


async def get_by_item_id(db: AsyncSession, item_id: str) -> InventoryItem:
    item = await find_by_item_id(db, item_id)
    if item is None:
        raise NotFoundError(f"No inventory item found with itemId: {item_id}")
    return item


async def apply_stock_change(
    db: AsyncSession,
    item: InventoryItem,
    operation: StockOperation,
    quantity: float,
    reason: str,
) -> StockChange:
    """
    Apply one adjustment without committing.

    Raises ValidationError when a subtraction exceeds the stock on hand; in
    that case nothing is written.
    """
    if operation == StockOperation.ADD:
        statement = (
            update(InventoryItem)
            .where(InventoryItem.id == item.id)
            .values(current_stock=InventoryItem.current_stock + quantity)
        )
    else:
        statement = (
            update(InventoryItem)
            .where(InventoryItem.id == item.id, InventoryItem.current_stock >= quantity)
            .values(current_stock=InventoryItem.current_stock - quantity)
        )

    result = await db.execute(
        statement.returning(InventoryItem.current_stock).execution_options(synchronize_session=False)
    )
    new_stock = result.scalar_one_or_none()
    if new_stock is None:
        await db.refresh(item)
        raise ValidationError(
            f"Insufficient stock. Available: {item.current_stock:g}, Requested: {quantity:g}"
        )

    previous = new_stock - quantity if operation == StockOperation.ADD else new_stock + quantity
    # The UPDATE already wrote the value; keep the identity map in step without a second write.
    set_committed_value(item, "current_stock", new_stock)

    logger.info(
        "Stock %s %g on %s: %g -> %g (%s)",
        operation.value, quantity, item.item_id, previous, new_stock, reason,
    )
    return StockChange(item, operation, quantity, previous, new_stock, reason)


async def adjust_stock(
    db: AsyncSession,
    item_pk: int,
    quantity: Any,
    operation: Any,
    reason: Optional[str] = None,
) -> StockChange:
    """Validate and apply a single-item adjustment, then commit."""
    if quantity in (None, "") or not operation:
        raise ValidationError("Quantity and operation are required")
    op = parse_operation(operation)
    qty = parse_quantity(quantity)
    item = await get_item(db, item_pk)

    change = await apply_stock_change(db, item, op, qty, reason or "Manual stock adjustment")
    await db.commit()
    return change


async def bulk_adjust_stock(db: AsyncSession, entries: list) -> tuple[list[dict], list[dict]]:
    """
    Apply each entry independently.

    A failing entry is reported in ``errors`` and never aborts the batch;
    every successful entry is committed on its own.
    """
    max_items = get_settings().bulk_stock_max_items
    if not entries:
        raise ValidationError("Items array is required and must not be empty")
    if len(entries) > max_items:
        raise ValidationError(f"Maximum {max_items} items can be updated at once")

    results: list[dict] = []
    errors: list[dict] = []

    for entry in entries:
        item_id = entry.get("item_id")
        label = item_id or "unknown"
        try:
            if not item_id or entry.get("quantity") in (None, "") or not entry.get("operation"):
                raise ValidationError("ItemId, quantity, and operation are required")
            op = parse_operation(entry.get("operation"))
            qty = parse_quantity(entry.get("quantity"))
            item = await find_by_item_id(db, item_id)
            if item is None:
                raise NotFoundError("Item not found")
            change = await apply_stock_change(db, item, op, qty, entry.get("reason") or "Bulk stock update")
            await db.commit()
        except (ValidationError, NotFoundError) as exc:
            await db.rollback()
            errors.append({"item_id": label, "error": exc.message})
            continue
        results.append(change.as_result())

    if errors:
        logger.warning("Bulk stock update: %d applied, %d failed", len(results), len(errors))
    return results, errors


async def create_item(db: AsyncSession, data: dict) -> InventoryItem:
    name = data["name"].strip()
    existing = await db.execute(
        select(InventoryItem.id).where(func.lower(InventoryItem.name) == name.lower())
    )
    if existing.first() is not None:
        raise ValidationError("Item with this name already exists")

    part_number = (data.get("part_number") or "").strip() or None
    if part_number:
        duplicate = await db.execute(
            select(InventoryItem.id).where(func.lower(InventoryItem.part_number) == part_number.lower())
        )
        if duplicate.first() is not None:
            raise ValidationError("Item with this part number already exists")

    item = InventoryItem(**{**data, "name": name, "part_number": part_number})
    item.item_id = await next_identifier(db, "inventory_item")
    db.add(item)
    await db.commit()
    await db.refresh(item)
    logger.info("Created inventory item %s (%s)", item.item_id, item.name)
    return item


async def update_item(db: AsyncSession, item: InventoryItem, changes: dict) -> InventoryItem:
    if changes.get("name"):
        changes["name"] = changes["name"].strip()
        clash = await db.execute(
            select(InventoryItem.id).where(
                func.lower(InventoryItem.name) == changes["name"].lower(),
                InventoryItem.id != item.id,
            )
        )
        if clash.first() is not None:
            raise ValidationError("Item with this name already exists")
    if changes.get("part_number"):
        clash = await db.execute(
            select(InventoryItem.id).where(
                func.lower(InventoryItem.part_number) == changes["part_number"].strip().lower(),
                InventoryItem.id != item.id,
            )
        )
        if clash.first() is not None:
            raise ValidationError("Item with this part number already exists")

    for field, value in changes.items():
        setattr(item, field, value)
    await db.commit()
    await db.refresh(item)
    return item


async def delete_item(db: AsyncSession, item: InventoryItem) -> dict:
    """Remove an item from the catalogue. Goods requests keep their record with no item."""
    summary = {"id": item.id, "item_id": item.item_id, "name": item.name}
    await db.delete(item)
    await db.commit()
    logger.info("Deleted inventory item %s (%s)", summary["item_id"], summary["name"])
    return summary


def _low_stock_clause():
    return InventoryItem.current_stock <= InventoryItem.minimum_stock


def _search_clause(term: str):
    pattern = f"%{term}%"
    return or_(
        InventoryItem.name.ilike(pattern),
        InventoryItem.description.ilike(pattern),
        InventoryItem.part_number.ilike(pattern),
        InventoryItem.item_id.ilike(pattern),
        InventoryItem.brand.ilike(pattern),
        InventoryItem.supplier_name.ilike(pattern),
    )


async def list_items(
    db: AsyncSession,
    category: Optional[ItemCategory] = None,
    status: Optional[ItemStatus] = None,
    brand: Optional[str] = None,
    low_stock: bool = False,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> dict:
    query = select(InventoryItem)
    if category:
        query = query.where(InventoryItem.category == category)
    if status:
        query = query.where(InventoryItem.status == status)
    if brand:
        query = query.where(InventoryItem.brand.ilike(f"%{brand}%"))
    if low_stock:
        query = query.where(_low_stock_clause())
    if search and search.strip():
        query = query.where(_search_clause(search.strip()))

    page = max(1, page)
    limit = max(1, min(100, limit))
    column = getattr(InventoryItem, sort_by if sort_by in SORTABLE_FIELDS else "created_at")
    order = desc(column) if sort_order == "desc" else asc(column)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(query.order_by(order, InventoryItem.id).offset((page - 1) * limit).limit(limit))
    items = list(result.scalars().all())
    return {
        "count": len(items),
        "total": total,
        "total_pages": math.ceil(total / limit),
        "current_page": page,
        "items": items,
    }


async def low_stock_items(db: AsyncSession, category: Optional[ItemCategory] = None, limit: int = 50) -> list[InventoryItem]:
    """Low-stock report; discontinued items are left out."""
    query = select(InventoryItem).where(_low_stock_clause(), InventoryItem.status != ItemStatus.DISCONTINUED)
    if category:
        query = query.where(InventoryItem.category == category)
    limit = max(1, min(100, limit))
    result = await db.execute(
        query.order_by(InventoryItem.current_stock.asc(), InventoryItem.minimum_stock.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def search_items(db: AsyncSession, q: str, category: Optional[ItemCategory] = None, limit: int = 20) -> list[InventoryItem]:
    term = (q or "").strip()
    if len(term) < 2:
        raise ValidationError("Search query must be at least 2 characters long")
    query = select(InventoryItem).where(_search_clause(term), InventoryItem.status != ItemStatus.DISCONTINUED)
    if category:
        query = query.where(InventoryItem.category == category)
    limit = max(1, min(100, limit))
    result = await db.execute(query.order_by(InventoryItem.name).limit(limit))
    return list(result.scalars().all())


async def items_by_category(
    db: AsyncSession,
    category: ItemCategory,
    status: ItemStatus = ItemStatus.ACTIVE,
    limit: int = 50,
    sort_by: str = "name",
    sort_order: str = "asc",
) -> list[InventoryItem]:
    column = getattr(InventoryItem, sort_by if sort_by in SORTABLE_FIELDS else "name")
    order = desc(column) if sort_order == "desc" else asc(column)
    limit = max(1, min(100, limit))
    result = await db.execute(
        select(InventoryItem)
        .where(InventoryItem.category == category, InventoryItem.status == status)
        .order_by(order)
        .limit(limit)
    )
    return list(result.scalars().all())


async def inventory_stats(db: AsyncSession) -> dict:
    in_service = InventoryItem.status != ItemStatus.DISCONTINUED
    stock_value = InventoryItem.current_stock * InventoryItem.unit_price

    category_rows = await db.execute(
        select(
            InventoryItem.category,
            func.count(InventoryItem.id),
            func.coalesce(func.sum(stock_value), 0),
            func.avg(InventoryItem.current_stock),
            func.coalesce(func.sum(InventoryItem.current_stock), 0),
        )
        .where(in_service)
        .group_by(InventoryItem.category)
        .order_by(func.count(InventoryItem.id).desc())
    )
    status_rows = await db.execute(
        select(InventoryItem.status, func.count(InventoryItem.id)).group_by(InventoryItem.status)
    )
    low_stock_count = (await db.execute(
        select(func.count(InventoryItem.id)).where(_low_stock_clause(), in_service)
    )).scalar_one()
    total_value, total_items = (await db.execute(
        select(func.coalesce(func.sum(stock_value), 0), func.count(InventoryItem.id)).where(in_service)
    )).one()
    expensive = await db.execute(
        select(InventoryItem)
        .where(InventoryItem.status == ItemStatus.ACTIVE)
        .order_by(InventoryItem.unit_price.desc())
        .limit(5)
    )

    return {
        "category_breakdown": [
            {
                "category": category.value,
                "total_items": count,
                "total_value": float(value or 0),
                "average_stock": float(average or 0),
                "total_stock": float(stock or 0),
            }
            for category, count, value, average, stock in category_rows.all()
        ],
        "status_breakdown": [
            {"status": status.value, "count": count} for status, count in status_rows.all()
        ],
        "low_stock_alert": {"count": low_stock_count, "needs_attention": low_stock_count > 0},
        "total_inventory_value": float(total_value or 0),
        "total_active_items": total_items,
        "top_expensive_items": [
            {
                "item_id": item.item_id,
                "name": item.name,
                "unit_price": item.unit_price,
                "current_stock": item.current_stock,
                "category": item.category.value,
            }
            for item in expensive.scalars().all()
        ],
    }
