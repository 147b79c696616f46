"""
Inventory item model for database.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, CheckConstraint, Enum as SQLEnum
import enum

from garage_api.database import Base
from garage_api.utils import utcnow


class ItemCategory(str, enum.Enum):
    PARTS = "parts"
    TOOLS = "tools"
    FLUIDS = "fluids"
    CONSUMABLES = "consumables"


class ItemUnit(str, enum.Enum):
    PIECE = "piece"
    LITER = "liter"
    KG = "kg"
    METER = "meter"
    SET = "set"


class ItemStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class InventoryItem(Base):
    """Inventory item database model."""

    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_inventory_items_stock_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    part_number = Column(String, unique=True, nullable=True)
    brand = Column(String, nullable=True)
    category = Column(SQLEnum(ItemCategory), nullable=False, index=True)
    unit = Column(SQLEnum(ItemUnit), nullable=False)
    unit_price = Column(Float, nullable=False, default=0.0)
    current_stock = Column(Float, nullable=False, default=0.0)
    minimum_stock = Column(Float, nullable=False, default=0.0)
    supplier_name = Column(String, nullable=True)
    supplier_contact = Column(String, nullable=True)
    status = Column(SQLEnum(ItemStatus), default=ItemStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.minimum_stock

    def summary(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "name": self.name,
            "category": self.category.value,
            "unit_price": self.unit_price,
            "current_stock": self.current_stock,
            "minimum_stock": self.minimum_stock,
            "is_low_stock": self.is_low_stock,
        }
