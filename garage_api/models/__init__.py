"""
SQLAlchemy database models.
"""
from garage_api.models.user import User, UserRole, UserStatus, MembershipTier
from garage_api.models.vehicle import Vehicle
from garage_api.models.booking import Booking, BookingStatus, Priority
from garage_api.models.job import Job, JobStatus
from garage_api.models.inventory import InventoryItem, ItemCategory, ItemUnit, ItemStatus
from garage_api.models.goods_request import GoodsRequest, GoodsRequestStatus
from garage_api.models.outbox import OutboxEvent, OutboxKind, OutboxStatus
from garage_api.models.counter import SequenceCounter

__all__ = [
    "User", "UserRole", "UserStatus", "MembershipTier",
    "Vehicle",
    "Booking", "BookingStatus", "Priority",
    "Job", "JobStatus",
    "InventoryItem", "ItemCategory", "ItemUnit", "ItemStatus",
    "GoodsRequest", "GoodsRequestStatus",
    "OutboxEvent", "OutboxKind", "OutboxStatus",
    "SequenceCounter",
]
