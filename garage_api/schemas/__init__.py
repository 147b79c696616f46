"""
Pydantic schemas for request/response validation.
"""
from garage_api.schemas.user import UserCreate, UserRegister, UserUpdate, User, UserSummary, Token, LoginRequest
from garage_api.schemas.vehicle import VehicleCreate, VehicleUpdate, Vehicle
from garage_api.schemas.booking import BookingCreate, BookingUpdate, Booking, BookingSummary
from garage_api.schemas.inventory import ItemCreate, ItemUpdate, Item, ItemSummary
from garage_api.schemas.goods_request import GoodsRequest
from garage_api.schemas.job import JobCreate, JobUpdate, Job
from garage_api.schemas.outbox import OutboxEvent

__all__ = [
    "UserCreate", "UserRegister", "UserUpdate", "User", "UserSummary", "Token", "LoginRequest",
    "VehicleCreate", "VehicleUpdate", "Vehicle",
    "BookingCreate", "BookingUpdate", "Booking", "BookingSummary",
    "ItemCreate", "ItemUpdate", "Item", "ItemSummary",
    "GoodsRequest",
    "JobCreate", "JobUpdate", "Job",
    "OutboxEvent",
]
