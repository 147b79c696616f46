"""
User model for database.

Customers and staff share one table; the role decides which of the
profile groups (employment or customer details) is meaningful.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Enum as SQLEnum
import enum

from garage_api.database import Base
from garage_api.utils import utcnow, as_utc


class UserRole(str, enum.Enum):
    """User role enumeration."""
    CUSTOMER = "customer"
    TECHNICIAN = "technician"
    SERVICE_ADVISOR = "service_advisor"
    MANAGER = "manager"
    CASHIER = "cashier"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    """User account status enumeration."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"


class MembershipTier(str, enum.Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class User(Base):
    """User database model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, unique=True, nullable=False, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    role = Column(SQLEnum(UserRole), default=UserRole.CUSTOMER, nullable=False)
    status = Column(SQLEnum(UserStatus), default=UserStatus.ACTIVE, nullable=False)

    # Profile
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    nic = Column(String, unique=True, nullable=True, index=True)

    # Employment details (staff)
    specializations = Column(JSON, default=list, nullable=False)
    department = Column(String, nullable=True)

    # Customer details
    loyalty_points = Column(Integer, default=0, nullable=False)
    membership_tier = Column(SQLEnum(MembershipTier), default=MembershipTier.BRONZE, nullable=False)

    # Login bookkeeping
    login_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime(timezone=True), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)

    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.username

    def is_locked(self, now=None) -> bool:
        locked_until = as_utc(self.locked_until)
        return locked_until is not None and locked_until > (now or utcnow())

    def summary(self) -> dict:
        """Reference shape embedded in other entities' responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role.value,
            "specializations": list(self.specializations or []),
        }
