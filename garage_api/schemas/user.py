"""
Pydantic schemas for User and Authentication.
"""
from pydantic import BaseModel, EmailStr, ConfigDict, Field
from datetime import datetime
from typing import Any, Dict, Optional, List
from garage_api.schemas.common import REQUEST_CONFIG
from garage_api.models.user import UserRole, UserStatus, MembershipTier


class UserBase(BaseModel):
    """Base user schema with common fields."""
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_.-]+$")
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    nic: Optional[str] = None


class UserRegister(UserBase):
    """Schema for public customer registration."""
    password: str = Field(..., min_length=8, max_length=72)

    model_config = REQUEST_CONFIG


class UserCreate(UserBase):
    """Schema for staff creating a user of any role."""
    password: str = Field(..., min_length=8, max_length=72)
    role: UserRole = UserRole.TECHNICIAN
    specializations: List[str] = []
    department: Optional[str] = None

    model_config = REQUEST_CONFIG


class UserUpdate(BaseModel):
    """Schema for staff updating a user."""
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    nic: Optional[str] = None
    role: Optional[UserRole] = None
    specializations: Optional[List[str]] = None
    department: Optional[str] = None
    membership_tier: Optional[MembershipTier] = None

    model_config = REQUEST_CONFIG


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None

    model_config = REQUEST_CONFIG


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=72)

    model_config = REQUEST_CONFIG


class PasswordReset(BaseModel):
    new_password: str = Field(..., min_length=8, max_length=72)

    model_config = REQUEST_CONFIG


class WalkInCustomer(BaseModel):
    """Customer details taken at the front desk when a booking is made."""
    email: EmailStr
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1)
    nic: str = Field(..., min_length=1)

    model_config = REQUEST_CONFIG


class UserStatusUpdate(BaseModel):
    status: UserStatus

    model_config = REQUEST_CONFIG


class LoyaltyPointsUpdate(BaseModel):
    points: int = Field(..., gt=0)

    model_config = REQUEST_CONFIG


class User(BaseModel):
    """Schema for user responses."""
    id: int
    user_id: str
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    nic: Optional[str] = None
    role: UserRole
    status: UserStatus
    specializations: List[str] = []
    department: Optional[str] = None
    loyalty_points: int = 0
    membership_tier: MembershipTier = MembershipTier.BRONZE
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    """Reference to a user embedded in other responses."""
    id: int
    user_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole
    specializations: List[str] = []


class UserResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: User


class UserListResponse(BaseModel):
    success: bool = True
    count: int
    total: int
    users: List[User]


class WalkInCustomerResponse(UserResponse):
    is_existing: bool = False
    temp_password: Optional[str] = None


class UserStatsResponse(BaseModel):
    success: bool = True
    stats: Dict[str, Any]


class Token(BaseModel):
    """Schema for authentication token."""
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    user: User


class LoginRequest(BaseModel):
    """Schema for login request. ``username`` also accepts an email address."""
    username: str
    password: str

    model_config = REQUEST_CONFIG
