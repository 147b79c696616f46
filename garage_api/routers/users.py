"""
User routes.
"""
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from garage_api.auth import get_current_active_user
from garage_api.database import get_db
from garage_api.exceptions import PermissionDeniedError
from garage_api.models.user import User, UserRole, UserStatus
from garage_api.policy import authorize
from garage_api.schemas.user import (
    LoyaltyPointsUpdate,
    PasswordChange,
    PasswordReset,
    ProfileUpdate,
    User as UserSchema,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserStatsResponse,
    UserStatusUpdate,
    UserUpdate,
    WalkInCustomer,
    WalkInCustomerResponse,
)
from garage_api.services import directory

router = APIRouter(prefix="/users", tags=["users"])


def _one(user: User, message: Optional[str] = None) -> UserResponse:
    return UserResponse(message=message, user=UserSchema.model_validate(user))


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_active_user)):
    """Get the current user's profile."""
    return _one(current_user)


@router.patch("/profile", response_model=UserResponse)
async def update_profile(
    profile: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Update the current user's own contact details.
    """
    user = await directory.update_user(db, current_user, profile.model_dump(exclude_unset=True))
    return _one(user, "Profile updated successfully")


@router.patch("/change-password")
async def change_password(
    passwords: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Change the current user's password."""
    await directory.change_password(db, current_user, passwords.current_password, passwords.new_password)
    return {"success": True, "message": "Password changed successfully"}


@router.get("/technicians", response_model=UserListResponse)
async def get_technicians(
    specialization: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.technicians"))
):
    """
    List active technicians, optionally by specialization.
    """
    technicians = await directory.list_technicians(db, specialization)
    return UserListResponse(
        count=len(technicians),
        total=len(technicians),
        users=[UserSchema.model_validate(t) for t in technicians],
    )


@router.get("/search", response_model=UserResponse)
async def search_customer(
    q: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.lookup"))
):
    """Find a customer by exact email or NIC for a booking form."""
    return _one(await directory.search_customer(db, q), "Customer found")


@router.get("/lookup/by-nic", response_model=UserResponse)
async def get_user_by_nic(
    nic: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.lookup"))
):
    """Look up any user by NIC."""
    return _one(await directory.find_by_nic(db, nic))


@router.post("/register-customer", response_model=WalkInCustomerResponse)
async def register_customer(
    customer_in: WalkInCustomer,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.register_customer"))
):
    """
    Register a walk-in customer, or return the one already on file.

    A new account answers 201 with a one-time ``temp_password``; an
    existing customer answers 200 with ``is_existing`` set.
    """
    customer, temp_password = await directory.register_walk_in_customer(db, customer_in.model_dump())
    if temp_password is None:
        return WalkInCustomerResponse(
            message="Existing customer found for booking",
            user=UserSchema.model_validate(customer),
            is_existing=True,
        )
    response.status_code = status.HTTP_201_CREATED
    return WalkInCustomerResponse(
        message="Customer registered successfully for booking",
        user=UserSchema.model_validate(customer),
        temp_password=temp_password,
    )


@router.get("/stats/overview", response_model=UserStatsResponse)
async def get_user_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.stats"))
):
    """User counts by role, status, tier and department."""
    return UserStatsResponse(stats=await directory.user_stats(db))


@router.get("/", response_model=UserListResponse)
async def get_users(
    role: Optional[UserRole] = None,
    user_status: Optional[UserStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.list"))
):
    """
    List users with filters and pagination.
    """
    users, total = await directory.list_users(db, role, user_status, search, skip, limit)
    return UserListResponse(count=len(users), total=total, users=[UserSchema.model_validate(u) for u in users])


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.create"))
):
    """
    Create a user of any role. Only admins may create admins.
    """
    if user_in.role == UserRole.ADMIN and current_user.role != UserRole.ADMIN:
        raise PermissionDeniedError("Only admins can create admin accounts")
    user = await directory.create_user(db, user_in.model_dump(), user_in.role)
    await db.commit()
    await db.refresh(user)
    return _one(user, "User created successfully")


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.read"))
):
    """Get a specific user by ID."""
    return _one(await directory.get_user(db, user_id))


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_update: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.update"))
):
    """
    Update a user.
    """
    changes = user_update.model_dump(exclude_unset=True)
    if changes.get("role") == UserRole.ADMIN and current_user.role != UserRole.ADMIN:
        raise PermissionDeniedError("Only admins can grant the admin role")
    user = await directory.get_user(db, user_id)
    user = await directory.update_user(db, user, changes)
    return _one(user, "User updated successfully")


@router.patch("/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: int,
    status_update: UserStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.update_status"))
):
    """Activate, deactivate or suspend a user."""
    user = await directory.get_user(db, user_id)
    user = await directory.update_user(db, user, {"status": status_update.status})
    return _one(user, f"User status updated to {status_update.status.value}")


@router.patch("/{user_id}/reset-password")
async def reset_password(
    user_id: int,
    reset: PasswordReset,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.reset_password"))
):
    """Set a new password for a user and unlock the account."""
    user = await directory.get_user(db, user_id)
    await directory.reset_password(db, user, reset.new_password, current_user)
    return {"success": True, "message": "Password reset successfully"}


@router.patch("/{user_id}/loyalty-points", response_model=UserResponse)
async def add_loyalty_points(
    user_id: int,
    points: LoyaltyPointsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.loyalty_points"))
):
    """Credit loyalty points to a customer."""
    user = await directory.get_user(db, user_id)
    user = await directory.add_loyalty_points(db, user, points.points)
    return _one(user, f"Added {points.points} loyalty points")


@router.delete("/{user_id}", response_model=UserResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("users.delete"))
):
    """
    Soft-delete a user. The account is terminated and hidden from listings.
    """
    user = await directory.get_user(db, user_id)
    user = await directory.soft_delete(db, user, current_user)
    return _one(user, "User deleted successfully")
