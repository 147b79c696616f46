"""
User and technician directory.
"""
import logging
import secrets
from collections import Counter
from datetime import timedelta
from typing import Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from garage_api.auth import hash_password, verify_password
from garage_api.config import get_settings
from garage_api.exceptions import (
    AccountLockedError,
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from garage_api.models.user import MembershipTier, User, UserRole, UserStatus
from garage_api.services.sequence import next_identifier
from garage_api.utils import as_utc, utcnow

logger = logging.getLogger(__name__)


async def ensure_admin(db: AsyncSession) -> None:
    """Seed the bootstrap admin account when no admin exists yet."""
    result = await db.execute(select(User).where(User.role == UserRole.ADMIN).limit(1))
    if result.scalar_one_or_none() is not None:
        return

    settings = get_settings()
    admin = User(
        user_id=await next_identifier(db, "user"),
        username=settings.admin_username,
        email=settings.admin_email,
        hashed_password=hash_password(settings.admin_password),
        first_name="System",
        last_name="Administrator",
        role=UserRole.ADMIN,
        status=UserStatus.ACTIVE,
        specializations=[],
    )
    db.add(admin)
    await db.flush()
    logger.info("Created bootstrap admin account '%s'", admin.username)


async def get_user(db: AsyncSession, user_pk: int) -> User:
    user = await db.get(User, user_pk)
    if user is None or user.deleted_at is not None:
        raise NotFoundError(f"No user with id: {user_pk}")
    return user


async def _ensure_unique(db: AsyncSession, *, username=None, email=None, nic=None, exclude_pk=None) -> None:
    checks = [
        ("Username already registered", User.username, username),
        ("Email already registered", User.email, email.lower() if email else None),
        ("NIC already registered", User.nic, nic),
    ]
    for message, column, value in checks:
        if not value:
            continue
        query = select(User.id).where(column == value)
        if exclude_pk is not None:
            query = query.where(User.id != exclude_pk)
        if (await db.execute(query)).first() is not None:
            raise ValidationError(message)


async def create_user(db: AsyncSession, data: dict, role: UserRole) -> User:
    """Insert a user after checking uniqueness. Caller commits."""
    await _ensure_unique(db, username=data.get("username"), email=data.get("email"), nic=data.get("nic"))

    password = data.pop("password")
    data.pop("role", None)
    data["email"] = data["email"].lower()
    user = User(
        **data,
        user_id=await next_identifier(db, "user"),
        hashed_password=hash_password(password),
        role=role,
        status=UserStatus.ACTIVE,
    )
    user.specializations = list(data.get("specializations") or [])
    db.add(user)
    await db.flush()
    logger.info("Created %s account %s (%s)", role.value, user.user_id, user.username)
    return user


async def authenticate(db: AsyncSession, username: str, password: str) -> User:
    """
    Verify credentials and maintain the lockout counters.

    Failed attempts are counted per account; reaching the configured
    maximum locks the account for ``lockout_minutes``.
    """
    settings = get_settings()
    identifier = username.strip().lower()
    result = await db.execute(
        select(User).where(or_(func.lower(User.username) == identifier, User.email == identifier))
    )
    user = result.scalar_one_or_none()
    if user is None or user.deleted_at is not None:
        raise AuthenticationError("Invalid credentials")

    now = utcnow()
    if user.is_locked(now):
        raise AccountLockedError("Account is temporarily locked due to too many failed attempts")

    if not verify_password(password, user.hashed_password):
        user.login_attempts = (user.login_attempts or 0) + 1
        if user.login_attempts >= settings.max_login_attempts:
            user.locked_until = now + timedelta(minutes=settings.lockout_minutes)
            user.login_attempts = 0
            logger.warning("Locked account %s after repeated failed logins", user.user_id)
        await db.commit()
        raise AuthenticationError("Invalid credentials")

    if user.status != UserStatus.ACTIVE:
        raise PermissionDeniedError(f"Account is {user.status.value}")

    user.login_attempts = 0
    user.locked_until = None
    user.last_login = now
    await db.commit()
    await db.refresh(user)
    return user


async def change_password(db: AsyncSession, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.hashed_password):
        raise AuthenticationError("Incorrect current password")
    user.hashed_password = hash_password(new_password)
    await db.commit()


async def reset_password(db: AsyncSession, user: User, new_password: str, acting_user: User) -> None:
    """Set a new password for ``user`` and clear any lockout."""
    user.hashed_password = hash_password(new_password)
    user.login_attempts = 0
    user.locked_until = None
    await db.commit()
    logger.info("Password of %s reset by %s", user.user_id, acting_user.user_id)


async def update_user(db: AsyncSession, user: User, changes: dict) -> User:
    await _ensure_unique(db, email=changes.get("email"), nic=changes.get("nic"), exclude_pk=user.id)
    if changes.get("email"):
        changes["email"] = changes["email"].lower()
    for field, value in changes.items():
        setattr(user, field, value)
    await db.commit()
    await db.refresh(user)
    return user


async def soft_delete(db: AsyncSession, user: User, acting_user: User) -> User:
    """Deactivate instead of removing so jobs and bookings keep their references."""
    if user.id == acting_user.id:
        raise ValidationError("You cannot delete your own account")
    user.status = UserStatus.TERMINATED
    user.deleted_at = utcnow()
    await db.commit()
    await db.refresh(user)
    logger.info("User %s terminated by %s", user.user_id, acting_user.user_id)
    return user


async def list_users(
    db: AsyncSession,
    role: Optional[UserRole] = None,
    status: Optional[UserStatus] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> tuple[list[User], int]:
    query = select(User).where(User.deleted_at.is_(None))
    if role:
        query = query.where(User.role == role)
    if status:
        query = query.where(User.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            User.username.ilike(pattern),
            User.email.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.user_id.ilike(pattern),
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(query.order_by(User.id).offset(skip).limit(limit))
    return list(result.scalars().all()), total


async def list_technicians(db: AsyncSession, specialization: Optional[str] = None) -> list[User]:
    result = await db.execute(
        select(User)
        .where(User.role == UserRole.TECHNICIAN, User.status == UserStatus.ACTIVE)
        .order_by(User.id)
    )
    technicians = list(result.scalars().all())
    if specialization:
        wanted = specialization.lower()
        technicians = [
            t for t in technicians
            if any(s.lower() == wanted for s in t.specializations or [])
        ]
    return technicians


async def find_by_nic(db: AsyncSession, nic: str) -> User:
    if not nic or not nic.strip():
        raise ValidationError("NIC is required")
    result = await db.execute(
        select(User).where(User.nic == nic.strip(), User.deleted_at.is_(None))
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User with this NIC not found")
    return user


async def search_customer(db: AsyncSession, q: str) -> User:
    """Find the customer whose email or NIC is exactly ``q``, for booking intake."""
    if not q or not q.strip():
        raise ValidationError("Search query is required")
    term = q.strip()
    result = await db.execute(
        select(User).where(
            or_(User.email == term.lower(), User.nic == term),
            User.role == UserRole.CUSTOMER,
            User.deleted_at.is_(None),
        )
    )
    customer = result.scalars().first()
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


async def register_walk_in_customer(db: AsyncSession, data: dict) -> tuple[User, Optional[str]]:
    """
    Return the customer matching the email or NIC, or create one.

    A new customer gets a generated username and temporary password; the
    password is returned once so the front desk can hand it over. Returns
    ``(customer, None)`` when the customer already existed.
    """
    email = data["email"].lower()
    result = await db.execute(
        select(User).where(or_(User.email == email, User.nic == data["nic"]), User.deleted_at.is_(None))
    )
    existing = result.scalars().first()
    if existing is not None:
        if existing.role != UserRole.CUSTOMER:
            raise ValidationError("This email or NIC belongs to a staff account")
        return existing, None

    temp_password = secrets.token_hex(8)
    user_id = await next_identifier(db, "user")
    customer = User(
        **data,
        user_id=user_id,
        username=user_id.lower(),
        hashed_password=hash_password(temp_password),
        role=UserRole.CUSTOMER,
        status=UserStatus.ACTIVE,
        specializations=[],
    )
    customer.email = email
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    logger.info("Registered walk-in customer %s", customer.user_id)
    return customer, temp_password


def _key(value) -> str:
    if value is None:
        return "unassigned"
    return getattr(value, "value", value)


async def _count_by(db: AsyncSession, column, *criteria) -> dict[str, int]:
    result = await db.execute(select(column, func.count()).where(*criteria).group_by(column))
    return {_key(value): count for value, count in result.all()}


async def user_stats(db: AsyncSession, days: int = 30) -> dict:
    """Counts by role, status, membership tier and department, plus recent sign-ups."""
    total = (await db.execute(select(func.count(User.id)))).scalar_one()
    active = (await db.execute(
        select(func.count(User.id)).where(User.status == UserStatus.ACTIVE)
    )).scalar_one()

    since = utcnow() - timedelta(days=days)
    result = await db.execute(select(User.created_at).where(User.created_at >= since))
    recent = Counter(as_utc(created).date().isoformat() for created in result.scalars().all())

    return {
        "total_users": total,
        "active_users": active,
        "by_role": await _count_by(db, User.role),
        "by_status": await _count_by(db, User.status),
        "by_membership_tier": await _count_by(db, User.membership_tier, User.role == UserRole.CUSTOMER),
        "by_department": await _count_by(
            db, User.department,
            User.role.in_([UserRole.TECHNICIAN, UserRole.SERVICE_ADVISOR, UserRole.MANAGER]),
        ),
        "recent_registrations": dict(sorted(recent.items())),
    }


async def verify_technicians(db: AsyncSession, user_pks: Sequence[int]) -> list[User]:
    """
    Resolve every id to an active technician, or fail as a whole.

    Duplicates are rejected too, since the verified count would not match
    the requested count.
    """
    requested = list(user_pks)
    if not requested:
        return []
    result = await db.execute(
        select(User).where(
            User.id.in_(requested),
            User.role == UserRole.TECHNICIAN,
            User.status == UserStatus.ACTIVE,
            User.deleted_at.is_(None),
        )
    )
    technicians = list(result.scalars().all())
    if len(technicians) != len(requested):
        raise ValidationError("Some labourers not found or not active technicians")
    by_pk = {t.id: t for t in technicians}
    return [by_pk[pk] for pk in requested]


async def users_by_pk(db: AsyncSession, user_pks) -> dict[int, User]:
    pks = {pk for pk in user_pks if pk is not None}
    if not pks:
        return {}
    result = await db.execute(select(User).where(User.id.in_(pks)))
    return {u.id: u for u in result.scalars().all()}


# Lowest point balance for each tier, highest first.
TIER_THRESHOLDS = [
    (MembershipTier.PLATINUM, 10000),
    (MembershipTier.GOLD, 5000),
    (MembershipTier.SILVER, 1000),
    (MembershipTier.BRONZE, 0),
]


def tier_for(points: int) -> MembershipTier:
    for tier, threshold in TIER_THRESHOLDS:
        if points >= threshold:
            return tier
    return MembershipTier.BRONZE


async def add_loyalty_points(db: AsyncSession, user: User, points: int) -> User:
    if user.role != UserRole.CUSTOMER:
        raise ValidationError("Loyalty points can only be added to customers")
    user.loyalty_points = (user.loyalty_points or 0) + points
    user.membership_tier = tier_for(user.loyalty_points)
    await db.commit()
    await db.refresh(user)
    return user
