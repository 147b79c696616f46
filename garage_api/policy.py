"""
Role based authorization.

Every protected route names an action; ``PERMISSIONS`` maps that action to
the roles allowed to perform it. Routes depend on ``authorize(action)``
instead of repeating their own allow-lists. Ownership checks (a technician
touching only jobs assigned to them, a customer only seeing their own
bookings) stay in the services, which know the entity.
"""
from fastapi import Depends

from garage_api.auth import get_current_active_user
from garage_api.exceptions import PermissionDeniedError
from garage_api.models.user import User, UserRole

ALL_ROLES = frozenset(UserRole)
STAFF_ROLES = frozenset({UserRole.SERVICE_ADVISOR, UserRole.MANAGER, UserRole.ADMIN})
MANAGEMENT_ROLES = frozenset({UserRole.MANAGER, UserRole.ADMIN})
ADMIN_ONLY = frozenset({UserRole.ADMIN})
INVENTORY_READERS = frozenset({
    UserRole.ADMIN, UserRole.MANAGER, UserRole.SERVICE_ADVISOR,
    UserRole.TECHNICIAN, UserRole.CASHIER,
})

PERMISSIONS: dict[str, frozenset] = {
    # users
    "users.list": MANAGEMENT_ROLES,
    "users.create": MANAGEMENT_ROLES,
    "users.read": STAFF_ROLES,
    "users.update": MANAGEMENT_ROLES,
    "users.update_status": MANAGEMENT_ROLES,
    "users.delete": ADMIN_ONLY,
    "users.loyalty_points": STAFF_ROLES,
    "users.technicians": STAFF_ROLES,
    "users.lookup": STAFF_ROLES | {UserRole.CASHIER},
    "users.register_customer": STAFF_ROLES | {UserRole.CASHIER},
    "users.reset_password": MANAGEMENT_ROLES,
    "users.stats": MANAGEMENT_ROLES,
    # vehicles
    "vehicles.read": ALL_ROLES,
    "vehicles.write": STAFF_ROLES | {UserRole.CASHIER, UserRole.CUSTOMER},
    "vehicles.delete": MANAGEMENT_ROLES,
    # bookings
    "bookings.create": STAFF_ROLES | {UserRole.CASHIER, UserRole.CUSTOMER},
    "bookings.read": ALL_ROLES,
    "bookings.update": STAFF_ROLES | {UserRole.CASHIER},
    "bookings.update_status": STAFF_ROLES,
    "bookings.assign_inspector": STAFF_ROLES,
    "bookings.delete": ADMIN_ONLY,
    # jobs
    "jobs.create": STAFF_ROLES,
    "jobs.read": STAFF_ROLES | {UserRole.TECHNICIAN, UserRole.CASHIER},
    "jobs.update_status": STAFF_ROLES | {UserRole.TECHNICIAN},
    "jobs.assign_labourers": STAFF_ROLES,
    "jobs.work_log": frozenset({UserRole.TECHNICIAN}),
    "jobs.inspect": STAFF_ROLES,
    "jobs.update": STAFF_ROLES,
    "jobs.delete": MANAGEMENT_ROLES,
    "jobs.stats": STAFF_ROLES,
    "jobs.mine": frozenset({UserRole.TECHNICIAN}),
    "jobs.created": STAFF_ROLES,
    # inventory
    "inventory.read": INVENTORY_READERS,
    "inventory.create": MANAGEMENT_ROLES,
    "inventory.update": MANAGEMENT_ROLES,
    "inventory.delete": ADMIN_ONLY,
    "inventory.adjust_stock": MANAGEMENT_ROLES,
    "inventory.stats": MANAGEMENT_ROLES,
    "inventory.low_stock": STAFF_ROLES,
    # goods requests
    "goods_requests.read": STAFF_ROLES | {UserRole.TECHNICIAN},
    "goods_requests.fulfill": MANAGEMENT_ROLES,
    # outbox
    "outbox.read": MANAGEMENT_ROLES,
    "outbox.retry": MANAGEMENT_ROLES,
}


def is_allowed(action: str, role: UserRole) -> bool:
    """True when ``role`` may perform ``action``. Unknown actions are denied."""
    return role in PERMISSIONS.get(action, frozenset())


def check_permission(user: User, action: str) -> None:
    if not is_allowed(action, user.role):
        raise PermissionDeniedError(
            f"Access denied. Role '{user.role.value}' cannot perform '{action}'"
        )


def is_staff(user: User) -> bool:
    return user.role in STAFF_ROLES


def authorize(action: str):
    """Dependency factory: resolve the current user and check ``action``."""

    async def gate(current_user: User = Depends(get_current_active_user)) -> User:
        check_permission(current_user, action)
        return current_user

    return gate
