"""
Vehicle routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select
from typing import Optional

from garage_api.database import get_db
from garage_api.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from garage_api.models.vehicle import Vehicle
from garage_api.models.user import User, UserRole
from garage_api.policy import authorize
from garage_api.schemas.vehicle import (
    Vehicle as VehicleSchema,
    VehicleCreate,
    VehicleListResponse,
    VehicleResponse,
    VehicleUpdate,
)
from garage_api.services.directory import get_user

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


async def _get_vehicle(db: AsyncSession, vehicle_id: int, current_user: User) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise NotFoundError("Vehicle not found")
    if current_user.role == UserRole.CUSTOMER and vehicle.owner_id != current_user.id:
        raise PermissionDeniedError("Access denied. Vehicle belongs to another customer")
    return vehicle


async def _ensure_unique_registration(db: AsyncSession, registration_number: str, exclude_id: Optional[int] = None):
    query = select(Vehicle.id).where(func.upper(Vehicle.registration_number) == registration_number.upper())
    if exclude_id is not None:
        query = query.where(Vehicle.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ValidationError("Registration number already registered")


@router.get("/", response_model=VehicleListResponse)
async def get_vehicles(
    owner_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("vehicles.read"))
):
    """
    Get vehicles with pagination. Customers only see their own.
    """
    query = select(Vehicle)
    if current_user.role == UserRole.CUSTOMER:
        owner_id = current_user.id
    if owner_id is not None:
        query = query.where(Vehicle.owner_id == owner_id)
    result = await db.execute(query.order_by(Vehicle.id).offset(skip).limit(limit))
    vehicles = [VehicleSchema.model_validate(v) for v in result.scalars().all()]
    return VehicleListResponse(count=len(vehicles), vehicles=vehicles)


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("vehicles.read"))
):
    """
    Get a specific vehicle by ID.
    """
    vehicle = await _get_vehicle(db, vehicle_id, current_user)
    return VehicleResponse(vehicle=VehicleSchema.model_validate(vehicle))


@router.post("/", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("vehicles.write"))
):
    """
    Register a vehicle.
    """
    data = vehicle.model_dump()
    if current_user.role == UserRole.CUSTOMER:
        data["owner_id"] = current_user.id
    elif data.get("owner_id") is not None:
        await get_user(db, data["owner_id"])

    data["registration_number"] = data["registration_number"].strip().upper()
    await _ensure_unique_registration(db, data["registration_number"])

    db_vehicle = Vehicle(**data)
    db.add(db_vehicle)
    await db.commit()
    await db.refresh(db_vehicle)

    return VehicleResponse(message="Vehicle registered successfully", vehicle=VehicleSchema.model_validate(db_vehicle))


@router.put("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: int,
    vehicle_update: VehicleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("vehicles.write"))
):
    """
    Update a vehicle.
    """
    db_vehicle = await _get_vehicle(db, vehicle_id, current_user)

    # Update only provided fields
    update_data = vehicle_update.model_dump(exclude_unset=True)
    if current_user.role == UserRole.CUSTOMER:
        update_data.pop("owner_id", None)
    elif update_data.get("owner_id") is not None:
        await get_user(db, update_data["owner_id"])
    if update_data.get("registration_number"):
        update_data["registration_number"] = update_data["registration_number"].strip().upper()
        await _ensure_unique_registration(db, update_data["registration_number"], exclude_id=vehicle_id)

    for field, value in update_data.items():
        setattr(db_vehicle, field, value)

    await db.commit()
    await db.refresh(db_vehicle)

    return VehicleResponse(message="Vehicle updated successfully", vehicle=VehicleSchema.model_validate(db_vehicle))


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(authorize("vehicles.delete"))
):
    """
    Delete a vehicle.
    """
    db_vehicle = await _get_vehicle(db, vehicle_id, current_user)
    await db.delete(db_vehicle)
    await db.commit()

    return None
