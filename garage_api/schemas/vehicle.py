"""
Pydantic schemas for Vehicle.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List
from garage_api.schemas.common import REQUEST_CONFIG


class VehicleBase(BaseModel):
    """Base vehicle schema with common fields."""
    registration_number: str = Field(..., min_length=2)
    make: str
    model: str
    year: Optional[int] = Field(None, ge=1900, le=2100)
    vin: Optional[str] = None
    color: Optional[str] = None


class VehicleCreate(VehicleBase):
    """Schema for creating a vehicle. Customers always own what they create."""
    owner_id: Optional[int] = None

    model_config = REQUEST_CONFIG


class VehicleUpdate(BaseModel):
    """Schema for updating a vehicle."""
    owner_id: Optional[int] = None
    registration_number: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1900, le=2100)
    vin: Optional[str] = None
    color: Optional[str] = None

    model_config = REQUEST_CONFIG


class Vehicle(VehicleBase):
    """Schema for vehicle responses."""
    id: int
    owner_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class VehicleResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    vehicle: Vehicle


class VehicleListResponse(BaseModel):
    success: bool = True
    count: int
    vehicles: List[Vehicle]
