"""Branch domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_clock, validate_email, validate_short_code


class BranchCreate(BaseModel):
    """Schema for creating a new branch"""

    name: str = Field(..., min_length=2, max_length=255)
    short_code: str
    address: str
    location: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    cost_multiplier: float = Field(1.0, gt=0)
    opening_time: str = "08:00"
    closing_time: str = "22:00"
    images: Optional[list[str]] = None
    amenities: Optional[list[str]] = None

    @field_validator("short_code")
    @classmethod
    def validate_code(cls, v):
        return validate_short_code(v)

    @field_validator("email")
    @classmethod
    def validate_branch_email(cls, v):
        return validate_email(v)

    @field_validator("opening_time", "closing_time")
    @classmethod
    def validate_hours(cls, v):
        return validate_clock(v)


class BranchUpdate(BaseModel):
    """Schema for updating an existing branch"""

    name: Optional[str] = None
    short_code: Optional[str] = None
    address: Optional[str] = None
    location: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    cost_multiplier: Optional[float] = Field(None, gt=0)
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    images: Optional[list[str]] = None
    amenities: Optional[list[str]] = None
    is_active: Optional[bool] = None

    @field_validator("short_code")
    @classmethod
    def validate_code(cls, v):
        return validate_short_code(v)

    @field_validator("email")
    @classmethod
    def validate_branch_email(cls, v):
        return validate_email(v)

    @field_validator("opening_time", "closing_time")
    @classmethod
    def validate_hours(cls, v):
        return validate_clock(v)


class BranchResponse(BaseModel):
    id: int
    name: str
    short_code: str
    address: str
    location: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    cost_multiplier: float
    opening_time: str
    closing_time: str
    images: Optional[list[str]] = None
    amenities: Optional[list[str]] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BranchSeatResponse(BaseModel):
    id: int
    seat_number: str
    seat_code: str
    price: float
    capacity: Optional[int] = None
    availability_status: str
    seating_type_id: int
    seating_type_code: Optional[str] = None
    seating_type_name: Optional[str] = None


class SeatStat(BaseModel):
    id: int
    seat_code: str
    seat_number: str
    price: float
    status: str  # available, booked, maintenance, unavailable
    has_booking: bool


class SeatingTypeStats(BaseModel):
    id: int
    name: str
    short_code: str
    description: Optional[str] = None
    is_hourly: bool
    hourly_rate: float
    total_seats: int
    available_seats: int
    booked_seats: int
    statically_booked_seats: int
    dynamically_booked_seats: int
    maintenance_seats: int
    seats: list[SeatStat]


class BranchStats(BaseModel):
    id: int
    name: str
    short_code: str
    address: str
    location: Optional[str] = None
    opening_time: str
    closing_time: str
    total_seats: int
    available_seats: int
    booked_seats: int
    seating_types: list[SeatingTypeStats]
