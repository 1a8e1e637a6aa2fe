"""
Seating Types and Seats API Routes

Public catalog reads plus admin management of seating types and seats.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..auth import ensure_branch_access, get_current_admin, require_super_admin
from ..database import get_db
from ..domain.availability import BLOCKING_STATUSES, natural_sort_key
from ..models import Admin, AdminRole, Branch, Seat, SeatBooking, SeatingType, SeatingTypeName, SeatStatus
from ..shared.seating_defaults import (
    default_capacity_options,
    default_cost_multipliers,
    default_quantity_options,
    default_short_code,
    seat_code_for,
)
from ..shared.validators import validate_short_code

logger = logging.getLogger(__name__)

seating_types_router = APIRouter(prefix="/seating-types", tags=["Seating Types"])
seats_router = APIRouter(prefix="/seats", tags=["Seats"])


class SeatingTypeCreate(BaseModel):
    name: str
    short_code: Optional[str] = None
    description: Optional[str] = None
    hourly_rate: float = Field(0.0, ge=0)
    daily_rate: float = Field(0.0, ge=0)
    monthly_rate: float = Field(0.0, ge=0)
    is_hourly: Optional[bool] = None
    min_booking_duration: int = Field(1, ge=1)
    min_seats: int = Field(1, ge=1)
    capacity_options: Optional[list[int]] = None
    quantity_options: Optional[list[int]] = None
    cost_multiplier: Optional[dict[str, float]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip().upper()
        if v not in SeatingTypeName.ALL:
            raise ValueError(f"Seating type must be one of {', '.join(SeatingTypeName.ALL)}")
        return v

    @field_validator("short_code")
    @classmethod
    def validate_code(cls, v):
        return validate_short_code(v)


class SeatingTypeUpdate(BaseModel):
    description: Optional[str] = None
    hourly_rate: Optional[float] = Field(None, ge=0)
    daily_rate: Optional[float] = Field(None, ge=0)
    monthly_rate: Optional[float] = Field(None, ge=0)
    is_hourly: Optional[bool] = None
    min_booking_duration: Optional[int] = Field(None, ge=1)
    min_seats: Optional[int] = Field(None, ge=1)
    capacity_options: Optional[list[int]] = None
    quantity_options: Optional[list[int]] = None
    cost_multiplier: Optional[dict[str, float]] = None


class SeatingTypeResponse(BaseModel):
    id: int
    name: str
    short_code: str
    description: Optional[str] = None
    hourly_rate: float
    daily_rate: float
    monthly_rate: float
    is_hourly: bool
    min_booking_duration: int
    min_seats: int
    capacity_options: Optional[list[int]] = None
    quantity_options: Optional[list[int]] = None
    cost_multiplier: Optional[dict[str, float]] = None

    class Config:
        from_attributes = True


class SeatCreate(BaseModel):
    branch_id: Optional[int] = None
    branch_code: Optional[str] = None
    seating_type_id: Optional[int] = None
    seating_type_code: Optional[str] = None
    seat_number: str = Field(..., min_length=1, max_length=20)
    price: float = Field(0.0, ge=0)
    capacity: Optional[int] = Field(None, ge=1)
    availability_status: str = SeatStatus.AVAILABLE

    @field_validator("availability_status")
    @classmethod
    def validate_status(cls, v):
        v = v.upper()
        if v not in SeatStatus.ALL:
            raise ValueError(f"Status must be one of {', '.join(SeatStatus.ALL)}")
        return v


class SeatUpdate(BaseModel):
    seat_number: Optional[str] = Field(None, min_length=1, max_length=20)
    price: Optional[float] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=1)
    availability_status: Optional[str] = None

    @field_validator("availability_status")
    @classmethod
    def validate_status(cls, v):
        if v is None:
            return v
        v = v.upper()
        if v not in SeatStatus.ALL:
            raise ValueError(f"Status must be one of {', '.join(SeatStatus.ALL)}")
        return v


class BulkCapacityUpdate(BaseModel):
    capacity: int = Field(..., ge=1)
    seat_ids: Optional[list[int]] = None
    branch_code: Optional[str] = None
    seating_type_code: Optional[str] = None


class SeatResponse(BaseModel):
    id: int
    branch_id: int
    seating_type_id: int
    seat_number: str
    seat_code: str
    price: float
    capacity: Optional[int] = None
    availability_status: str
    branch_code: Optional[str] = None
    seating_type_code: Optional[str] = None


def _seat_response(seat: Seat) -> SeatResponse:
    return SeatResponse(
        id=seat.id,
        branch_id=seat.branch_id,
        seating_type_id=seat.seating_type_id,
        seat_number=seat.seat_number,
        seat_code=seat.seat_code,
        price=seat.price,
        capacity=seat.capacity,
        availability_status=seat.availability_status,
        branch_code=seat.branch.short_code if seat.branch else None,
        seating_type_code=seat.seating_type.short_code if seat.seating_type else None,
    )


def _get_seating_type(db: Session, short_code: str) -> SeatingType:
    seating_type = db.query(SeatingType).filter(SeatingType.short_code == short_code.upper()).first()
    if not seating_type:
        raise HTTPException(status_code=404, detail=f"Seating type with code {short_code} not found")
    return seating_type


def _check_capacity(seating_type: SeatingType, capacity: Optional[int]) -> None:
    options = seating_type.capacity_options
    if capacity is not None and options and capacity not in options:
        raise HTTPException(
            status_code=400,
            detail=f"Capacity {capacity} is not offered for {seating_type.name}. Choose one of {options}",
        )


# ============================================================================
# SEATING TYPES
# ============================================================================


@seating_types_router.get("", response_model=list[SeatingTypeResponse])
async def list_seating_types(db: Session = Depends(get_db)):
    return db.query(SeatingType).order_by(SeatingType.name).all()


@seating_types_router.get("/{short_code}", response_model=SeatingTypeResponse)
async def get_seating_type(short_code: str, db: Session = Depends(get_db)):
    return _get_seating_type(db, short_code)


@seating_types_router.post("", response_model=SeatingTypeResponse, status_code=201)
async def create_seating_type(
    data: SeatingTypeCreate,
    admin: Admin = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    """Create a seating type; blank options take the defaults for its kind"""
    fields = data.model_dump()
    fields["short_code"] = data.short_code or default_short_code(data.name)
    if fields["is_hourly"] is None:
        fields["is_hourly"] = data.name == SeatingTypeName.MEETING_ROOM
    if data.capacity_options is None:
        fields["capacity_options"] = default_capacity_options(data.name)
    if data.quantity_options is None:
        fields["quantity_options"] = default_quantity_options(data.name)
    if data.cost_multiplier is None:
        fields["cost_multiplier"] = default_cost_multipliers(data.name)

    if db.query(SeatingType).filter(SeatingType.short_code == fields["short_code"]).first():
        raise HTTPException(status_code=409, detail=f"Seating type code {fields['short_code']} already exists")

    seating_type = SeatingType(**fields)
    try:
        db.add(seating_type)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"❌ Failed to create seating type {fields['short_code']}: {e}")
        raise HTTPException(status_code=409, detail="Seating type already exists") from e
    db.refresh(seating_type)

    logger.info(f"✅ Seating type {seating_type.short_code} created by admin {admin.id}")
    return seating_type


@seating_types_router.put("/{short_code}", response_model=SeatingTypeResponse)
async def update_seating_type(
    short_code: str,
    data: SeatingTypeUpdate,
    admin: Admin = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    seating_type = _get_seating_type(db, short_code)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(seating_type, key, value)
    db.commit()
    db.refresh(seating_type)

    logger.info(f"✅ Seating type {seating_type.short_code} updated by admin {admin.id}")
    return seating_type


@seating_types_router.delete("/{short_code}")
async def delete_seating_type(
    short_code: str,
    admin: Admin = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    seating_type = _get_seating_type(db, short_code)
    seat_count = db.query(Seat).filter(Seat.seating_type_id == seating_type.id).count()
    if seat_count:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot delete {seating_type.short_code}: {seat_count} seat(s) still use it",
        )

    db.delete(seating_type)
    db.commit()
    logger.info(f"🗑️ Seating type {short_code} deleted by admin {admin.id}")
    return {"message": "Seating type deleted successfully"}


# ============================================================================
# SEATS
# ============================================================================


@seats_router.get("", response_model=list[SeatResponse])
async def list_seats(
    branch_code: Optional[str] = Query(None),
    seating_type_code: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="AVAILABLE, BOOKED or MAINTENANCE"),
    db: Session = Depends(get_db),
):
    query = (
        db.query(Seat)
        .join(Branch, Seat.branch_id == Branch.id)
        .join(SeatingType, Seat.seating_type_id == SeatingType.id)
        .options(joinedload(Seat.branch), joinedload(Seat.seating_type))
        .filter(Branch.is_active.is_(True))
    )
    if branch_code:
        query = query.filter(Branch.short_code == branch_code.upper())
    if seating_type_code:
        query = query.filter(SeatingType.short_code == seating_type_code.upper())
    if status:
        query = query.filter(Seat.availability_status == status.upper())

    seats = query.all()
    seats.sort(key=lambda seat: (seat.branch_id, seat.seating_type_id, natural_sort_key(seat.seat_number)))
    return [_seat_response(seat) for seat in seats]


@seats_router.post("/bulk-capacity")
async def bulk_update_capacity(
    data: BulkCapacityUpdate,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Set the capacity of many seats at once, by id or by branch and type"""
    query = db.query(Seat).options(joinedload(Seat.seating_type))
    if data.seat_ids:
        query = query.filter(Seat.id.in_(data.seat_ids))
    elif data.seating_type_code:
        seating_type = _get_seating_type(db, data.seating_type_code)
        query = query.filter(Seat.seating_type_id == seating_type.id)
        if data.branch_code:
            branch = db.query(Branch).filter(Branch.short_code == data.branch_code.upper()).first()
            if not branch:
                raise HTTPException(status_code=404, detail="Branch not found")
            query = query.filter(Seat.branch_id == branch.id)
    else:
        raise HTTPException(status_code=400, detail="Provide seat_ids or seating_type_code")

    if admin.role != AdminRole.SUPER_ADMIN:
        query = query.filter(Seat.branch_id == admin.branch_id)

    seats = query.all()
    if not seats:
        raise HTTPException(status_code=404, detail="No matching seats found")

    for seat in seats:
        _check_capacity(seat.seating_type, data.capacity)
        seat.capacity = data.capacity
    db.commit()

    logger.info(f"✅ Capacity set to {data.capacity} on {len(seats)} seat(s) by admin {admin.id}")
    return {"message": "Capacity updated successfully", "updated": len(seats), "capacity": data.capacity}


@seats_router.get("/{seat_id}", response_model=SeatResponse)
async def get_seat(seat_id: int, db: Session = Depends(get_db)):
    seat = db.query(Seat).filter(Seat.id == seat_id).first()
    if not seat:
        raise HTTPException(status_code=404, detail="Seat not found")
    return _seat_response(seat)


@seats_router.post("", response_model=SeatResponse, status_code=201)
async def create_seat(
    data: SeatCreate,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Create a seat; its code is the seating type code followed by the seat number"""
    if data.branch_id is not None:
        branch = db.query(Branch).filter(Branch.id == data.branch_id).first()
    elif data.branch_code:
        branch = db.query(Branch).filter(Branch.short_code == data.branch_code.upper()).first()
    else:
        raise HTTPException(status_code=400, detail="branch_id or branch_code is required")
    if not branch:
        raise HTTPException(status_code=404, detail="Branch not found")
    ensure_branch_access(admin, branch.id)

    if data.seating_type_id is not None:
        seating_type = db.query(SeatingType).filter(SeatingType.id == data.seating_type_id).first()
        if not seating_type:
            raise HTTPException(status_code=404, detail="Seating type not found")
    elif data.seating_type_code:
        seating_type = _get_seating_type(db, data.seating_type_code)
    else:
        raise HTTPException(status_code=400, detail="seating_type_id or seating_type_code is required")

    _check_capacity(seating_type, data.capacity)

    seat_code = seat_code_for(seating_type.short_code, data.seat_number)
    exists = db.query(Seat).filter(Seat.branch_id == branch.id, Seat.seat_code == seat_code).first()
    if exists:
        raise HTTPException(status_code=409, detail=f"Seat {seat_code} already exists in {branch.short_code}")

    seat = Seat(
        branch_id=branch.id,
        seating_type_id=seating_type.id,
        seat_number=data.seat_number,
        seat_code=seat_code,
        price=data.price,
        capacity=data.capacity,
        availability_status=data.availability_status,
    )
    try:
        db.add(seat)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=f"Seat {seat_code} already exists") from e
    db.refresh(seat)

    logger.info(f"✅ Seat {seat_code} created at {branch.short_code} by admin {admin.id}")
    return _seat_response(seat)


@seats_router.put("/{seat_id}", response_model=SeatResponse)
async def update_seat(
    seat_id: int,
    data: SeatUpdate,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    seat = db.query(Seat).filter(Seat.id == seat_id).first()
    if not seat:
        raise HTTPException(status_code=404, detail="Seat not found")
    ensure_branch_access(admin, seat.branch_id)

    fields = data.model_dump(exclude_unset=True)
    if "capacity" in fields:
        _check_capacity(seat.seating_type, fields["capacity"])
    if fields.get("seat_number"):
        seat_code = seat_code_for(seat.seating_type.short_code, fields["seat_number"])
        clash = (
            db.query(Seat)
            .filter(Seat.branch_id == seat.branch_id, Seat.seat_code == seat_code, Seat.id != seat.id)
            .first()
        )
        if clash:
            raise HTTPException(status_code=409, detail=f"Seat {seat_code} already exists")
        fields["seat_code"] = seat_code

    for key, value in fields.items():
        setattr(seat, key, value)
    db.commit()
    db.refresh(seat)

    logger.info(f"✅ Seat {seat.seat_code} updated by admin {admin.id}")
    return _seat_response(seat)


@seats_router.delete("/{seat_id}")
async def delete_seat(
    seat_id: int,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Delete a seat unless it still has upcoming or running bookings"""
    seat = db.query(Seat).filter(Seat.id == seat_id).first()
    if not seat:
        raise HTTPException(status_code=404, detail="Seat not found")
    ensure_branch_access(admin, seat.branch_id)

    future_bookings = (
        db.query(SeatBooking)
        .filter(
            SeatBooking.seat_id == seat.id,
            SeatBooking.status.in_(BLOCKING_STATUSES),
            SeatBooking.end_time > datetime.utcnow(),
        )
        .count()
    )
    if future_bookings:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot delete seat {seat.seat_code}: {future_bookings} active or upcoming booking(s)",
        )

    past_bookings = db.query(SeatBooking).filter(SeatBooking.seat_id == seat.id).count()
    if past_bookings:
        raise HTTPException(
            status_code=409,
            detail=f"Seat {seat.seat_code} has booking history; set it to MAINTENANCE instead",
        )

    db.delete(seat)
    db.commit()
    logger.info(f"🗑️ Seat {seat.seat_code} deleted by admin {admin.id}")
    return {"message": "Seat deleted successfully"}
