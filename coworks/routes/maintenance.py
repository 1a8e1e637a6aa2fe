"""
Maintenance Block Routes

Admins take seats out of service for a window. A block cannot be placed over
pending or confirmed bookings; once placed it hides the seat from booking,
slot and stats endpoints for that window.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, joinedload

from ..auth import ensure_branch_access, get_current_admin
from ..database import get_db
from ..domain.availability import (
    OCCUPANCY_BOOKING,
    OCCUPANCY_MAINTENANCE,
    AvailabilityRepository,
    TimeWindow,
    conflicting_occupancies,
)
from ..domain.bookings.service import describe_conflicts
from ..models import Admin, AdminRole, MaintenanceBlock, Seat
from ..shared.validators import to_naive_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/availability", tags=["Admin Availability"])


class MaintenanceBlockCreate(BaseModel):
    seat_id: int
    start_time: datetime
    end_time: datetime
    reason: str = Field(..., min_length=3)
    notes: Optional[str] = None


class MaintenanceBlockResponse(BaseModel):
    id: int
    seat_id: int
    seat_code: Optional[str] = None
    branch_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    reason: str
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


def _block_response(block: MaintenanceBlock) -> MaintenanceBlockResponse:
    return MaintenanceBlockResponse(
        id=block.id,
        seat_id=block.seat_id,
        seat_code=block.seat.seat_code if block.seat else None,
        branch_id=block.seat.branch_id if block.seat else None,
        start_time=block.start_time,
        end_time=block.end_time,
        reason=block.reason,
        notes=block.notes,
        created_by=block.created_by,
        created_at=block.created_at,
    )


@router.post("/block", response_model=MaintenanceBlockResponse, status_code=201)
async def create_block(
    data: MaintenanceBlockCreate,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Block a seat for maintenance"""
    start = to_naive_utc(data.start_time)
    end = to_naive_utc(data.end_time)
    if end <= start:
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    seat = db.query(Seat).filter(Seat.id == data.seat_id).first()
    if not seat:
        raise HTTPException(status_code=404, detail="Seat not found")
    ensure_branch_access(admin, seat.branch_id)

    window = TimeWindow(start, end)
    repo = AvailabilityRepository()
    repo.lock_seats(db, [seat.id])
    conflicts = conflicting_occupancies(repo.get_occupancies(db, [seat.id], window), window)

    booking_conflicts = [occ for occ in conflicts if occ.kind == OCCUPANCY_BOOKING]
    if booking_conflicts:
        raise HTTPException(
            status_code=409,
            detail={
                "message": f"Seat {seat.seat_code} has bookings in this window",
                "conflicts": describe_conflicts(booking_conflicts),
            },
        )
    block_conflicts = [occ for occ in conflicts if occ.kind == OCCUPANCY_MAINTENANCE]
    if block_conflicts:
        raise HTTPException(
            status_code=409,
            detail={
                "message": f"Seat {seat.seat_code} is already blocked in this window",
                "conflicts": describe_conflicts(block_conflicts),
            },
        )

    block = MaintenanceBlock(
        seat_id=seat.id,
        start_time=start,
        end_time=end,
        reason=data.reason.strip(),
        notes=data.notes,
        created_by=admin.id,
    )
    try:
        db.add(block)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to block seat {seat.seat_code}: {e}")
        raise
    db.refresh(block)

    logger.info(f"🔧 Seat {seat.seat_code} blocked {start} → {end} by admin {admin.username}")
    return _block_response(block)


@router.get("/blocks", response_model=list[MaintenanceBlockResponse])
async def list_blocks(
    seat_id: Optional[int] = Query(None),
    branch_id: Optional[int] = Query(None),
    include_past: bool = Query(False),
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    query = (
        db.query(MaintenanceBlock)
        .join(Seat, MaintenanceBlock.seat_id == Seat.id)
        .options(joinedload(MaintenanceBlock.seat))
    )
    if admin.role != AdminRole.SUPER_ADMIN:
        query = query.filter(Seat.branch_id == admin.branch_id)
    elif branch_id is not None:
        query = query.filter(Seat.branch_id == branch_id)
    if seat_id is not None:
        query = query.filter(MaintenanceBlock.seat_id == seat_id)
    if not include_past:
        query = query.filter(MaintenanceBlock.end_time > datetime.utcnow())

    return [_block_response(block) for block in query.order_by(MaintenanceBlock.start_time).all()]


@router.delete("/blocks/{block_id}")
async def delete_block(
    block_id: int,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    block = db.query(MaintenanceBlock).filter(MaintenanceBlock.id == block_id).first()
    if not block:
        raise HTTPException(status_code=404, detail="Maintenance block not found")
    ensure_branch_access(admin, block.seat.branch_id)

    db.delete(block)
    db.commit()

    logger.info(f"🗑️ Maintenance block {block_id} removed by admin {admin.username}")
    return {"message": "Maintenance block removed"}
