"""
Admin API Routes

Admin sign-in, dashboard figures, booking oversight and admin accounts.
Branch admins only see data for their own branch.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ..auth import ensure_branch_access, get_current_admin, require_super_admin
from ..config import ADMIN_TOKEN_EXPIRE_MINUTES
from ..database import get_db
from ..domain.availability import (
    AvailabilityRepository,
    TimeWindow,
    busy_seat_ids,
    conflicting_occupancies,
)
from ..domain.bookings.service import describe_conflicts, serialize_booking
from ..models import (
    Admin,
    AdminRole,
    BookingStatus,
    Branch,
    CancellationReason,
    Customer,
    PaymentStatus,
    Seat,
    SeatBooking,
    VerificationStatus,
)
from ..rate_limiter import create_rate_limiter
from ..schemas import AdminLoginRequest, AdminResponse, AdminTokenResponse
from ..security_utils import check_password_strength, create_jwt_token, hash_password, verify_password
from ..shared.validators import parse_date_param, validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

rate_limit_admin_login = create_rate_limiter(limit=10, window_seconds=300, key_prefix="admin_login")

# Allowed manual status changes
STATUS_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED, BookingStatus.COMPLETED},
    BookingStatus.CANCELLED: {BookingStatus.PENDING, BookingStatus.CONFIRMED},
    BookingStatus.COMPLETED: set(),
}


class BookingStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        v = v.upper()
        if v not in BookingStatus.ALL:
            raise ValueError(f"Status must be one of {', '.join(BookingStatus.ALL)}")
        return v


class AdminCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str
    password: str
    name: str
    role: str = AdminRole.BRANCH_ADMIN
    branch_id: Optional[int] = None

    @field_validator("email")
    @classmethod
    def validate_admin_email(cls, v):
        return validate_email(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v not in (AdminRole.SUPER_ADMIN, AdminRole.BRANCH_ADMIN):
            raise ValueError("Role must be super_admin or branch_admin")
        return v


def scoped_branch_id(admin: Admin, branch_id: Optional[int] = None) -> Optional[int]:
    """Branch filter to apply for this admin; None means every branch"""
    if admin.role == AdminRole.SUPER_ADMIN:
        return branch_id
    ensure_branch_access(admin, branch_id if branch_id is not None else admin.branch_id)
    return admin.branch_id


# ============================================================================
# AUTH
# ============================================================================


@router.post("/auth/login", response_model=AdminTokenResponse)
async def admin_login(
    data: AdminLoginRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_admin_login),
):
    identifier = data.username.strip()
    admin = (
        db.query(Admin)
        .filter(or_(Admin.username == identifier, Admin.email == identifier.lower()))
        .first()
    )
    if not admin or not verify_password(data.password, admin.password_hash):
        logger.warning(f"⚠️ Failed admin login for {identifier}")
        raise HTTPException(status_code=401, detail="Invalid username or password")
    if not admin.is_active:
        raise HTTPException(status_code=403, detail="Admin account is disabled")

    admin.last_login = datetime.utcnow()
    db.commit()
    db.refresh(admin)

    token = create_jwt_token(
        {"sub": str(admin.id), "type": "admin", "role": admin.role, "branch_id": admin.branch_id},
        expires_delta=timedelta(minutes=ADMIN_TOKEN_EXPIRE_MINUTES),
    )
    logger.info(f"🔐 Admin {admin.username} logged in")
    return AdminTokenResponse(
        access_token=token,
        expires_in=ADMIN_TOKEN_EXPIRE_MINUTES * 60,
        admin=AdminResponse.model_validate(admin),
    )


@router.get("/auth/verify", response_model=AdminResponse)
async def verify_admin_token(admin: Admin = Depends(get_current_admin)):
    return admin


# ============================================================================
# DASHBOARD
# ============================================================================


@router.get("/dashboard/stats")
async def get_dashboard_stats(
    branch_id: Optional[int] = Query(None),
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Headline numbers for the dashboard, scoped to the admin's branch"""
    scope = scoped_branch_id(admin, branch_id)
    now = datetime.utcnow()

    seat_query = db.query(Seat)
    booking_query = db.query(SeatBooking).join(Seat, SeatBooking.seat_id == Seat.id)
    branch_query = db.query(Branch).filter(Branch.is_active.is_(True))
    if scope is not None:
        seat_query = seat_query.filter(Seat.branch_id == scope)
        booking_query = booking_query.filter(Seat.branch_id == scope)
        branch_query = branch_query.filter(Branch.id == scope)

    seats = seat_query.all()
    status_counts = dict(
        booking_query.with_entities(SeatBooking.status, func.count(SeatBooking.id))
        .group_by(SeatBooking.status)
        .all()
    )
    active_bookings = booking_query.filter(
        SeatBooking.status == BookingStatus.CONFIRMED,
        SeatBooking.start_time <= now,
        SeatBooking.end_time > now,
    ).count()
    revenue = (
        booking_query.filter(SeatBooking.payment_status == PaymentStatus.COMPLETED)
        .with_entities(func.coalesce(func.sum(SeatBooking.total_price), 0.0))
        .scalar()
    )

    occupied = 0
    if seats:
        current = TimeWindow(now, now + timedelta(seconds=1))
        occupancies = AvailabilityRepository.get_occupancies(
            db, [seat.id for seat in seats], current, include_maintenance=False
        )
        occupied = len(busy_seat_ids(occupancies, current))

    if scope is None:
        total_customers = db.query(Customer).count()
    else:
        total_customers = (
            booking_query.with_entities(func.count(func.distinct(SeatBooking.customer_id))).scalar()
        )
    pending_verifications = (
        db.query(Customer)
        .filter(
            Customer.verification_status == VerificationStatus.PENDING,
            Customer.proof_of_identity.isnot(None),
            Customer.proof_of_address.isnot(None),
        )
        .count()
    )

    return {
        "branch_id": scope,
        "total_branches": branch_query.count(),
        "total_seats": len(seats),
        "total_customers": total_customers,
        "total_bookings": sum(status_counts.values()),
        "bookings_by_status": {status: status_counts.get(status, 0) for status in BookingStatus.ALL},
        "active_bookings": active_bookings,
        "pending_bookings": status_counts.get(BookingStatus.PENDING, 0),
        "total_revenue": round(revenue or 0.0, 2),
        "occupied_seats": occupied,
        "occupancy_rate": round(occupied / len(seats) * 100, 1) if seats else 0.0,
        "pending_verifications": pending_verifications,
    }


# ============================================================================
# BOOKINGS
# ============================================================================


@router.get("/bookings")
async def list_all_bookings(
    status: Optional[str] = Query(None),
    branch_id: Optional[int] = Query(None),
    customer_id: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None, description="Bookings ending on or after this date"),
    end_date: Optional[str] = Query(None, description="Bookings starting on or before this date"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    scope = scoped_branch_id(admin, branch_id)
    try:
        start_day = parse_date_param(start_date, "start_date")
        end_day = parse_date_param(end_date, "end_date")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    query = (
        db.query(SeatBooking)
        .join(Seat, SeatBooking.seat_id == Seat.id)
        .options(joinedload(SeatBooking.seat).joinedload(Seat.branch))
        .options(joinedload(SeatBooking.seat).joinedload(Seat.seating_type))
        .options(joinedload(SeatBooking.customer))
    )
    if scope is not None:
        query = query.filter(Seat.branch_id == scope)
    if status:
        query = query.filter(SeatBooking.status == status.upper())
    if customer_id is not None:
        query = query.filter(SeatBooking.customer_id == customer_id)
    if start_day:
        query = query.filter(SeatBooking.end_time > datetime.combine(start_day, datetime.min.time()))
    if end_day:
        query = query.filter(
            SeatBooking.start_time < datetime.combine(end_day + timedelta(days=1), datetime.min.time())
        )

    total = query.count()
    bookings = query.order_by(SeatBooking.start_time.desc()).offset(offset).limit(limit).all()

    now = datetime.utcnow()
    items = []
    for booking in bookings:
        item = serialize_booking(booking, now).model_dump()
        item["customer_name"] = booking.customer.name if booking.customer else None
        item["customer_email"] = booking.customer.email if booking.customer else None
        items.append(item)

    return {"total": total, "limit": limit, "offset": offset, "bookings": items}


@router.put("/bookings/{booking_id}/status")
async def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Move a booking between statuses; reviving a cancelled booking re-checks the seat"""
    booking = db.query(SeatBooking).filter(SeatBooking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    ensure_branch_access(admin, booking.seat.branch_id)

    if data.status == booking.status:
        return {"message": "Booking status unchanged", "booking": serialize_booking(booking)}

    if data.status not in STATUS_TRANSITIONS.get(booking.status, set()):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot change booking status from {booking.status} to {data.status}",
        )

    if booking.status == BookingStatus.CANCELLED:
        window = TimeWindow(booking.start_time, booking.end_time)
        AvailabilityRepository.lock_seats(db, [booking.seat_id])
        conflicts = conflicting_occupancies(
            AvailabilityRepository.get_occupancies(db, [booking.seat_id], window), window
        )
        if conflicts:
            raise HTTPException(
                status_code=409,
                detail={
                    "message": "Seat is no longer free for this booking's window",
                    "conflicts": describe_conflicts(conflicts),
                },
            )

    previous = booking.status
    booking.status = data.status
    booking.cancellation_reason = CancellationReason.ADMIN if data.status == BookingStatus.CANCELLED else None
    if data.notes:
        booking.notes = ((booking.notes or "") + f"\n{data.notes}").strip()
    db.commit()
    db.refresh(booking)

    logger.info(f"🔄 Booking {booking.id} moved {previous} → {booking.status} by admin {admin.username}")
    return {"message": "Booking status updated", "booking": serialize_booking(booking)}


# ============================================================================
# ADMIN ACCOUNTS
# ============================================================================


@router.get("/users", response_model=list[AdminResponse])
async def list_admins(
    admin: Admin = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    return db.query(Admin).order_by(Admin.id).all()


@router.post("/users", response_model=AdminResponse, status_code=201)
async def create_admin(
    data: AdminCreate,
    admin: Admin = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    """Create a super admin or a branch admin bound to one branch"""
    if data.role == AdminRole.BRANCH_ADMIN:
        if data.branch_id is None:
            raise HTTPException(status_code=400, detail="branch_id is required for branch admins")
        if not db.query(Branch).filter(Branch.id == data.branch_id).first():
            raise HTTPException(status_code=404, detail="Branch not found")

    strength = check_password_strength(data.password)
    if not strength["is_valid"]:
        raise HTTPException(status_code=400, detail={"message": "Password is too weak", "feedback": strength["feedback"]})

    clash = db.query(Admin).filter(or_(Admin.username == data.username, Admin.email == data.email)).first()
    if clash:
        raise HTTPException(status_code=409, detail="An admin with this username or email already exists")

    new_admin = Admin(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        name=data.name,
        role=data.role,
        branch_id=data.branch_id if data.role == AdminRole.BRANCH_ADMIN else None,
    )
    db.add(new_admin)
    db.commit()
    db.refresh(new_admin)

    logger.info(f"✅ Admin {new_admin.username} ({new_admin.role}) created by {admin.username}")
    return new_admin
