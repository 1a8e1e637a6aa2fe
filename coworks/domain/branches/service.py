"""Branch service - Business logic for branches and live occupancy stats"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Admin, Branch, Seat, SeatStatus
from ..availability import (
    OCCUPANCY_BOOKING,
    OCCUPANCY_MAINTENANCE,
    AvailabilityRepository,
    TimeWindow,
    busy_seat_ids,
    is_hourly_type,
    natural_sort_key,
)
from .repository import BranchRepository
from .schemas import BranchCreate, BranchSeatResponse, BranchUpdate

logger = logging.getLogger(__name__)


def stats_window(seating_type, day: date, start_time: Optional[time], end_time: Optional[time]) -> TimeWindow:
    """Hourly types use the requested slot when given, everything else the whole day"""
    if is_hourly_type(seating_type) and start_time and end_time and start_time < end_time:
        return TimeWindow(datetime.combine(day, start_time), datetime.combine(day, end_time))
    day_start = datetime.combine(day, time.min)
    return TimeWindow(day_start, day_start + timedelta(days=1))


class BranchService:
    """Service layer for branch business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BranchRepository()
        self.availability = AvailabilityRepository()

    def list_branches(self, search: Optional[str] = None, include_inactive: bool = False) -> list[Branch]:
        return self.repo.get_branches(self.db, search, include_inactive)

    def get_branch(self, code_or_id: str, include_inactive: bool = False) -> Branch:
        branch = self.repo.get_by_code_or_id(self.db, code_or_id)
        if not branch or (not branch.is_active and not include_inactive):
            raise HTTPException(status_code=404, detail="Branch not found")
        return branch

    def get_branch_seats(self, code_or_id: str, seating_type_code: Optional[str] = None) -> list[BranchSeatResponse]:
        branch = self.get_branch(code_or_id)
        seats = self.repo.get_branch_seats(self.db, branch.id, seating_type_code)
        seats.sort(key=lambda seat: natural_sort_key(seat.seat_number))
        return [
            BranchSeatResponse(
                id=seat.id,
                seat_number=seat.seat_number,
                seat_code=seat.seat_code,
                price=seat.price,
                capacity=seat.capacity,
                availability_status=seat.availability_status,
                seating_type_id=seat.seating_type_id,
                seating_type_code=seat.seating_type.short_code if seat.seating_type else None,
                seating_type_name=seat.seating_type.name if seat.seating_type else None,
            )
            for seat in seats
        ]

    def get_stats(
        self,
        branch_code: Optional[str] = None,
        day: Optional[date] = None,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
    ) -> list[dict]:
        """
        Seat counts per branch and seating type for one day or time slot.

        Seats flagged BOOKED by an admin count as statically booked; AVAILABLE
        seats with an overlapping PENDING or CONFIRMED booking count as
        dynamically booked; maintenance blocks take seats out of the pool.
        """
        day = day or datetime.utcnow().date()

        if branch_code:
            branch = self.repo.get_by_short_code(self.db, branch_code)
            if not branch or not branch.is_active:
                raise HTTPException(status_code=404, detail=f"Branch with code {branch_code} not found")
            branches = [branch]
        else:
            branches = self.repo.get_branches(self.db)
            if not branches:
                raise HTTPException(status_code=404, detail="No branches found")

        seating_types = self.repo.get_seating_types(self.db)
        results = []

        for branch in branches:
            branch_stats = {
                "id": branch.id,
                "name": branch.name,
                "short_code": branch.short_code,
                "address": branch.address,
                "location": branch.location,
                "opening_time": branch.opening_time,
                "closing_time": branch.closing_time,
                "total_seats": 0,
                "available_seats": 0,
                "booked_seats": 0,
                "seating_types": [],
            }

            for seating_type in seating_types:
                seats = self.availability.get_seats(self.db, branch.id, seating_type.id)
                if not seats:
                    continue

                type_stats = self._seating_type_stats(
                    seating_type, seats, stats_window(seating_type, day, start_time, end_time)
                )
                branch_stats["seating_types"].append(type_stats)
                branch_stats["total_seats"] += type_stats["total_seats"]
                branch_stats["available_seats"] += type_stats["available_seats"]
                branch_stats["booked_seats"] += type_stats["booked_seats"]

            results.append(branch_stats)

        return results

    def _seating_type_stats(self, seating_type, seats: list[Seat], window: TimeWindow) -> dict:
        occupancies = self.availability.get_occupancies(self.db, [seat.id for seat in seats], window)
        booked_ids = busy_seat_ids([occ for occ in occupancies if occ.kind == OCCUPANCY_BOOKING], window)
        maintenance_ids = busy_seat_ids(
            [occ for occ in occupancies if occ.kind == OCCUPANCY_MAINTENANCE], window
        )

        statically_booked = 0
        dynamically_booked = 0
        maintenance = 0
        available = 0
        seat_stats = []

        for seat in sorted(seats, key=lambda s: natural_sort_key(s.seat_number)):
            has_booking = seat.id in booked_ids
            if seat.availability_status == SeatStatus.BOOKED:
                status = "booked"
                statically_booked += 1
            elif seat.availability_status != SeatStatus.AVAILABLE:
                status = "unavailable"
            elif seat.id in maintenance_ids:
                status = "maintenance"
                maintenance += 1
            elif has_booking:
                status = "booked"
                dynamically_booked += 1
            else:
                status = "available"
                available += 1

            seat_stats.append(
                {
                    "id": seat.id,
                    "seat_code": seat.seat_code,
                    "seat_number": seat.seat_number,
                    "price": seat.price,
                    "status": status,
                    "has_booking": has_booking,
                }
            )

        return {
            "id": seating_type.id,
            "name": seating_type.name,
            "short_code": seating_type.short_code,
            "description": seating_type.description or "",
            "is_hourly": is_hourly_type(seating_type),
            "hourly_rate": seating_type.hourly_rate or 0.0,
            "total_seats": len(seats),
            "available_seats": available,
            "booked_seats": statically_booked + dynamically_booked,
            "statically_booked_seats": statically_booked,
            "dynamically_booked_seats": dynamically_booked,
            "maintenance_seats": maintenance,
            "seats": seat_stats,
        }

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def create_branch(self, data: BranchCreate, admin: Admin) -> Branch:
        if self.repo.get_by_short_code(self.db, data.short_code):
            raise HTTPException(status_code=409, detail=f"Branch code {data.short_code} already exists")
        if data.opening_time >= data.closing_time:
            raise HTTPException(status_code=400, detail="Closing time must be after opening time")

        try:
            branch = self.repo.create(self.db, **data.model_dump())
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create branch {data.short_code}: {e}")
            raise HTTPException(status_code=409, detail="Branch already exists") from e

        logger.info(f"✅ Branch {branch.short_code} created by admin {admin.id}")
        return branch

    def update_branch(self, code_or_id: str, data: BranchUpdate, admin: Admin) -> Branch:
        branch = self.get_branch(code_or_id, include_inactive=True)
        fields = data.model_dump(exclude_unset=True)

        new_code = fields.get("short_code")
        if new_code and new_code != branch.short_code:
            existing = self.repo.get_by_short_code(self.db, new_code)
            if existing and existing.id != branch.id:
                raise HTTPException(status_code=409, detail=f"Branch code {new_code} already exists")

        opening = fields.get("opening_time", branch.opening_time)
        closing = fields.get("closing_time", branch.closing_time)
        if opening and closing and opening >= closing:
            raise HTTPException(status_code=400, detail="Closing time must be after opening time")

        branch = self.repo.update(self.db, branch, **fields)
        logger.info(f"✅ Branch {branch.short_code} updated by admin {admin.id}")
        return branch

    def deactivate_branch(self, code_or_id: str, admin: Admin) -> Branch:
        branch = self.get_branch(code_or_id, include_inactive=True)
        branch = self.repo.update(self.db, branch, is_active=False)
        logger.info(f"🚫 Branch {branch.short_code} deactivated by admin {admin.id}")
        return branch
