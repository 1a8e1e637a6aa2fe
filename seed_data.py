"""
Seed default seating types, branches and seats
Usage: python seed_data.py [--seats-per-type N]

Existing rows (matched by short code / seat code) are left untouched, so the
script can be re-run safely.
"""
import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from coworks.database import Base, SessionLocal, engine
from coworks.models import Branch, Seat, SeatingType, SeatingTypeName, SeatStatus
from coworks.shared.seating_defaults import (
    default_capacity_options,
    default_cost_multipliers,
    default_quantity_options,
    default_short_code,
    seat_code_for,
)

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

SEATING_TYPES = [
    {
        "name": SeatingTypeName.HOT_DESK,
        "description": "Flexible desk space with a minimum 2-month commitment",
        "monthly_rate": 6000.0,
        "daily_rate": 400.0,
        "is_hourly": False,
        "min_booking_duration": 2,
    },
    {
        "name": SeatingTypeName.DEDICATED_DESK,
        "description": "Permanently assigned desk with a minimum 3-month commitment",
        "monthly_rate": 8000.0,
        "is_hourly": False,
        "min_booking_duration": 3,
    },
    {
        "name": SeatingTypeName.CUBICLE,
        "description": "Semi-private workspace with a minimum 3-month commitment",
        "monthly_rate": 12000.0,
        "is_hourly": False,
        "min_booking_duration": 3,
    },
    {
        "name": SeatingTypeName.MEETING_ROOM,
        "description": "Private room for meetings and conferences",
        "hourly_rate": 500.0,
        "is_hourly": True,
        "min_booking_duration": 2,
    },
    {
        "name": SeatingTypeName.DAILY_PASS,
        "description": "Full day access to hot desk spaces based on availability",
        "daily_rate": 800.0,
        "is_hourly": False,
        "min_booking_duration": 1,
    },
]

BRANCHES = [
    {
        "name": "Outer Ringroad",
        "short_code": "ORR",
        "address": "#552, 3rd floor, Service Road Nagarabhavi, Bengaluru-560072",
        "location": "Outer Ringroad",
        "postal_code": "560072",
        "latitude": 12.960887,
        "longitude": 77.509511,
        "cost_multiplier": 1.0,
    },
    {
        "name": "Nagarabhavi",
        "short_code": "NAG",
        "address": "#2, 3rd & 4th floor, 80 feet Road, Nagarabhavi, Bengaluru-560072",
        "location": "Nagarabhavi",
        "postal_code": "560072",
        "latitude": 12.960887,
        "longitude": 77.509511,
        "cost_multiplier": 1.10,
    },
    {
        "name": "Kengeri Ring Road",
        "short_code": "KRR",
        "address": "#103, 3rd floor, Kengeri Ring Road, Bengaluru-560056",
        "location": "Kengeri Ring Road",
        "postal_code": "560056",
        "latitude": 12.962268,
        "longitude": 77.512293,
        "cost_multiplier": 0.95,
    },
    {
        "name": "Papareddypalya",
        "short_code": "PAP",
        "address": "#962/171, 1st floor, Old Ring Road, Papareddypalya, Bengaluru-560072",
        "location": "Papareddypalya",
        "postal_code": "560072",
        "latitude": 12.970299,
        "longitude": 77.506824,
        "cost_multiplier": 1.05,
    },
]

# Room sizes cycle through the capacity options of the type
SEAT_CAPACITY = {
    SeatingTypeName.CUBICLE: [2, 4, 6],
    SeatingTypeName.MEETING_ROOM: [6, 10, 16],
}


def seed_seating_types(db) -> list[SeatingType]:
    seating_types = []
    for data in SEATING_TYPES:
        short_code = default_short_code(data["name"])
        seating_type = db.query(SeatingType).filter(SeatingType.short_code == short_code).first()
        if seating_type:
            logger.info(f"⏭️  Seating type {short_code} already exists")
        else:
            seating_type = SeatingType(
                short_code=short_code,
                capacity_options=default_capacity_options(data["name"]),
                quantity_options=default_quantity_options(data["name"]),
                cost_multiplier=default_cost_multipliers(data["name"]),
                min_seats=1,
                **data,
            )
            db.add(seating_type)
            logger.info(f"✅ Seating type {short_code} created")
        seating_types.append(seating_type)
    db.flush()
    return seating_types


def seed_branches(db) -> list[Branch]:
    branches = []
    for data in BRANCHES:
        branch = db.query(Branch).filter(Branch.short_code == data["short_code"]).first()
        if branch:
            logger.info(f"⏭️  Branch {data['short_code']} already exists")
        else:
            branch = Branch(city="Bengaluru", state="Karnataka", opening_time="08:00", closing_time="22:00", **data)
            db.add(branch)
            logger.info(f"✅ Branch {data['short_code']} created")
        branches.append(branch)
    db.flush()
    return branches


def seed_seats(db, branches: list[Branch], seating_types: list[SeatingType], per_type: int) -> int:
    created = 0
    for branch in branches:
        for seating_type in seating_types:
            capacities = SEAT_CAPACITY.get(seating_type.name)
            for number in range(1, per_type + 1):
                seat_code = seat_code_for(seating_type.short_code, str(number))
                exists = (
                    db.query(Seat.id).filter(Seat.branch_id == branch.id, Seat.seat_code == seat_code).first()
                )
                if exists:
                    continue
                db.add(
                    Seat(
                        branch_id=branch.id,
                        seating_type_id=seating_type.id,
                        seat_number=str(number),
                        seat_code=seat_code,
                        capacity=capacities[(number - 1) % len(capacities)] if capacities else None,
                        availability_status=SeatStatus.AVAILABLE,
                    )
                )
                created += 1
    return created


def main(per_type: int):
    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()
    try:
        seating_types = seed_seating_types(db)
        branches = seed_branches(db)
        created = seed_seats(db, branches, seating_types, per_type)
        db.commit()
        logger.info(f"✅ Seed complete: {len(branches)} branches, {len(seating_types)} seating types, {created} new seats")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed default coworking data")
    parser.add_argument("--seats-per-type", type=int, default=10)
    args = parser.parse_args()

    try:
        main(args.seats_per_type)
    except Exception as e:
        logger.error(f"❌ Seeding failed: {e}")
        sys.exit(1)
