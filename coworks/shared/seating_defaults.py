"""Per seating type defaults applied when an admin leaves options blank"""

from typing import Optional

from ..models import SeatingTypeName

SHORT_CODES = {
    SeatingTypeName.HOT_DESK: "HD",
    SeatingTypeName.DEDICATED_DESK: "DD",
    SeatingTypeName.CUBICLE: "CU",
    SeatingTypeName.MEETING_ROOM: "MR",
    SeatingTypeName.DAILY_PASS: "DP",
}

CAPACITY_OPTIONS = {
    SeatingTypeName.CUBICLE: [1, 2, 4, 6, 8],
    SeatingTypeName.MEETING_ROOM: [4, 6, 8, 10, 12, 16, 20],
}

QUANTITY_OPTIONS = {
    SeatingTypeName.HOT_DESK: [1, 2, 3, 4, 5, 10],
    SeatingTypeName.DEDICATED_DESK: [1, 2, 3, 4, 5],
}

COST_MULTIPLIERS = {
    SeatingTypeName.HOT_DESK: {"1": 1.0, "2": 0.95, "3": 0.90, "4": 0.85, "5": 0.80, "10": 0.75},
    SeatingTypeName.DEDICATED_DESK: {"1": 1.0, "2": 0.95, "3": 0.92, "4": 0.90, "5": 0.85},
}


def default_short_code(name: str) -> str:
    return SHORT_CODES.get(name, name[:2].upper())


def default_capacity_options(name: str) -> Optional[list[int]]:
    options = CAPACITY_OPTIONS.get(name)
    return list(options) if options else None


def default_quantity_options(name: str) -> Optional[list[int]]:
    options = QUANTITY_OPTIONS.get(name)
    return list(options) if options else None


def default_cost_multipliers(name: str) -> Optional[dict[str, float]]:
    multipliers = COST_MULTIPLIERS.get(name)
    return dict(multipliers) if multipliers else None


def seat_code_for(seating_type_code: str, seat_number: str) -> str:
    """HD + 12 -> HD12"""
    return f"{seating_type_code}{seat_number}".upper()
