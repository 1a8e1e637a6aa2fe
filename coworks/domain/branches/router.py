"""Branch router - FastAPI endpoints for branches"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import require_super_admin
from ...database import get_db
from ...models import Admin
from ...shared.validators import parse_date_param, parse_time_param
from .schemas import (
    BranchCreate,
    BranchResponse,
    BranchSeatResponse,
    BranchStats,
    BranchUpdate,
)
from .service import BranchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/branches", tags=["Branches"])


def get_branch_service(db: Session = Depends(get_db)) -> BranchService:
    """Dependency injection for BranchService"""
    return BranchService(db)


@router.get("", response_model=list[BranchResponse])
async def list_branches(
    search: Optional[str] = Query(None, description="Match on name, city or location"),
    service: BranchService = Depends(get_branch_service),
):
    return service.list_branches(search)


# Declared before /{code} so "stats" is not taken as a branch code
@router.get("/stats", response_model=list[BranchStats])
async def get_branch_stats(
    branch_code: Optional[str] = Query(None),
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    start_time: Optional[str] = Query(None, description="HH:MM, hourly seating only"),
    end_time: Optional[str] = Query(None, description="HH:MM, hourly seating only"),
    service: BranchService = Depends(get_branch_service),
):
    """Seat totals, bookings and availability per branch and seating type"""
    try:
        day = parse_date_param(date, "date")
        start = parse_time_param(start_time, "start_time")
        end = parse_time_param(end_time, "end_time")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return service.get_stats(branch_code, day, start, end)


@router.get("/{code}", response_model=BranchResponse)
async def get_branch(
    code: str,
    service: BranchService = Depends(get_branch_service),
):
    """Get a branch by short code or numeric id"""
    return service.get_branch(code)


@router.get("/{code}/seats", response_model=list[BranchSeatResponse])
async def get_branch_seats(
    code: str,
    seating_type_code: Optional[str] = Query(None),
    service: BranchService = Depends(get_branch_service),
):
    return service.get_branch_seats(code, seating_type_code)


@router.post("", response_model=BranchResponse, status_code=201)
async def create_branch(
    data: BranchCreate,
    admin: Admin = Depends(require_super_admin),
    service: BranchService = Depends(get_branch_service),
):
    return service.create_branch(data, admin)


@router.put("/{code}", response_model=BranchResponse)
async def update_branch(
    code: str,
    data: BranchUpdate,
    admin: Admin = Depends(require_super_admin),
    service: BranchService = Depends(get_branch_service),
):
    return service.update_branch(code, data, admin)


@router.delete("/{code}", response_model=BranchResponse)
async def deactivate_branch(
    code: str,
    admin: Admin = Depends(require_super_admin),
    service: BranchService = Depends(get_branch_service),
):
    """Deactivate a branch; its bookings are kept"""
    return service.deactivate_branch(code, admin)
