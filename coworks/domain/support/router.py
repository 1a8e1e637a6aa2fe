"""Support router - Customer and admin ticket endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin, get_current_customer
from ...database import get_db
from ...models import Admin, Customer
from .schemas import (
    TicketAssign,
    TicketCreate,
    TicketDetailResponse,
    TicketReply,
    TicketResponse,
    TicketUpdate,
)
from .service import SupportService

router = APIRouter(prefix="/support/tickets", tags=["Support"])
admin_router = APIRouter(prefix="/admin/support/tickets", tags=["Admin Support"])


def get_support_service(db: Session = Depends(get_db)) -> SupportService:
    """Dependency injection for SupportService"""
    return SupportService(db)


# ============================================================================
# CUSTOMER
# ============================================================================


@router.post("", response_model=TicketDetailResponse, status_code=201)
async def create_ticket(
    data: TicketCreate,
    customer: Customer = Depends(get_current_customer),
    service: SupportService = Depends(get_support_service),
):
    return service.create_ticket(customer, data)


@router.get("", response_model=list[TicketResponse])
async def list_my_tickets(
    status: Optional[str] = Query(None, description="One status or a comma separated list"),
    customer: Customer = Depends(get_current_customer),
    service: SupportService = Depends(get_support_service),
):
    return service.list_customer_tickets(customer, status)


@router.get("/{ticket_id}", response_model=TicketDetailResponse)
async def get_my_ticket(
    ticket_id: int,
    customer: Customer = Depends(get_current_customer),
    service: SupportService = Depends(get_support_service),
):
    return service.get_customer_ticket(customer, ticket_id)


@router.post("/{ticket_id}/messages", response_model=TicketDetailResponse)
async def reply_to_ticket(
    ticket_id: int,
    data: TicketReply,
    customer: Customer = Depends(get_current_customer),
    service: SupportService = Depends(get_support_service),
):
    return service.customer_reply(customer, ticket_id, data.message)


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.get("", response_model=list[TicketResponse])
async def list_tickets(
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    branch_id: Optional[int] = Query(None),
    assigned_to_me: bool = Query(False),
    admin: Admin = Depends(get_current_admin),
    service: SupportService = Depends(get_support_service),
):
    """Tickets visible to the admin; branch admins only see their branch"""
    return service.list_admin_tickets(admin, status, priority, category, branch_id, assigned_to_me)


@admin_router.get("/{ticket_id}", response_model=TicketDetailResponse)
async def get_ticket(
    ticket_id: int,
    admin: Admin = Depends(get_current_admin),
    service: SupportService = Depends(get_support_service),
):
    return service.get_admin_ticket(admin, ticket_id)


@admin_router.put("/{ticket_id}", response_model=TicketDetailResponse)
async def update_ticket(
    ticket_id: int,
    data: TicketUpdate,
    admin: Admin = Depends(get_current_admin),
    service: SupportService = Depends(get_support_service),
):
    return service.update_ticket(admin, ticket_id, data)


@admin_router.post("/{ticket_id}/assign", response_model=TicketDetailResponse)
async def assign_ticket(
    ticket_id: int,
    data: TicketAssign,
    admin: Admin = Depends(get_current_admin),
    service: SupportService = Depends(get_support_service),
):
    return service.assign_ticket(admin, ticket_id, data.admin_id)


@admin_router.post("/{ticket_id}/messages", response_model=TicketDetailResponse)
async def admin_reply(
    ticket_id: int,
    data: TicketReply,
    admin: Admin = Depends(get_current_admin),
    service: SupportService = Depends(get_support_service),
):
    return service.admin_reply(admin, ticket_id, data.message)
