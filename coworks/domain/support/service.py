"""Support ticket service - Business logic for customer tickets and admin handling"""

import logging
import time
import uuid
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Admin, AdminRole, Branch, Customer, SeatBooking, SupportTicket
from .repository import SupportRepository
from .schemas import TicketCreate, TicketUpdate

logger = logging.getLogger(__name__)

SENDER_CUSTOMER = "customer"
SENDER_ADMIN = "admin"
SENDER_SYSTEM = "system"

FINISHED_STATUSES = ("resolved", "closed")


def generate_ticket_number() -> str:
    """TKT-<6 random chars>-<last 7 digits of the epoch millis>"""
    random_part = uuid.uuid4().hex[:6].upper()
    timestamp = str(int(time.time() * 1000))[-7:]
    return f"TKT-{random_part}-{timestamp}"


class SupportService:
    """Service layer for support ticket business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SupportRepository()

    def _unique_ticket_number(self) -> str:
        for _ in range(5):
            number = generate_ticket_number()
            if not self.repo.ticket_number_exists(self.db, number):
                return number
        raise HTTPException(status_code=500, detail="Could not allocate a ticket number")

    def _set_status(self, ticket: SupportTicket, status: str, actor: str) -> None:
        """Change status, stamping close/reopen times and logging a system message"""
        if status == ticket.status:
            return
        previous = ticket.status
        ticket.status = status
        if status == "closed":
            ticket.closed_at = datetime.utcnow()
        elif status == "reopened":
            ticket.reopened_at = datetime.utcnow()
        self.repo.add_message(
            self.db, ticket, SENDER_SYSTEM, f"Ticket status changed from {previous} to {status} by {actor}"
        )

    # ------------------------------------------------------------------
    # Customer side
    # ------------------------------------------------------------------

    def create_ticket(self, customer: Customer, data: TicketCreate) -> SupportTicket:
        branch_id = data.branch_id
        if data.booking_id is not None:
            booking = (
                self.db.query(SeatBooking)
                .filter(SeatBooking.id == data.booking_id, SeatBooking.customer_id == customer.id)
                .first()
            )
            if not booking:
                raise HTTPException(status_code=404, detail="Booking not found")
            if branch_id is None:
                branch_id = booking.seat.branch_id

        if branch_id is not None and not self.db.query(Branch).filter(Branch.id == branch_id).first():
            raise HTTPException(status_code=404, detail="Branch not found")

        ticket = SupportTicket(
            ticket_number=self._unique_ticket_number(),
            customer_id=customer.id,
            branch_id=branch_id,
            booking_id=data.booking_id,
            category=data.category,
            priority=data.priority,
            title=data.title.strip(),
            description=data.description.strip(),
            status="new",
        )
        self.db.add(ticket)
        self.repo.add_message(self.db, ticket, SENDER_SYSTEM, "Ticket created and assigned to support team.")

        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create ticket for customer {customer.id}: {e}")
            raise
        self.db.refresh(ticket)

        logger.info(f"🎫 Ticket {ticket.ticket_number} opened by customer {customer.id}")
        return ticket

    def list_customer_tickets(self, customer: Customer, status: Optional[str] = None) -> list[SupportTicket]:
        statuses = [s.strip().lower() for s in status.split(",")] if status else None
        return self.repo.get_tickets(self.db, customer_id=customer.id, statuses=statuses)

    def get_customer_ticket(self, customer: Customer, ticket_id: int) -> SupportTicket:
        ticket = self.repo.get_customer_ticket(self.db, ticket_id, customer.id)
        if not ticket:
            raise HTTPException(status_code=404, detail="Support ticket not found")
        return ticket

    def customer_reply(self, customer: Customer, ticket_id: int, message: str) -> SupportTicket:
        """A reply on a resolved or closed ticket reopens it"""
        ticket = self.get_customer_ticket(customer, ticket_id)
        if ticket.status in FINISHED_STATUSES:
            self._set_status(ticket, "reopened", "customer")
        self.repo.add_message(self.db, ticket, SENDER_CUSTOMER, message.strip(), customer.id)
        ticket.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(ticket)
        return ticket

    # ------------------------------------------------------------------
    # Admin side
    # ------------------------------------------------------------------

    def _admin_ticket(self, admin: Admin, ticket_id: int) -> SupportTicket:
        ticket = self.repo.get_ticket(self.db, ticket_id)
        if not ticket:
            raise HTTPException(status_code=404, detail="Support ticket not found")
        if admin.role != AdminRole.SUPER_ADMIN and ticket.branch_id != admin.branch_id:
            raise HTTPException(status_code=403, detail="You do not have access to this ticket")
        return ticket

    def list_admin_tickets(
        self,
        admin: Admin,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        branch_id: Optional[int] = None,
        assigned_to_me: bool = False,
    ) -> list[SupportTicket]:
        if admin.role != AdminRole.SUPER_ADMIN:
            branch_id = admin.branch_id
        statuses = [s.strip().lower() for s in status.split(",")] if status else None
        return self.repo.get_tickets(
            self.db,
            branch_id=branch_id,
            statuses=statuses,
            priority=priority.upper() if priority else None,
            category=category.lower() if category else None,
            assigned_to=admin.id if assigned_to_me else None,
        )

    def get_admin_ticket(self, admin: Admin, ticket_id: int) -> SupportTicket:
        return self._admin_ticket(admin, ticket_id)

    def update_ticket(self, admin: Admin, ticket_id: int, data: TicketUpdate) -> SupportTicket:
        ticket = self._admin_ticket(admin, ticket_id)
        if data.status:
            self._set_status(ticket, data.status, admin.username)
        if data.priority and data.priority != ticket.priority:
            self.repo.add_message(
                self.db,
                ticket,
                SENDER_SYSTEM,
                f"Priority changed from {ticket.priority} to {data.priority} by {admin.username}",
            )
            ticket.priority = data.priority
        self.db.commit()
        self.db.refresh(ticket)

        logger.info(f"🎫 Ticket {ticket.ticket_number} updated by admin {admin.username}")
        return ticket

    def assign_ticket(self, admin: Admin, ticket_id: int, assignee_id: int) -> SupportTicket:
        ticket = self._admin_ticket(admin, ticket_id)
        assignee = self.db.query(Admin).filter(Admin.id == assignee_id, Admin.is_active.is_(True)).first()
        if not assignee:
            raise HTTPException(status_code=404, detail="Admin not found")
        if (
            assignee.role != AdminRole.SUPER_ADMIN
            and ticket.branch_id is not None
            and assignee.branch_id != ticket.branch_id
        ):
            raise HTTPException(status_code=400, detail="Assignee does not manage this ticket's branch")

        ticket.assigned_to = assignee.id
        self.repo.add_message(self.db, ticket, SENDER_SYSTEM, f"Ticket assigned to {assignee.name}")
        if ticket.status in ("new", "reopened"):
            self._set_status(ticket, "assigned", admin.username)
        self.db.commit()
        self.db.refresh(ticket)

        logger.info(f"🎫 Ticket {ticket.ticket_number} assigned to {assignee.username}")
        return ticket

    def admin_reply(self, admin: Admin, ticket_id: int, message: str) -> SupportTicket:
        ticket = self._admin_ticket(admin, ticket_id)
        self.repo.add_message(self.db, ticket, SENDER_ADMIN, message.strip(), admin.id)
        if ticket.status in ("new", "assigned", "reopened"):
            self._set_status(ticket, "in_progress", admin.username)
        ticket.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(ticket)
        return ticket
