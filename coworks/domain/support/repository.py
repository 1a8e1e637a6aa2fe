"""Support ticket repository - Database operations for tickets and messages"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import SupportTicket, TicketMessage


class SupportRepository:
    """Repository for support ticket database operations"""

    @staticmethod
    def ticket_number_exists(db: Session, ticket_number: str) -> bool:
        return db.query(SupportTicket.id).filter(SupportTicket.ticket_number == ticket_number).first() is not None

    @staticmethod
    def get_ticket(db: Session, ticket_id: int) -> Optional[SupportTicket]:
        return db.query(SupportTicket).filter(SupportTicket.id == ticket_id).first()

    @staticmethod
    def get_customer_ticket(db: Session, ticket_id: int, customer_id: int) -> Optional[SupportTicket]:
        return (
            db.query(SupportTicket)
            .filter(SupportTicket.id == ticket_id, SupportTicket.customer_id == customer_id)
            .first()
        )

    @staticmethod
    def get_tickets(
        db: Session,
        customer_id: Optional[int] = None,
        branch_id: Optional[int] = None,
        statuses: Optional[list[str]] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        assigned_to: Optional[int] = None,
    ) -> list[SupportTicket]:
        query = db.query(SupportTicket)
        if customer_id is not None:
            query = query.filter(SupportTicket.customer_id == customer_id)
        if branch_id is not None:
            query = query.filter(SupportTicket.branch_id == branch_id)
        if statuses:
            query = query.filter(SupportTicket.status.in_(statuses))
        if priority:
            query = query.filter(SupportTicket.priority == priority)
        if category:
            query = query.filter(SupportTicket.category == category)
        if assigned_to is not None:
            query = query.filter(SupportTicket.assigned_to == assigned_to)
        return query.order_by(SupportTicket.created_at.desc(), SupportTicket.id.desc()).all()

    @staticmethod
    def add_message(
        db: Session, ticket: SupportTicket, sender_type: str, message: str, sender_id: Optional[int] = None
    ) -> TicketMessage:
        """Append a message without committing"""
        entry = TicketMessage(ticket_id=ticket.id, sender_type=sender_type, sender_id=sender_id, message=message)
        ticket.messages.append(entry)
        return entry
