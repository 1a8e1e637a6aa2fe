"""Support ticket schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

TICKET_CATEGORIES = ("booking", "payment", "facility", "technical", "account", "other")
TICKET_PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT")
TICKET_STATUSES = ("new", "assigned", "in_progress", "resolved", "closed", "reopened")


class TicketCreate(BaseModel):
    category: str
    title: str = Field(..., min_length=3, max_length=255)
    description: str = Field(..., min_length=5)
    priority: str = "MEDIUM"
    branch_id: Optional[int] = None
    booking_id: Optional[int] = None

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        v = v.strip().lower()
        if v not in TICKET_CATEGORIES:
            raise ValueError(f"Category must be one of {', '.join(TICKET_CATEGORIES)}")
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        v = v.strip().upper()
        if v not in TICKET_PRIORITIES:
            raise ValueError(f"Priority must be one of {', '.join(TICKET_PRIORITIES)}")
        return v


class TicketUpdate(BaseModel):
    status: Optional[str] = None
    priority: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if v not in TICKET_STATUSES:
            raise ValueError(f"Status must be one of {', '.join(TICKET_STATUSES)}")
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if v is None:
            return v
        v = v.strip().upper()
        if v not in TICKET_PRIORITIES:
            raise ValueError(f"Priority must be one of {', '.join(TICKET_PRIORITIES)}")
        return v


class TicketAssign(BaseModel):
    admin_id: int


class TicketReply(BaseModel):
    message: str = Field(..., min_length=1)


class TicketMessageResponse(BaseModel):
    id: int
    sender_type: str
    sender_id: Optional[int] = None
    message: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TicketResponse(BaseModel):
    id: int
    ticket_number: str
    customer_id: int
    branch_id: Optional[int] = None
    booking_id: Optional[int] = None
    category: str
    priority: str
    title: str
    description: str
    status: str
    assigned_to: Optional[int] = None
    closed_at: Optional[datetime] = None
    reopened_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TicketDetailResponse(TicketResponse):
    messages: list[TicketMessageResponse] = []
