"""
Admin Customer Verification Routes

Document review workflow: each document is approved or rejected on its own,
and the profile becomes APPROVED once both identity and address pass.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import jobs
from ..auth import get_current_admin
from ..database import get_db
from ..models import Admin, Customer, SeatBooking, VerificationStatus
from ..schemas import CustomerResponse
from .profile import missing_verification_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/customers", tags=["Admin Customers"])

DOCUMENT_COLUMNS = {
    "identity": ("proof_of_identity", "is_identity_verified"),
    "address": ("proof_of_address", "is_address_verified"),
}


class DocumentVerification(BaseModel):
    document_type: str
    approve: bool
    reason: Optional[str] = None

    @field_validator("document_type")
    @classmethod
    def validate_document_type(cls, v):
        if v not in DOCUMENT_COLUMNS:
            raise ValueError("document_type must be identity or address")
        return v

    @model_validator(mode="after")
    def require_reason_on_reject(self):
        if not self.approve and not (self.reason and self.reason.strip()):
            raise ValueError("A reason is required when rejecting a document")
        return self


class ManualVerification(BaseModel):
    status: str
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        v = v.upper()
        if v not in (VerificationStatus.APPROVED, VerificationStatus.REJECTED):
            raise ValueError("status must be APPROVED or REJECTED")
        return v


class ResubmissionRequest(BaseModel):
    document_types: list[str]
    reason: str

    @field_validator("document_types")
    @classmethod
    def validate_document_types(cls, v):
        if not v or any(doc not in DOCUMENT_COLUMNS for doc in v):
            raise ValueError("document_types must list identity and/or address")
        return list(dict.fromkeys(v))


def _get_customer(db: Session, customer_id: int) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


def _stamp_review(customer: Customer, admin: Admin) -> None:
    customer.verification_date = datetime.utcnow()
    customer.verified_by = admin.id


@router.get("", response_model=list[CustomerResponse])
async def list_customers(
    verification_status: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Match on name, email or company"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Customer)
    if verification_status:
        query = query.filter(Customer.verification_status == verification_status.upper())
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(Customer.name.ilike(pattern), Customer.email.ilike(pattern), Customer.company_name.ilike(pattern))
        )
    return query.order_by(Customer.created_at.desc(), Customer.id.desc()).offset(offset).limit(limit).all()


@router.get("/{customer_id}")
async def get_customer(
    customer_id: int,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    customer = _get_customer(db, customer_id)
    booking_count = db.query(SeatBooking).filter(SeatBooking.customer_id == customer.id).count()
    return {
        "customer": CustomerResponse.model_validate(customer),
        "missing_fields": missing_verification_fields(customer),
        "booking_count": booking_count,
    }


@router.post("/{customer_id}/verify-document", response_model=CustomerResponse)
async def verify_document(
    customer_id: int,
    data: DocumentVerification,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Approve or reject one uploaded document"""
    customer = _get_customer(db, customer_id)
    document_column, flag_column = DOCUMENT_COLUMNS[data.document_type]
    if not getattr(customer, document_column):
        raise HTTPException(status_code=400, detail=f"Customer has not uploaded a {data.document_type} document")

    previous_status = customer.verification_status
    setattr(customer, flag_column, data.approve)

    if not data.approve:
        customer.verification_status = VerificationStatus.REJECTED
        customer.verification_notes = f"{data.document_type.capitalize()} document rejected: {data.reason.strip()}"
    elif customer.is_identity_verified and customer.is_address_verified:
        customer.verification_status = VerificationStatus.APPROVED
        customer.verification_notes = None
    _stamp_review(customer, admin)

    db.commit()
    db.refresh(customer)

    logger.info(
        f"🪪 Admin {admin.username} {'approved' if data.approve else 'rejected'} "
        f"{data.document_type} for customer {customer.id}"
    )
    if customer.verification_status != previous_status:
        await jobs.enqueue_job("send_verification_status_task", customer.id)
    return customer


@router.post("/{customer_id}/manual-verify", response_model=CustomerResponse)
async def manual_verify(
    customer_id: int,
    data: ManualVerification,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Set the profile outcome directly, covering both documents"""
    customer = _get_customer(db, customer_id)
    approved = data.status == VerificationStatus.APPROVED

    customer.verification_status = data.status
    customer.is_identity_verified = approved
    customer.is_address_verified = approved
    customer.verification_notes = data.notes
    _stamp_review(customer, admin)

    db.commit()
    db.refresh(customer)

    logger.info(f"🪪 Admin {admin.username} manually set customer {customer.id} to {data.status}")
    await jobs.enqueue_job("send_verification_status_task", customer.id)
    return customer


@router.post("/{customer_id}/request-resubmission", response_model=CustomerResponse)
async def request_resubmission(
    customer_id: int,
    data: ResubmissionRequest,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Clear documents so the customer uploads them again"""
    customer = _get_customer(db, customer_id)

    for document_type in data.document_types:
        document_column, flag_column = DOCUMENT_COLUMNS[document_type]
        setattr(customer, document_column, None)
        setattr(customer, flag_column, False)

    labels = " and ".join(data.document_types)
    customer.verification_status = VerificationStatus.REJECTED
    customer.verification_notes = f"Please resubmit your {labels} document(s): {data.reason.strip()}"
    _stamp_review(customer, admin)

    db.commit()
    db.refresh(customer)

    logger.info(f"📄 Admin {admin.username} requested {labels} resubmission from customer {customer.id}")
    await jobs.enqueue_job("send_verification_status_task", customer.id)
    return customer
