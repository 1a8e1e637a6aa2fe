"""
Customer Profile API Routes

Profile details, verification document uploads and verification status.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from .. import storage
from ..auth import get_current_customer
from ..database import get_db
from ..models import Customer, VerificationStatus
from ..schemas import CustomerResponse, CustomerUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["Profile"])

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "application/pdf"}

# Upload type -> customer column
DOCUMENT_FIELDS = {
    "identity": "proof_of_identity",
    "address": "proof_of_address",
    "picture": "profile_picture",
}


def missing_verification_fields(customer: Customer) -> list[str]:
    return [
        field
        for field in ("proof_of_identity", "proof_of_address", "address")
        if not getattr(customer, field)
    ]


@router.get("", response_model=CustomerResponse)
async def get_profile(customer: Customer = Depends(get_current_customer)):
    return customer


@router.put("", response_model=CustomerResponse)
async def update_profile(
    data: CustomerUpdate,
    customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(customer, key, value)
    db.commit()
    db.refresh(customer)

    logger.info(f"✅ Profile updated for customer {customer.id}")
    return customer


@router.post("/upload", response_model=CustomerResponse)
async def upload_document(
    document_type: str = Form(..., description="identity, address or picture"),
    file: UploadFile = File(...),
    customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    """Store a verification document or profile picture"""
    field = DOCUMENT_FIELDS.get(document_type)
    if not field:
        raise HTTPException(status_code=400, detail="document_type must be identity, address or picture")

    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Only JPEG, PNG, WEBP images or PDF files are accepted")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File exceeds the 5 MB limit")

    key = storage.build_object_key(customer.id, document_type, file.filename or document_type)
    try:
        storage.upload_bytes(key, content, file.content_type)
    except storage.StorageError as e:
        logger.error(f"❌ Upload failed for customer {customer.id}: {e}")
        raise HTTPException(status_code=503, detail="Document storage is unavailable") from e

    setattr(customer, field, key)
    if document_type == "identity":
        customer.is_identity_verified = False
    elif document_type == "address":
        customer.is_address_verified = False

    # A fresh document puts a rejected profile back into review
    if document_type != "picture" and customer.verification_status == VerificationStatus.REJECTED:
        customer.verification_status = VerificationStatus.PENDING
        customer.verification_notes = None

    db.commit()
    db.refresh(customer)

    logger.info(f"📄 Customer {customer.id} uploaded {document_type} document")
    return customer


@router.get("/documents/{document_type}")
async def get_document_url(
    document_type: str,
    customer: Customer = Depends(get_current_customer),
):
    """Short-lived download link for one of the customer's own documents"""
    field = DOCUMENT_FIELDS.get(document_type)
    if not field:
        raise HTTPException(status_code=404, detail="Unknown document type")

    key = getattr(customer, field)
    if not key:
        raise HTTPException(status_code=404, detail="Document not uploaded")

    try:
        url = storage.generate_presigned_url(key)
    except storage.StorageError as e:
        raise HTTPException(status_code=503, detail="Document storage is unavailable") from e
    return {"url": url, "expires_in": storage.PRESIGNED_URL_EXPIRATION}


@router.get("/verification-status")
async def get_verification_status(customer: Customer = Depends(get_current_customer)):
    missing = missing_verification_fields(customer)
    return {
        "verification_status": customer.verification_status,
        "is_identity_verified": customer.is_identity_verified,
        "is_address_verified": customer.is_address_verified,
        "verification_notes": customer.verification_notes,
        "verification_date": customer.verification_date,
        "missing_fields": missing,
        "is_complete": not missing,
        "can_book": customer.verification_status == VerificationStatus.APPROVED,
    }
