import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import Admin, AdminRole, BlacklistedToken, Customer, VerificationStatus
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def decode_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials], db: Session
) -> dict:
    """Validate a bearer JWT and make sure it was not revoked on logout"""
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, token length: {len(token)}")
        raise HTTPException(status_code=401, detail="Invalid token format. Expected a valid JWT token.")

    payload = verify_jwt_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    jti = payload.get("jti")
    if jti and db.query(BlacklistedToken).filter(BlacklistedToken.jti == jti).first():
        logger.info(f"🚫 Rejected revoked token jti={jti}")
        raise HTTPException(status_code=401, detail="Token has been revoked")

    return payload


def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> dict:
    return decode_bearer_token(credentials, db)


def get_current_customer(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> Customer:
    """Get current customer from the bearer token"""
    if payload.get("type") != "customer":
        raise HTTPException(status_code=401, detail="Customer token required")

    customer = db.query(Customer).filter(Customer.id == int(payload["sub"])).first()
    if not customer:
        logger.warning(f"⚠️ Token for unknown customer id={payload.get('sub')}")
        raise HTTPException(status_code=401, detail="Customer not found")

    return customer


def get_current_admin(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> Admin:
    """Get current admin (super admin or branch admin) from the bearer token"""
    if payload.get("type") != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")

    admin = db.query(Admin).filter(Admin.id == int(payload["sub"])).first()
    if not admin or not admin.is_active:
        raise HTTPException(status_code=401, detail="Admin account not found or inactive")

    return admin


def require_super_admin(admin: Admin = Depends(get_current_admin)) -> Admin:
    if admin.role != AdminRole.SUPER_ADMIN:
        logger.warning(f"⚠️ Admin {admin.username} attempted a super admin action")
        raise HTTPException(status_code=403, detail="Super admin access required")
    return admin


def ensure_branch_access(admin: Admin, branch_id: Optional[int]) -> None:
    """Branch admins may only act on their own branch"""
    if admin.role == AdminRole.SUPER_ADMIN:
        return
    if branch_id is None or admin.branch_id != branch_id:
        raise HTTPException(status_code=403, detail="You do not have access to this branch")


def require_verified_customer(customer: Customer = Depends(get_current_customer)) -> Customer:
    """
    Allow booking only for verified profiles.

    APPROVED passes. REJECTED, incomplete PENDING and complete PENDING profiles
    are refused with a 403 explaining what is missing.
    """
    if customer.verification_status == VerificationStatus.APPROVED:
        return customer

    if customer.verification_status == VerificationStatus.REJECTED:
        message = (
            "Your profile verification was rejected. "
            "Please update your information and try again."
        )
        if customer.verification_notes:
            message += f" Reason: {customer.verification_notes}"
        raise HTTPException(
            status_code=403,
            detail={
                "message": message,
                "verification_status": customer.verification_status,
                "verification_notes": customer.verification_notes,
            },
        )

    missing_fields = [
        field
        for field in ("proof_of_identity", "proof_of_address", "address")
        if not getattr(customer, field)
    ]
    if missing_fields:
        raise HTTPException(
            status_code=403,
            detail={
                "message": (
                    "Profile verification incomplete. Please complete your profile with proof of "
                    "identity, proof of address, and address before proceeding."
                ),
                "missing_fields": missing_fields,
                "verification_status": customer.verification_status,
            },
        )

    raise HTTPException(
        status_code=403,
        detail={
            "message": (
                "Your profile is awaiting verification by our team. "
                "You will be able to make bookings once your profile is verified."
            ),
            "verification_status": customer.verification_status,
        },
    )


def blacklist_token(db: Session, payload: dict) -> None:
    """Revoke a token until its natural expiry"""
    jti = payload.get("jti")
    if not jti:
        return
    if db.query(BlacklistedToken).filter(BlacklistedToken.jti == jti).first():
        return

    expires_at = datetime.utcfromtimestamp(payload.get("exp", datetime.utcnow().timestamp()))
    db.add(BlacklistedToken(jti=jti, expires_at=expires_at))
    db.commit()
    logger.info(f"✅ Token revoked jti={jti}")
