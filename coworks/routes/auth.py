import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import jobs
from ..auth import blacklist_token, get_token_payload
from ..config import ACCESS_TOKEN_EXPIRE_MINUTES, FRONTEND_URL, PASSWORD_RESET_MAX_AGE_SECONDS
from ..database import get_db
from ..models import Customer, VerificationStatus
from ..rate_limiter import create_rate_limiter
from ..schemas import (
    CustomerRegister,
    CustomerResponse,
    LoginRequest,
    MessageResponse,
    TokenResponse,
)
from ..security_utils import (
    check_password_strength,
    create_jwt_token,
    generate_timed_token,
    hash_password,
    mask_sensitive_data,
    verify_password,
    verify_timed_token,
)
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

# Rate limiters for auth endpoints
rate_limit_register = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="register")
rate_limit_login = create_rate_limiter(limit=10, window_seconds=300, key_prefix="login")
rate_limit_password_reset = create_rate_limiter(limit=3, window_seconds=3600, key_prefix="password_reset")


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str


def issue_customer_token(customer: Customer) -> TokenResponse:
    token = create_jwt_token(
        {"sub": str(customer.id), "type": "customer", "email": customer.email},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return TokenResponse(
        access_token=token,
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        customer=CustomerResponse.model_validate(customer),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    data: CustomerRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_register),
):
    """Create a customer account and sign it in"""
    strength = check_password_strength(data.password)
    if not strength["is_valid"]:
        raise HTTPException(status_code=400, detail={"message": "Password is too weak", "feedback": strength["feedback"]})

    if db.query(Customer).filter(Customer.email == data.email).first():
        raise HTTPException(status_code=409, detail="An account with this email already exists")

    customer = Customer(
        name=data.name.strip(),
        email=data.email,
        phone=data.phone,
        password_hash=hash_password(data.password),
        company_name=data.company_name,
        address=data.address,
        verification_status=VerificationStatus.PENDING,
    )
    try:
        db.add(customer)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail="An account with this email already exists") from e
    db.refresh(customer)

    logger.info(f"✅ Customer registered: {mask_sensitive_data(customer.email)} (id={customer.id})")
    return issue_customer_token(customer)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_login),
):
    email = data.email.strip().lower()
    customer = db.query(Customer).filter(Customer.email == email).first()
    if not customer or not verify_password(data.password, customer.password_hash):
        logger.warning(f"⚠️ Failed login for {mask_sensitive_data(email)}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    logger.info(f"🔐 Customer {customer.id} logged in")
    return issue_customer_token(customer)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
):
    """Revoke the presented token"""
    blacklist_token(db, payload)
    return {"message": "Logged out successfully"}


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_password_reset),
):
    """Email a reset link; the response never reveals whether the account exists"""
    generic = {"message": "If an account exists for this email, a reset link has been sent"}

    try:
        email = validate_email(data.email)
    except ValueError:
        return generic

    customer = db.query(Customer).filter(Customer.email == email).first()
    if not customer:
        logger.info(f"ℹ️ Password reset requested for unknown email {mask_sensitive_data(email)}")
        return generic

    # Invalidated once the password changes
    token = generate_timed_token(
        {"customer_id": customer.id, "email": customer.email, "pwd": customer.password_hash[-12:]}
    )
    reset_link = f"{FRONTEND_URL}/reset-password?token={token}"
    await jobs.enqueue_job("send_password_reset_email_task", customer.email, reset_link)

    logger.info(f"📧 Password reset link issued for customer {customer.id}")
    return generic


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_password_reset),
):
    payload = verify_timed_token(data.token, max_age=PASSWORD_RESET_MAX_AGE_SECONDS)
    if not payload:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    customer = db.query(Customer).filter(Customer.id == payload.get("customer_id")).first()
    if (
        not customer
        or customer.email != payload.get("email")
        or customer.password_hash[-12:] != payload.get("pwd")
    ):
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    strength = check_password_strength(data.new_password)
    if not strength["is_valid"]:
        raise HTTPException(status_code=400, detail={"message": "Password is too weak", "feedback": strength["feedback"]})

    customer.password_hash = hash_password(data.new_password)
    db.commit()

    logger.info(f"✅ Password reset for customer {customer.id}")
    return {"message": "Password has been reset successfully"}
