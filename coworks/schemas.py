from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .shared.validators import validate_email, validate_indian_phone


class CustomerRegister(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    email: str
    password: str
    phone: Optional[str] = None
    company_name: Optional[str] = None
    address: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_customer_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_indian_phone(v)


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = None
    company_name: Optional[str] = None
    address: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_indian_phone(v)


class CustomerResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str]
    company_name: Optional[str]
    address: Optional[str]
    profile_picture: Optional[str]
    proof_of_identity: Optional[str]
    proof_of_address: Optional[str]
    verification_status: str
    is_identity_verified: bool
    is_address_verified: bool
    verification_notes: Optional[str]
    verification_date: Optional[datetime]
    coin_balance: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginRequest(BaseModel):
    email: str
    password: str


class AdminLoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    customer: Optional[CustomerResponse] = None


class AdminResponse(BaseModel):
    id: int
    username: str
    email: str
    name: str
    role: str
    branch_id: Optional[int]
    is_active: bool
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    admin: AdminResponse


class MessageResponse(BaseModel):
    message: str
