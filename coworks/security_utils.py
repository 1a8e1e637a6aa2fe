"""
Security Utilities
Password hashing, JWT access tokens and timed reset tokens
"""

import logging
import os
import re
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

# Token generation and validation
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from jose import JWTError
from jose import jwt as jose_jwt

# Password hashing
from passlib.context import CryptContext

from .config import JWT_ALGORITHM, SECRET_KEY

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error(f"Password verification error: {e}")
        return False


def check_password_strength(password: str) -> dict[str, Any]:
    """
    Check password strength and return feedback

    Returns:
        dict with 'feedback' (list of unmet requirements) and 'is_valid' (bool)
    """
    feedback = []

    if len(password) < 8:
        feedback.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Za-z]", password):
        feedback.append("Add letters")
    if not re.search(r"\d", password):
        feedback.append("Add numbers")

    common_passwords = ["password", "12345678", "qwerty123", "password1"]
    if password.lower() in common_passwords:
        feedback.append("This is a commonly used password - choose something unique")

    return {"feedback": feedback, "is_valid": not feedback}


# ============================================================================
# TOKEN GENERATION & VALIDATION
# ============================================================================


def generate_timed_token(data: dict[str, Any], salt: str = "password-reset") -> str:
    """
    Generate a time-limited token using itsdangerous
    Used for password reset links
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    return serializer.dumps(data, salt=salt)


def verify_timed_token(
    token: str, max_age: int = 3600, salt: str = "password-reset"
) -> Optional[dict[str, Any]]:
    """
    Verify and decode a timed token

    Returns:
        Decoded data if valid, None if invalid or expired
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    try:
        return serializer.loads(token, salt=salt, max_age=max_age)
    except SignatureExpired:
        logger.warning("Token expired")
        return None
    except BadSignature:
        logger.warning("Invalid token signature")
        return None


def create_jwt_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token

    Every token carries a unique ``jti`` so it can be revoked on logout.

    Args:
        data: Claims to encode in the token
        expires_delta: Token expiration time (default 15 minutes)
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire, "iat": datetime.utcnow(), "jti": uuid.uuid4().hex})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


# ============================================================================
# INPUT SANITIZATION
# ============================================================================


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent directory traversal and other attacks

    Args:
        filename: Original filename

    Returns:
        Safe filename
    """
    # Remove path components
    filename = os.path.basename(filename or "")

    # Remove or replace dangerous characters
    filename = re.sub(r"[^\w\s\-\.]", "", filename)
    filename = filename.strip(". ").replace(" ", "_")

    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[: 255 - len(ext)] + ext

    if not filename:
        filename = f"file_{secrets.token_urlsafe(8)}"

    return filename


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """Mask sensitive data for logging/display"""
    if len(data) <= visible_chars:
        return "*" * len(data)

    return "*" * (len(data) - visible_chars) + data[-visible_chars:]
