"""
Module: auth.py
Description: Password hashing and JWT authentication for the Finance Tracker.

Provides:
    - bcrypt password hashing and verification
    - HS256 token issue/verify with the user's email as subject
    - register/login against the account store
    - get_current_user dependency for FastAPI

Usage:
    @app.get("/protected")
    async def protected_route(email: str = Depends(get_current_user)):
        ...
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from dotenv import load_dotenv

from models import User
from services.account_store import AccountStore
from services.errors import ValidationError
from services.observability import logger, metrics

load_dotenv()


# =============================================================================
# Configuration
# =============================================================================

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-change-me-at-least-32-bytes-long")
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_MINUTES = int(os.getenv("JWT_EXPIRATION_MINUTES", str(60 * 24)))


# =============================================================================
# Security Scheme
# =============================================================================

security = HTTPBearer(auto_error=False)


# =============================================================================
# Password Hashing
# =============================================================================

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


# =============================================================================
# JWT Issue / Verify
# =============================================================================

def create_access_token(email: str, expires_minutes: Optional[int] = None) -> str:
    """
    Issue a signed token whose subject is the user's email.

    Args:
        email: Subject claim.
        expires_minutes: Lifetime override; defaults to JWT_EXPIRATION_MINUTES.
    """
    now = datetime.now(timezone.utc)
    lifetime = JWT_EXPIRATION_MINUTES if expires_minutes is None else expires_minutes
    claims = {
        "sub": email,
        "iat": now,
        "exp": now + timedelta(minutes=lifetime),
    }
    return jwt.encode(claims, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Verify a token and return its subject email.

    Raises:
        jwt.ExpiredSignatureError: Token is past its exp claim.
        jwt.InvalidTokenError: Bad signature, malformed, or missing subject.
    """
    claims = jwt.decode(
        token,
        JWT_SECRET_KEY,
        algorithms=[JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )
    email = claims.get("sub")
    if not email:
        raise jwt.InvalidTokenError("missing subject")
    return email


# =============================================================================
# Register / Login
# =============================================================================

def register(store: AccountStore, email: str, password: str) -> User:
    """
    Create a user with a hashed password.

    Raises:
        ValidationError: Blank email/password or email already registered.
    """
    email = (email or "").strip()
    if not email or not password:
        raise ValidationError("Email and password are required")
    if store.find_user_by_email(email):
        raise ValidationError("Email already in use")

    user = store.save(User(email=email, password=hash_password(password)))
    logger.info("User registered", user_id=user.id)
    metrics.increment("auth.registered")
    return user


def login(store: AccountStore, email: str, password: str) -> User:
    """
    Check credentials.

    Raises:
        ValidationError: Same "Invalid credentials" message for unknown
            email and wrong password.
    """
    user = store.find_user_by_email((email or "").strip())
    if user is None or not password or not verify_password(password, user.password):
        metrics.increment("auth.login_failed")
        raise ValidationError("Invalid credentials")

    metrics.increment("auth.login")
    return user


# =============================================================================
# FastAPI Dependencies
# =============================================================================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """
    FastAPI dependency returning the caller's email.

    Raises:
        HTTPException: 401 if the header is missing or the token is invalid
            or expired.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Please sign in.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired. Please sign in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected token", error=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token. Please sign in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )
