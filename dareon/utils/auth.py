"""
JWT Authentication Utilities
Handles password hashing, JWT creation/validation, one-time tokens and the
FastAPI dependencies that guard private routes.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from dareon.config import settings
from dareon.models.user_models import STORAGE_LIMITS, User
from dareon.services import user_service

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
TOKEN_COOKIE_NAME = "token"

# One-time token lifetimes
RESET_TOKEN_TTL = timedelta(minutes=10)
VERIFICATION_TOKEN_TTL = timedelta(hours=24)

# Bearer header is optional: the `token` cookie is accepted as well
security = HTTPBearer(auto_error=False)

NOT_AUTHORIZED = "Not authorized to access this route"


def _bcrypt_safe(password: str) -> str:
    # bcrypt has a 72-byte limit, not character limit
    password_bytes = password.encode("utf-8")
    if len(password_bytes) <= 72:
        return password
    return password_bytes[:72].decode("utf-8", errors="ignore")


class AuthUtils:
    """Authentication utility class for JWT operations"""

    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(_bcrypt_safe(password))

    @staticmethod
    def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
        if not hashed_password:
            return False
        try:
            return pwd_context.verify(_bcrypt_safe(plain_password), hashed_password)
        except ValueError as e:
            logger.error(f"❌ Password verification failed: {e}")
            return False

    @staticmethod
    def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token whose subject is the user id"""
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
        )
        to_encode = {"sub": str(user_id), "exp": expire, "type": "access"}
        return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        """Verify and decode a JWT token"""
        try:
            payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
        except JWTError as e:
            logger.warning(f"JWT Error: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=NOT_AUTHORIZED,
                headers={"WWW-Authenticate": "Bearer"},
            )

        if payload.get("type") != "access" or not payload.get("sub"):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=NOT_AUTHORIZED,
                headers={"WWW-Authenticate": "Bearer"},
            )
        return payload

    @staticmethod
    def hash_token(raw_token: str) -> str:
        return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()

    @staticmethod
    def generate_hashed_token() -> Tuple[str, str]:
        """
        Create a one-time token for email verification / password reset.
        Returns (raw_token, sha256_hash); only the hash is stored.
        """
        raw_token = secrets.token_hex(20)
        return raw_token, AuthUtils.hash_token(raw_token)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_cookie: Optional[str] = Cookie(default=None, alias=TOKEN_COOKIE_NAME),
) -> User:
    """
    FastAPI dependency to get current authenticated user.
    Token comes from `Authorization: Bearer` first, then the `token` cookie.

    Usage: user = Depends(get_current_user)
    """
    token = credentials.credentials if credentials else token_cookie
    if not token or token == "none":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHORIZED)

    payload = AuthUtils.verify_token(token)

    user_doc = await user_service.find_user_by_id(payload["sub"])
    if user_doc is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    user = User.from_document(user_doc)

    if not user.is_email_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Please verify your email address",
        )

    if user.subscription.status != "active":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Subscription inactive or expired",
        )

    return user


def check_subscription(user: User, required_plan: str) -> None:
    """Raise 403 unless the user may use a feature of `required_plan`."""
    subscription = user.subscription
    has_required = subscription.type in (required_plan, "premium")

    if not subscription.is_trial_active() and not has_required:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"This feature requires a {required_plan} subscription",
        )

    limit = STORAGE_LIMITS.get(subscription.type, STORAGE_LIMITS["free"])
    if user.stats.storage_used >= limit:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Storage limit reached for your subscription tier",
        )


def require_subscription(required_plan: str):
    """
    Dependency factory: authenticated user on a trial, the given plan or premium.

    Usage: user = Depends(require_subscription("basic"))
    """
    async def dependency(user: User = Depends(get_current_user)) -> User:
        check_subscription(user, required_plan)
        return user

    return dependency


require_basic_plan = require_subscription("basic")


__all__ = [
    "AuthUtils",
    "check_subscription",
    "get_current_user",
    "pwd_context",
    "require_basic_plan",
    "require_subscription",
    "security",
]
