import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pymongo.errors import DuplicateKeyError

from dareon.config import settings
from dareon.models.user_models import User
from dareon.services import user_service
from dareon.services.email_service import (
    EmailDeliveryError,
    send_password_reset_email,
    send_verification_email,
)
from dareon.utils.auth import (
    RESET_TOKEN_TTL,
    TOKEN_COOKIE_NAME,
    VERIFICATION_TOKEN_TTL,
    AuthUtils,
    get_current_user,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _check_password(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters long")
    return v


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(alias="firstName", min_length=2, max_length=50)
    last_name: str = Field(alias="lastName", min_length=2, max_length=50)
    email: EmailStr
    password: str
    company_name: str = Field(alias="companyName", min_length=1)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)


class UpdateDetailsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(default=None, alias="firstName", min_length=2, max_length=50)
    last_name: Optional[str] = Field(default=None, alias="lastName", min_length=2, max_length=50)
    email: Optional[EmailStr] = None


class UpdatePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword")

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)


def _token_response(user_doc: Dict[str, Any], response: Response) -> Dict[str, Any]:
    """Issue a JWT, set it as the `token` cookie and return it with the public user."""
    token = AuthUtils.create_access_token(str(user_doc["_id"]))
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=token,
        max_age=settings.JWT_COOKIE_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return {
        "success": True,
        "token": token,
        "user": User.from_document(user_doc).public_dict(),
    }


def _action_url(request: Request, action: str, raw_token: str) -> str:
    return f"{str(request.base_url).rstrip('/')}{router.prefix}/{action}/{raw_token}"


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, request: Request, response: Response):
    logger.info(f"📝 Register attempt: {payload.email}")

    if await user_service.find_user_by_email(payload.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    try:
        user_doc = await user_service.create_user(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            password_hash=AuthUtils.hash_password(payload.password),
            company_name=payload.company_name,
        )
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Email already registered")

    raw_token, hashed_token = AuthUtils.generate_hashed_token()
    user_doc = await user_service.update_user(user_doc["_id"], {
        "verification_token": hashed_token,
        "verification_token_expire": datetime.now(timezone.utc) + VERIFICATION_TOKEN_TTL,
    })

    try:
        await send_verification_email(
            user_doc["email"], _action_url(request, "verify-email", raw_token)
        )
    except EmailDeliveryError as e:
        logger.error(f"❌ Verification email failed for {user_doc['email']}: {e}")
        await user_service.update_user(
            user_doc["_id"],
            unset_fields=("verification_token", "verification_token_expire"),
        )
        raise HTTPException(status_code=500, detail="Email could not be sent")

    return _token_response(user_doc, response)


@router.post("/login")
async def login(payload: LoginRequest, response: Response):
    logger.info(f"🔐 Login attempt: {payload.email}")

    user_doc = await user_service.find_user_by_email(payload.email)
    if not user_doc or not AuthUtils.verify_password(payload.password, user_doc.get("password")):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    await user_service.record_login(user_doc["_id"])
    user_doc = await user_service.find_user_by_id(user_doc["_id"]) or user_doc

    logger.info(f"✅ Login successful: {payload.email}")
    return _token_response(user_doc, response)


@router.get("/verify-email/{token}")
async def verify_email(token: str):
    user_doc = await user_service.find_user_by_token(
        "verification_token", AuthUtils.hash_token(token)
    )
    if not user_doc:
        raise HTTPException(status_code=400, detail="Invalid token")

    await user_service.update_user(
        user_doc["_id"],
        {"is_email_verified": True},
        unset_fields=("verification_token", "verification_token_expire"),
    )
    logger.info(f"✅ Email verified: {user_doc['email']}")
    return {"success": True, "message": "Email verified successfully"}


@router.post("/forgot-password")
async def forgot_password(payload: ForgotPasswordRequest, request: Request):
    user_doc = await user_service.find_user_by_email(payload.email)
    if not user_doc:
        raise HTTPException(status_code=404, detail="User not found")

    raw_token, hashed_token = AuthUtils.generate_hashed_token()
    await user_service.update_user(user_doc["_id"], {
        "reset_password_token": hashed_token,
        "reset_password_token_expire": datetime.now(timezone.utc) + RESET_TOKEN_TTL,
    })

    try:
        await send_password_reset_email(
            user_doc["email"], _action_url(request, "reset-password", raw_token)
        )
    except EmailDeliveryError as e:
        logger.error(f"❌ Reset email failed for {user_doc['email']}: {e}")
        await user_service.update_user(
            user_doc["_id"],
            unset_fields=("reset_password_token", "reset_password_token_expire"),
        )
        raise HTTPException(status_code=500, detail="Email could not be sent")

    return {"success": True, "message": "Reset password email sent"}


@router.put("/reset-password/{token}")
async def reset_password(token: str, payload: ResetPasswordRequest, response: Response):
    user_doc = await user_service.find_user_by_token(
        "reset_password_token", AuthUtils.hash_token(token)
    )
    if not user_doc:
        raise HTTPException(status_code=400, detail="Invalid token")

    user_doc = await user_service.update_user(
        user_doc["_id"],
        {"password": AuthUtils.hash_password(payload.password)},
        unset_fields=("reset_password_token", "reset_password_token_expire"),
    )
    return _token_response(user_doc, response)


@router.get("/me")
async def get_me(user: User = Depends(get_current_user)):
    return {"success": True, "data": user.public_dict()}


@router.put("/update-details")
async def update_details(payload: UpdateDetailsRequest, user: User = Depends(get_current_user)):
    fields: Dict[str, Any] = {}
    if payload.first_name is not None:
        fields["first_name"] = payload.first_name.strip()
    if payload.last_name is not None:
        fields["last_name"] = payload.last_name.strip()
    if payload.email is not None:
        email = user_service.normalize_email(payload.email)
        if email != user.email:
            existing = await user_service.find_user_by_email(email)
            if existing and str(existing["_id"]) != user.user_id:
                raise HTTPException(status_code=400, detail="Email already registered")
        fields["email"] = email

    user_doc = await user_service.update_user(user.user_id, fields)
    if not user_doc:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": User.from_document(user_doc).public_dict()}


@router.put("/update-password")
async def update_password(
    payload: UpdatePasswordRequest,
    response: Response,
    user: User = Depends(get_current_user),
):
    user_doc = await user_service.find_user_by_id(user.user_id)
    if not user_doc or not AuthUtils.verify_password(payload.current_password, user_doc.get("password")):
        raise HTTPException(status_code=401, detail="Password is incorrect")

    user_doc = await user_service.update_user(
        user.user_id, {"password": AuthUtils.hash_password(payload.new_password)}
    )
    return _token_response(user_doc, response)


@router.get("/logout")
async def logout(response: Response, user: User = Depends(get_current_user)):
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value="none",
        expires=datetime.now(timezone.utc) + timedelta(seconds=10),
        httponly=True,
    )
    logger.info(f"👋 Logout: {user.email}")
    return {"success": True, "data": {}}
