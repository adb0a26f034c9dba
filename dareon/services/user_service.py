"""
User persistence helpers.

All reads/writes of the users collection go through here so that routers,
auth dependencies and the integration store share one document layout:

    {
        first_name, last_name, email, password, company_name, role,
        subscription: {type, start_date, end_date, status},
        integrations: {microsoft|google|timeTree: {connected, last_synced}},
        stats: {files_managed, storage_used, last_login, login_count},
        is_email_verified,
        verification_token, verification_token_expire,
        reset_password_token, reset_password_token_expire,
        created_at, updated_at
    }
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from dareon.config import settings
from dareon.db import mongo_client
from dareon.models.user_models import PROVIDERS

logger = logging.getLogger(__name__)


def to_object_id(user_id: Any) -> Optional[ObjectId]:
    if isinstance(user_id, ObjectId):
        return user_id
    try:
        return ObjectId(str(user_id))
    except (InvalidId, TypeError):
        return None


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def new_user_document(
    first_name: str,
    last_name: str,
    email: str,
    password_hash: str,
    company_name: str,
) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "first_name": first_name.strip(),
        "last_name": last_name.strip(),
        "email": normalize_email(email),
        "password": password_hash,
        "company_name": company_name.strip(),
        "role": "user",
        "subscription": {
            "type": "free",
            "start_date": now,
            "end_date": now + timedelta(days=settings.FREE_TRIAL_DAYS),
            "status": "active",
        },
        "integrations": {
            provider: {"connected": False, "last_synced": None} for provider in PROVIDERS
        },
        "stats": {
            "files_managed": 0,
            "storage_used": 0,
            "last_login": None,
            "login_count": 0,
        },
        "is_email_verified": False,
        "created_at": now,
        "updated_at": now,
    }


async def find_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    return await mongo_client.get_users_collection().find_one(
        {"email": normalize_email(email)}
    )


async def find_user_by_id(user_id: Any) -> Optional[Dict[str, Any]]:
    oid = to_object_id(user_id)
    if oid is None:
        return None
    return await mongo_client.get_users_collection().find_one({"_id": oid})


async def create_user(**fields) -> Dict[str, Any]:
    """Insert a fresh user (14-day free trial) and return the stored document."""
    doc = new_user_document(**fields)
    result = await mongo_client.get_users_collection().insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"✅ User created: {doc['email']} ({result.inserted_id})")
    return doc


async def update_user(
    user_id: Any,
    set_fields: Optional[Dict[str, Any]] = None,
    unset_fields: tuple = (),
) -> Optional[Dict[str, Any]]:
    oid = to_object_id(user_id)
    if oid is None:
        return None

    update: Dict[str, Any] = {
        "$set": {**(set_fields or {}), "updated_at": datetime.now(timezone.utc)}
    }
    if unset_fields:
        update["$unset"] = {field: "" for field in unset_fields}

    return await mongo_client.get_users_collection().find_one_and_update(
        {"_id": oid},
        update,
        return_document=ReturnDocument.AFTER,
    )


async def find_user_by_token(token_field: str, hashed_token: str) -> Optional[Dict[str, Any]]:
    """Look up a user by a hashed one-time token that has not expired yet."""
    return await mongo_client.get_users_collection().find_one({
        token_field: hashed_token,
        f"{token_field}_expire": {"$gt": datetime.now(timezone.utc)},
    })


async def record_login(user_id: Any) -> None:
    oid = to_object_id(user_id)
    if oid is None:
        return
    await mongo_client.get_users_collection().update_one(
        {"_id": oid},
        {
            "$set": {"stats.last_login": datetime.now(timezone.utc)},
            "$inc": {"stats.login_count": 1},
        },
    )


async def increment_file_stats(user_id: Any, bytes_added: int, files_added: int) -> None:
    oid = to_object_id(user_id)
    if oid is None:
        return
    await mongo_client.get_users_collection().update_one(
        {"_id": oid},
        {"$inc": {"stats.storage_used": bytes_added, "stats.files_managed": files_added}},
    )
    logger.debug(f"📈 Stats updated for {user_id}: +{bytes_added} bytes, +{files_added} files")
