import logging
from typing import Optional
from urllib.parse import quote_plus, unquote_plus

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from dareon.config import settings

logger = logging.getLogger(__name__)


def _sanitize_mongo_uri(uri: str) -> str:
    """
    Ensure username/password are RFC 3986 escaped in the MongoDB URI.
    - Decodes any existing userinfo first to avoid double-encoding
    - Splits on the LAST @ so passwords may contain @
    Supports both `mongodb://` and `mongodb+srv://` URIs.
    """
    for scheme in ("mongodb+srv://", "mongodb://"):
        if uri.startswith(scheme):
            rest = uri[len(scheme):]
            break
    else:
        return uri

    if "@" not in rest:
        return uri

    userinfo, host_and_path = rest.rsplit("@", 1)
    user, sep, pwd = userinfo.partition(":")

    safe_user = quote_plus(unquote_plus(user)) if user else ""
    safe_pwd = quote_plus(unquote_plus(pwd)) if pwd else ""

    new_userinfo = f"{safe_user}{sep}{safe_pwd}"
    return f"{scheme}{new_userinfo}@{host_and_path}"


def _build_client() -> AsyncIOMotorClient:
    return AsyncIOMotorClient(
        _sanitize_mongo_uri(settings.MONGO_URI),
        minPoolSize=5,
        maxPoolSize=100,
    )


# Built on first use (Motor does no I/O until the first query) and reset by close_mongo
client: Optional[AsyncIOMotorClient] = None
db: Optional[AsyncIOMotorDatabase] = None


def get_database() -> AsyncIOMotorDatabase:
    """
    Returns the main MongoDB database, creating the pooled client if needed.
    Usage: db = get_database()
    """
    global client, db
    if db is None:
        client = _build_client()
        db = client[settings.MONGO_DB_NAME]
    return db


def get_users_collection():
    """📌 users - profile, subscription, integration flags, stats"""
    return get_database().users


def get_command_history_collection():
    """📌 command_history - one document per AI command invocation"""
    return get_database().command_history


async def connect_to_mongo():
    """
    Establish pooled MongoDB connection (singleton).
    """
    get_database()
    logger.info("✅ MongoDB connection pool created (db=%s)", settings.MONGO_DB_NAME)


async def close_mongo():
    """
    Close pooled MongoDB connection.
    """
    global client, db
    if client is not None:
        client.close()
        logger.info("🛑 MongoDB connection closed")
    client = None
    db = None


async def initialize_indexes():
    """
    Index strategy:
    - users.email unique (fast login, no duplicate accounts)
    - token lookups for email verification / password reset
    - command history by (user_id, created_at) for the history endpoint
    """
    try:
        users = get_users_collection()
        history = get_command_history_collection()

        await users.create_index("email", unique=True)
        logger.info("  ✅ users.email (unique)")

        await users.create_index("verification_token", sparse=True)
        await users.create_index("reset_password_token", sparse=True)
        logger.info("  ✅ users token lookups")

        await history.create_index([
            ("user_id", 1),
            ("created_at", -1)  # Descending for recent-first history
        ])
        logger.info("  ✅ (user_id, created_at) - Recent command history")
    except Exception as e:
        logger.warning(f"⚠️ MongoDB index creation warning: {e}")
