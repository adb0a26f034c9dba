"""
Integration connection flags (Microsoft / Google / TimeTree).

Flags live on the user document under integrations.<provider>.connected; a
successful sync stamps integrations.<provider>.last_synced.
"""

import logging
from datetime import datetime, timezone
from typing import Dict

from dareon.db import mongo_client
from dareon.models.user_models import PROVIDERS
from dareon.services.user_service import to_object_id

logger = logging.getLogger(__name__)


class MongoConnectionStore:
    """ConnectionStore backed by the users collection."""

    def _collection(self):
        return mongo_client.get_users_collection()

    async def is_connected(self, user_id: str, provider: str) -> bool:
        if provider not in PROVIDERS:
            return False
        oid = to_object_id(user_id)
        if oid is None:
            return False

        doc = await self._collection().find_one(
            {"_id": oid}, {f"integrations.{provider}.connected": 1}
        )
        integrations = (doc or {}).get("integrations") or {}
        return bool((integrations.get(provider) or {}).get("connected", False))

    async def mark_synced(self, user_id: str, provider: str) -> None:
        oid = to_object_id(user_id)
        if oid is None:
            return
        await self._collection().update_one(
            {"_id": oid},
            {"$set": {f"integrations.{provider}.last_synced": datetime.now(timezone.utc)}},
        )
        logger.info(f"🔄 {provider} sync recorded for {user_id}")

    async def statuses(self, user_id: str) -> Dict[str, Dict[str, object]]:
        """Connection flag and last sync time for every provider."""
        oid = to_object_id(user_id)
        doc = await self._collection().find_one({"_id": oid}, {"integrations": 1}) if oid else None
        integrations = (doc or {}).get("integrations") or {}
        return {
            provider: {
                "connected": bool((integrations.get(provider) or {}).get("connected", False)),
                "lastSynced": (integrations.get(provider) or {}).get("last_synced"),
            }
            for provider in PROVIDERS
        }
