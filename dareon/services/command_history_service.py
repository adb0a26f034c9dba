"""
Command history: one document per AI command invocation.

CommandAuditLog is the audit collaborator of CommandService. Recording is
fire-and-forget: a failed write is logged, never raised into the request.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from pymongo.errors import PyMongoError

from dareon.config import settings
from dareon.db import mongo_client
from dareon.utils.structured_logging import StructuredLogger

logger = logging.getLogger(__name__)


class CommandAuditLog:

    def _collection(self):
        return mongo_client.get_command_history_collection()

    async def record(self, event: Dict[str, Any]) -> None:
        StructuredLogger.log_command(
            user_id=event["user_id"],
            command=event.get("command") or "",
            latency_ms=event.get("latency_ms", 0.0),
            intent=event.get("intent"),
            success=event.get("success", False),
            error_code=event.get("error_code"),
            error_message=event.get("error_message"),
        )

        doc = {**event, "created_at": datetime.now(timezone.utc)}
        try:
            await self._collection().insert_one(doc)
        except PyMongoError as e:
            logger.warning(f"⚠️ Command history write failed for {event.get('user_id')}: {e}")

    async def recent(self, user_id: str, limit: int = settings.HISTORY_LIMIT) -> List[Dict[str, Any]]:
        """Most recent invocations first."""
        cursor = (
            self._collection()
            .find({"user_id": user_id}, {"_id": 0})
            .sort("created_at", -1)
            .limit(limit)
        )
        history = []
        async for doc in cursor:
            history.append({
                "command": doc.get("command"),
                "intent": doc.get("intent"),
                "success": doc.get("success", False),
                "errorCode": doc.get("error_code"),
                "latencyMs": doc.get("latency_ms"),
                "createdAt": doc.get("created_at"),
            })
        return history
