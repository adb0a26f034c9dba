from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Union

from dareon.cognitive.errors import (
    EmptySearchQuery,
    IntegrationNotConnected,
    InvalidProvider,
    InvalidSortKey,
    InvalidSource,
    UnsupportedIntent,
)
from dareon.cognitive.intent_catalog import SORT_KEYS, Intent
from dareon.cognitive.protocols import ConnectionStore, FileService

logger = logging.getLogger(__name__)

Handler = Callable[[str, Mapping[str, str]], Awaitable[Dict[str, Any]]]

# Spoken provider names -> integration keys on the user document
EMAIL_PROVIDERS: Dict[str, tuple] = {
    "outlook": ("microsoft",),
    "microsoft": ("microsoft",),
    "gmail": ("google",),
    "google": ("google",),
    "all": ("microsoft", "google"),
}

FILE_SOURCES = ("local", "onedrive")


class CommandExecutor:
    """
    Runs a resolved intent against the file service and connection store.

    The executor holds no mutable state of its own; everything it changes
    (sync timestamps) lives behind the connection store.
    """

    def __init__(self, files: FileService, connections: ConnectionStore):
        self.files = files
        self.connections = connections
        self.handlers: Dict[Intent, Handler] = {
            Intent.SORT_FILES: self._sort_files,
            Intent.SYNC_EMAILS: self._sync_emails,
            Intent.UPDATE_CALENDAR: self._update_calendar,
            Intent.SHOW_FILES: self._show_files,
            Intent.SEARCH_FILES: self._search_files,
            Intent.GET_STATS: self._get_stats,
        }
        missing = set(Intent) - set(self.handlers)
        if missing:
            raise RuntimeError(f"No handler for intents: {sorted(i.value for i in missing)}")

    async def execute(
        self,
        intent: Union[Intent, str],
        parameters: Mapping[str, str],
        user_id: str,
    ) -> Dict[str, Any]:
        try:
            handler = self.handlers[Intent(intent)]
        except (ValueError, KeyError):
            raise UnsupportedIntent() from None

        logger.debug(f"⚙️ Executing {Intent(intent).value} for {user_id}: {dict(parameters)}")
        return await handler(user_id, parameters)

    async def _sort_files(self, user_id: str, params: Mapping[str, str]) -> Dict[str, Any]:
        key = params.get("sortBy", "")
        if key not in SORT_KEYS:
            raise InvalidSortKey()

        files = await self.files.sort(user_id, key)
        return {"message": f"Files sorted by {key}", "files": files}

    async def _sync_emails(self, user_id: str, params: Mapping[str, str]) -> Dict[str, Any]:
        provider = params.get("provider") or "all"
        targets = EMAIL_PROVIDERS.get(provider)
        if targets is None:
            raise InvalidProvider()

        results: Dict[str, Dict[str, str]] = {}
        for target in targets:
            if not await self.connections.is_connected(user_id, target):
                results[target] = {"status": "error", "message": "Not connected"}
                continue

            await self.connections.mark_synced(user_id, target)
            results[target] = {"status": "success", "message": "Emails synchronized"}

        return {"message": "Email sync completed", "results": results}

    async def _update_calendar(self, user_id: str, params: Mapping[str, str]) -> Dict[str, Any]:
        if not await self.connections.is_connected(user_id, "timeTree"):
            raise IntegrationNotConnected("TimeTree not connected")

        await self.connections.mark_synced(user_id, "timeTree")
        return {"message": "Calendar updated successfully", "status": "success"}

    async def _show_files(self, user_id: str, params: Mapping[str, str]) -> Dict[str, Any]:
        source = params.get("source") or "local"
        if source not in FILE_SOURCES:
            raise InvalidSource()

        if source == "onedrive":
            if not await self.connections.is_connected(user_id, "microsoft"):
                raise IntegrationNotConnected("OneDrive not connected")
            # Remote listing is not wired up; an empty list is the contract.
            return {"message": "OneDrive files retrieved", "files": []}

        files = await self.files.list(user_id)
        return {"message": "Local files retrieved", "files": files}

    async def _search_files(self, user_id: str, params: Mapping[str, str]) -> Dict[str, Any]:
        query = params.get("query", "")
        if not query:
            raise EmptySearchQuery()
        files = await self.files.search(user_id, query)
        return {"message": f'Search results for "{query}"', "files": files}

    async def _get_stats(self, user_id: str, params: Mapping[str, str]) -> Dict[str, Any]:
        stats = await self.files.stats(user_id)
        return {"message": "Statistics retrieved", "stats": stats}
