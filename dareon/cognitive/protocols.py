"""Collaborator interfaces the command pipeline depends on."""

from typing import Any, Dict, List, Protocol


class FileService(Protocol):
    async def list(self, user_id: str) -> List[Dict[str, Any]]: ...

    async def sort(self, user_id: str, key: str) -> List[Dict[str, Any]]: ...

    async def search(self, user_id: str, query: str) -> List[Dict[str, Any]]: ...

    async def stats(self, user_id: str) -> Dict[str, Any]: ...


class ConnectionStore(Protocol):
    async def is_connected(self, user_id: str, provider: str) -> bool: ...

    async def mark_synced(self, user_id: str, provider: str) -> None: ...


class AuditLog(Protocol):
    """Receives one event per command invocation. Must never raise."""

    async def record(self, event: Dict[str, Any]) -> None: ...
