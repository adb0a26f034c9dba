from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest

from dareon.models.user_models import Subscription, User, UserStats


class FakeFileService:
    """In-memory stand-in for LocalFileService."""

    def __init__(self, files: List[Dict[str, Any]] = None, stats: Dict[str, Any] = None):
        self.files = list(files or [])
        self._stats = stats or {"totalFiles": len(self.files)}
        self.calls: List[tuple] = []

    async def list(self, user_id):
        self.calls.append(("list", user_id))
        return list(self.files)

    async def sort(self, user_id, key):
        self.calls.append(("sort", user_id, key))
        return sorted(self.files, key=lambda f: f.get(key))

    async def search(self, user_id, query):
        self.calls.append(("search", user_id, query))
        return [f for f in self.files if query.lower() in f["name"].lower()]

    async def stats(self, user_id):
        self.calls.append(("stats", user_id))
        return dict(self._stats)


class ExplodingFileService(FakeFileService):
    async def list(self, user_id):
        raise OSError("disk on fire")


class FakeConnectionStore:
    def __init__(self, connected=()):
        self.connected = set(connected)
        self.synced: List[tuple] = []

    async def is_connected(self, user_id, provider):
        return provider in self.connected

    async def mark_synced(self, user_id, provider):
        self.synced.append((user_id, provider))


class FakeAuditLog:
    def __init__(self):
        self.events: List[Dict[str, Any]] = []
        self.history: List[Dict[str, Any]] = []

    async def record(self, event):
        self.events.append(event)

    async def recent(self, user_id, limit=50):
        return self.history[:limit]


class BrokenAuditLog(FakeAuditLog):
    async def record(self, event):
        raise RuntimeError("audit store down")


SAMPLE_FILES = [
    {"name": "report.pdf", "path": "report.pdf", "size": 2048, "type": "pdf",
     "modifiedDate": "2024-03-01T10:00:00+00:00"},
    {"name": "avatar.png", "path": "avatar.png", "size": 512, "type": "png",
     "modifiedDate": "2024-03-02T10:00:00+00:00"},
]


def build_user(plan: str = "basic", trial_days_left: int = 10, storage_used: int = 0, **overrides) -> User:
    now = datetime.now(timezone.utc)
    fields = dict(
        user_id="64b7f0c2a1b2c3d4e5f60718",
        email="ada@example.com",
        first_name="Ada",
        last_name="Lovelace",
        company_name="Analytical Engines",
        subscription=Subscription(
            type=plan,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=trial_days_left),
            status="active",
        ),
        stats=UserStats(storage_used=storage_used),
        is_email_verified=True,
    )
    fields.update(overrides)
    return User(**fields)


@pytest.fixture
def user():
    return build_user()


@pytest.fixture
def files():
    return FakeFileService(SAMPLE_FILES, stats={"totalFiles": 2, "totalSize": 2560})


@pytest.fixture
def connections():
    return FakeConnectionStore()


@pytest.fixture
def audit():
    return FakeAuditLog()
