import pytest
from fastapi.testclient import TestClient

from dareon.cognitive.command_executor import CommandExecutor
from dareon.cognitive.command_resolver import CommandResolver
from dareon.main import app
from dareon.routers.ai import get_audit_log, get_command_service
from dareon.routers.files import get_file_service
from dareon.services.command_service import CommandService
from dareon.utils.auth import get_current_user
from dareon.utils.rate_limit import command_rate_limiter

from conftest import FakeAuditLog, FakeConnectionStore, FakeFileService, SAMPLE_FILES, build_user


@pytest.fixture
def audit_log():
    return FakeAuditLog()


@pytest.fixture
def state():
    return {"user": build_user()}


@pytest.fixture
def client(audit_log, state):
    """App wired to in-memory collaborators (no Mongo/Redis)."""
    service = CommandService(
        CommandResolver(),
        CommandExecutor(FakeFileService(SAMPLE_FILES), FakeConnectionStore(connected={"google"})),
        audit_log,
    )

    app.dependency_overrides[get_current_user] = lambda: state["user"]
    app.dependency_overrides[command_rate_limiter] = lambda: state["user"]
    app.dependency_overrides[get_command_service] = lambda: service
    app.dependency_overrides[get_audit_log] = lambda: audit_log
    app.dependency_overrides[get_file_service] = lambda: FakeFileService(SAMPLE_FILES)

    yield TestClient(app)
    app.dependency_overrides.clear()


def test_command_success(client):
    res = client.post("/api/ai/command", json={"command": "sort my files by type"})

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["data"]["intent"] == "sort-files"
    assert body["data"]["result"]["message"] == "Files sorted by type"
    assert len(body["data"]["result"]["files"]) == 2


def test_sync_with_partial_connections(client):
    res = client.post("/api/ai/command", json={"command": "sync my emails"})

    assert res.status_code == 200
    results = res.json()["data"]["result"]["results"]
    assert results["microsoft"]["status"] == "error"
    assert results["google"]["status"] == "success"


def test_empty_command(client):
    res = client.post("/api/ai/command", json={"command": "   "})

    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Please provide a command"}


def test_missing_command_field(client):
    res = client.post("/api/ai/command", json={})

    assert res.status_code == 400
    assert res.json()["error"] == "Please provide a command"


def test_unknown_command(client):
    res = client.post("/api/ai/command", json={"command": "do something impossible"})

    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Could not understand command"}


def test_command_is_audited(client, audit_log):
    client.post("/api/ai/command", json={"command": "show my stats"})

    assert len(audit_log.events) == 1
    assert audit_log.events[0]["intent"] == "get-stats"


def test_expired_trial_cannot_run_commands(client, state):
    state["user"] = build_user(plan="free", trial_days_left=-1)

    res = client.post("/api/ai/command", json={"command": "show my stats"})

    assert res.status_code == 403
    assert res.json() == {"success": False, "error": "This feature requires a basic subscription"}


def test_active_trial_can_run_commands(client, state):
    state["user"] = build_user(plan="free", trial_days_left=3)

    res = client.post("/api/ai/command", json={"command": "show my stats"})

    assert res.status_code == 200


def test_command_requires_authentication():
    res = TestClient(app).post("/api/ai/command", json={"command": "show my stats"})

    assert res.status_code == 401
    assert res.json()["success"] is False


def test_suggestions(client):
    res = client.get("/api/ai/suggestions")

    assert res.status_code == 200
    assert "Sort my files by type" in res.json()["data"]


def test_history(client, audit_log):
    audit_log.history = [{"command": "show my stats", "intent": "get-stats", "success": True}]

    res = client.get("/api/ai/history")

    assert res.status_code == 200
    assert res.json() == {"success": True, "count": 1, "data": audit_log.history}


def test_invalid_sort_key_on_files_route(client):
    res = client.post("/api/files/sort", json={"sortBy": "colour"})

    assert res.status_code == 400
    assert res.json()["success"] is False


def test_files_sort_route(client):
    res = client.post("/api/files/sort", json={"sortBy": "name"})

    assert res.status_code == 200
    assert [f["name"] for f in res.json()["data"]] == ["avatar.png", "report.pdf"]
