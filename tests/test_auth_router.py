import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from dareon.main import app
from dareon.routers import auth as auth_router
from dareon.services import user_service
from dareon.services.email_service import EmailDeliveryError
from dareon.utils.auth import AuthUtils

REGISTER_BODY = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "Ada@Example.com",
    "password": "s3cret-pass",
    "companyName": "Analytical Engines",
}


@pytest.fixture
def store(monkeypatch):
    """Patch user persistence with a dict keyed by ObjectId."""
    users = {}
    updates = []

    async def find_user_by_email(email):
        email = user_service.normalize_email(email)
        return next((u for u in users.values() if u["email"] == email), None)

    async def find_user_by_id(user_id):
        return users.get(ObjectId(str(user_id)))

    async def create_user(**fields):
        doc = user_service.new_user_document(**fields)
        doc["_id"] = ObjectId()
        users[doc["_id"]] = doc
        return doc

    async def update_user(user_id, set_fields=None, unset_fields=()):
        updates.append((set_fields or {}, tuple(unset_fields)))
        doc = users[ObjectId(str(user_id))]
        doc.update(set_fields or {})
        for field in unset_fields:
            doc.pop(field, None)
        return doc

    async def record_login(user_id):
        users[ObjectId(str(user_id))]["stats"]["login_count"] += 1

    for name, func in {
        "find_user_by_email": find_user_by_email,
        "find_user_by_id": find_user_by_id,
        "create_user": create_user,
        "update_user": update_user,
        "record_login": record_login,
    }.items():
        monkeypatch.setattr(user_service, name, func)

    return {"users": users, "updates": updates}


@pytest.fixture
def sent_emails(monkeypatch):
    sent = []

    async def fake_send(to_email, url):
        sent.append((to_email, url))

    monkeypatch.setattr(auth_router, "send_verification_email", fake_send)
    return sent


@pytest.fixture
def client():
    return TestClient(app)


def test_register_creates_trial_user_and_sends_verification(client, store, sent_emails):
    res = client.post("/api/auth/register", json=REGISTER_BODY)

    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["subscription"]["type"] == "free"
    assert body["user"]["isEmailVerified"] is False
    assert res.cookies.get("token") == body["token"]

    (to_email, url), = sent_emails
    assert to_email == "ada@example.com"
    raw_token = url.rsplit("/", 1)[-1]
    stored = next(iter(store["users"].values()))
    assert stored["verification_token"] == AuthUtils.hash_token(raw_token)


def test_register_rejects_duplicate_email(client, store, sent_emails):
    client.post("/api/auth/register", json=REGISTER_BODY)
    res = client.post("/api/auth/register", json=REGISTER_BODY)

    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Email already registered"}


def test_register_with_short_password_is_400(client, store, sent_emails):
    res = client.post("/api/auth/register", json={**REGISTER_BODY, "password": "short"})

    assert res.status_code == 400
    assert res.json()["success"] is False


def test_register_email_failure_clears_token(client, store, monkeypatch):
    async def failing_send(to_email, url):
        raise EmailDeliveryError("SENDGRID_API_KEY not configured")

    monkeypatch.setattr(auth_router, "send_verification_email", failing_send)

    res = client.post("/api/auth/register", json=REGISTER_BODY)

    assert res.status_code == 500
    assert res.json() == {"success": False, "error": "Email could not be sent"}
    stored = next(iter(store["users"].values()))
    assert "verification_token" not in stored


def test_login(client, store, sent_emails):
    client.post("/api/auth/register", json=REGISTER_BODY)

    bad = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "nope-nope"})
    assert bad.status_code == 401
    assert bad.json()["error"] == "Invalid credentials"

    good = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "s3cret-pass"})
    assert good.status_code == 200
    assert good.json()["user"]["stats"]["loginCount"] == 1
