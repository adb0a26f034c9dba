from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field

PROVIDERS = ("microsoft", "google", "timeTree")

GB = 1024 * 1024 * 1024

# Storage ceiling per subscription plan, in bytes
STORAGE_LIMITS = {
    "free": 1 * GB,
    "basic": 10 * GB,
    "premium": 100 * GB,
}


class Subscription(BaseModel):
    type: str = "free"  # "free" | "basic" | "premium"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: str = "active"  # "active" | "expired" | "cancelled"

    def is_trial_active(self, now: Optional[datetime] = None) -> bool:
        if self.type != "free" or self.end_date is None:
            return False
        now = now or datetime.now(timezone.utc)
        end = self.end_date
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        return now < end


class IntegrationStatus(BaseModel):
    connected: bool = False
    last_synced: Optional[datetime] = None


class UserStats(BaseModel):
    files_managed: int = 0
    storage_used: int = 0  # bytes
    last_login: Optional[datetime] = None
    login_count: int = 0


class User(BaseModel):
    user_id: str
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    role: str = "user"  # "user" or "admin"
    subscription: Subscription = Field(default_factory=Subscription)
    integrations: Dict[str, IntegrationStatus] = Field(default_factory=dict)
    stats: UserStats = Field(default_factory=UserStats)
    is_email_verified: bool = False

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "User":
        """Build the request-scoped user from a raw users-collection document."""
        integrations = doc.get("integrations") or {}
        return cls(
            user_id=str(doc["_id"]),
            email=doc["email"],
            first_name=doc.get("first_name"),
            last_name=doc.get("last_name"),
            company_name=doc.get("company_name"),
            role=doc.get("role", "user"),
            subscription=Subscription(**(doc.get("subscription") or {})),
            integrations={
                provider: IntegrationStatus(**(integrations.get(provider) or {}))
                for provider in PROVIDERS
            },
            stats=UserStats(**(doc.get("stats") or {})),
            is_email_verified=bool(doc.get("is_email_verified", False)),
        )

    @property
    def name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def public_dict(self) -> Dict[str, Any]:
        """Response shape for auth endpoints (no secrets, camelCase keys)."""
        return {
            "id": self.user_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "companyName": self.company_name,
            "role": self.role,
            "subscription": {
                "type": self.subscription.type,
                "startDate": self.subscription.start_date,
                "endDate": self.subscription.end_date,
                "status": self.subscription.status,
            },
            "integrations": {
                provider: {"connected": status.connected}
                for provider, status in self.integrations.items()
            },
            "stats": {
                "filesManaged": self.stats.files_managed,
                "storageUsed": self.stats.storage_used,
                "lastLogin": self.stats.last_login,
                "loginCount": self.stats.login_count,
            },
            "isEmailVerified": self.is_email_verified,
        }
