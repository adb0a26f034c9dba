from fastapi import APIRouter, Depends

from dareon.models.user_models import User
from dareon.services.integration_service import MongoConnectionStore
from dareon.utils.auth import get_current_user

router = APIRouter(prefix="/api/integrations", tags=["Integrations"])

connection_store = MongoConnectionStore()


def get_connection_store() -> MongoConnectionStore:
    return connection_store


@router.get("")
async def list_integrations(
    user: User = Depends(get_current_user),
    store: MongoConnectionStore = Depends(get_connection_store),
):
    """Connection flags for microsoft, google and timeTree."""
    return {"success": True, "data": await store.statuses(user.user_id)}
