import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dareon.cognitive.command_executor import CommandExecutor
from dareon.cognitive.command_resolver import CommandResolver
from dareon.cognitive.intent_catalog import COMMAND_SUGGESTIONS
from dareon.models.user_models import User
from dareon.routers.files import get_file_service
from dareon.routers.integrations import get_connection_store
from dareon.services.command_history_service import CommandAuditLog
from dareon.services.command_service import CommandService
from dareon.utils.auth import get_current_user, require_basic_plan
from dareon.utils.rate_limit import command_rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI"])

resolver = CommandResolver()
audit_log = CommandAuditLog()


class CommandRequest(BaseModel):
    # Blank/missing text is answered by the command service, not by validation
    command: Optional[str] = None


def get_audit_log() -> CommandAuditLog:
    return audit_log


def get_command_service(
    files=Depends(get_file_service),
    connections=Depends(get_connection_store),
    audit=Depends(get_audit_log),
) -> CommandService:
    return CommandService(resolver, CommandExecutor(files, connections), audit)


@router.post("/command", dependencies=[Depends(require_basic_plan)])
async def process_command(
    payload: CommandRequest,
    user: User = Depends(command_rate_limiter),
    service: CommandService = Depends(get_command_service),
):
    outcome = await service.handle(user.user_id, payload.command)
    return JSONResponse(status_code=outcome.status_code, content=jsonable_encoder(outcome.body))


@router.get("/history", dependencies=[Depends(require_basic_plan)])
async def command_history(
    user: User = Depends(get_current_user),
    audit: CommandAuditLog = Depends(get_audit_log),
):
    history = await audit.recent(user.user_id)
    return {"success": True, "count": len(history), "data": history}


@router.get("/suggestions")
async def command_suggestions(user: User = Depends(get_current_user)):
    return {"success": True, "data": list(COMMAND_SUGGESTIONS)}
