"""
🤖 Command Service - delivery boundary of the AI command pipeline

    text -> CommandResolver -> CommandExecutor -> result -> response body

Every CommandError stops here and becomes a status code plus
{success: false, error}. Anything unexpected is logged with full context and
reported as ExecutionFailed (500). Each invocation is handed to the audit
log with its outcome and latency.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dareon.cognitive.command_executor import CommandExecutor
from dareon.cognitive.command_resolver import CommandResolver
from dareon.cognitive.errors import CommandError, ExecutionFailed
from dareon.cognitive.protocols import AuditLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandOutcome:
    status_code: int
    body: Dict[str, Any]


class CommandService:

    def __init__(self, resolver: CommandResolver, executor: CommandExecutor, audit: AuditLog):
        self.resolver = resolver
        self.executor = executor
        self.audit = audit

    async def handle(self, user_id: str, command: Optional[str]) -> CommandOutcome:
        start = time.perf_counter()
        intent: Optional[str] = None
        error: Optional[CommandError] = None

        try:
            resolved = self.resolver.resolve(command)
            intent = resolved.intent.value
            result = await self.executor.execute(resolved.intent, resolved.parameters, user_id)
            outcome = CommandOutcome(200, {
                "success": True,
                "data": {"intent": intent, "result": result},
            })
        except CommandError as e:
            error = e
        except Exception:
            logger.exception(
                f"❌ Command failed | user_id={user_id} intent={intent} command={command!r}"
            )
            error = ExecutionFailed()

        if error is not None:
            outcome = CommandOutcome(error.status_code, {"success": False, "error": error.message})

        await self._record(user_id, command, intent, error, start)
        return outcome

    async def _record(
        self,
        user_id: str,
        command: Optional[str],
        intent: Optional[str],
        error: Optional[CommandError],
        start: float,
    ) -> None:
        event = {
            "user_id": user_id,
            "command": command,
            "intent": intent,
            "success": error is None,
            "error_code": error.code if error else None,
            "error_message": error.message if error else None,
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
        }
        try:
            await self.audit.record(event)
        except Exception as e:
            # audit must never change the response
            logger.warning(f"⚠️ Audit log rejected command event: {e}")
