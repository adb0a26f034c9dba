"""
Structured logging for fast debugging.

One log line per event, a greppable prefix plus a JSON payload:

    📊 REQUEST   | {"path": ..., "method": ..., "status": ..., "latency_ms": ...}
    🤖 COMMAND   | {"user_id": ..., "command": ..., "intent": ..., "success": ...}
    📁 FILE_OP   | {"operation": "upload", "user_id": ..., "file": {...}}
    🔧 OPERATION | {"operation": "file_traversal", "latency_ms": ...}

Failures are logged at WARNING with an *_ERROR prefix.
"""

import json
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

MAX_ERROR_CHARS = 200


def _emit(prefix: str, payload: Dict[str, Any], ok: bool = True, level: int = logging.INFO):
    payload = {"timestamp": datetime.now(timezone.utc).isoformat(), **payload}
    line = json.dumps(payload, default=str)
    if ok:
        logger.log(level, f"{prefix} | {line}")
    else:
        logger.warning(f"⚠️ {prefix.split(' ', 1)[-1]}_ERROR | {line}")


class StructuredLogger:
    """JSON event logger shared by the middleware, command service and file service."""

    @staticmethod
    def log_request(path: str, method: str, status_code: int, latency_ms: float,
                    error_type: Optional[str] = None):
        payload = {
            "path": path,
            "method": method,
            "status": status_code,
            "latency_ms": round(latency_ms, 2),
        }
        if error_type:
            payload["error_type"] = error_type
        _emit("📊 REQUEST", payload, ok=not error_type and status_code < 500)

    @staticmethod
    def log_command(
        user_id: str,
        command: str,
        latency_ms: float,
        intent: Optional[str] = None,
        success: bool = True,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
    ):
        """
        Log one natural-language command invocation.

        Args:
            user_id: Requesting user
            command: Raw command text as received
            latency_ms: Time from resolution start to result
            intent: Resolved intent tag (None when resolution failed)
            success: Whether a result was produced
            error_code: CommandError code (e.g. "UnrecognizedCommand")
            error_message: User-facing error text, truncated
        """
        payload = {
            "user_id": user_id,
            "command": command,
            "intent": intent,
            "success": success,
            "latency_ms": round(latency_ms, 2),
        }
        if error_code:
            payload["error_code"] = error_code
        if error_message:
            payload["error_message"] = error_message[:MAX_ERROR_CHARS]
        _emit("🤖 COMMAND", payload, ok=success)

    @staticmethod
    def log_file_operation(operation: str, user_id: str, file_info: Dict[str, Any]):
        _emit("📁 FILE_OP", {"operation": operation, "user_id": user_id, "file": file_info})


@contextmanager
def track_operation(operation: str, user_id: str, **metadata):
    """
    Time a block and log it as an OPERATION event (DEBUG on success).

    Usage:
        with track_operation("file_traversal", user_id="123"):
            entries = walk(...)
    """
    started = time.perf_counter()
    failure: Optional[str] = None
    try:
        yield
    except Exception as e:
        failure = type(e).__name__
        raise
    finally:
        payload = {
            "operation": operation,
            "user_id": user_id,
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            "success": failure is None,
        }
        if failure:
            payload["error_type"] = failure
        if metadata:
            payload["metadata"] = metadata
        _emit("🔧 OPERATION", payload, ok=failure is None, level=logging.DEBUG)
