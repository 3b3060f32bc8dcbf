"""
Observability Layer — structured transcript/oracle events.

Responsibility:
- Log domain events as single-line JSON (session_id, trace_id, event)
- Time oracle calls and report success/failure
- Carry bound context (entry id, oracle kind) into every event
"""

import json
import logging
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("observability")


def _json_default(value: Any) -> Any:
    if hasattr(value, "value"):
        return value.value
    return str(value)


class Observability:
    """Structured logger for command center events."""

    def __init__(self, session_id: str | None = None, context: dict[str, Any] | None = None):
        self.session_id = session_id or str(uuid.uuid4())[:8]
        self.trace_id = str(uuid.uuid4())
        self.context = dict(context or {})

    def log_event(self, event_type: str, payload: dict[str, Any] | None = None, level: str = "INFO") -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session_id": self.session_id,
            "trace_id": self.trace_id,
            "event": event_type,
            "level": level,
            **self.context,
            **(payload or {}),
        }
        log_method = getattr(logger, level.lower(), logger.info)
        log_method(json.dumps(entry, default=_json_default, ensure_ascii=False))

    @contextmanager
    def measure(self, operation: str, metadata: dict[str, Any] | None = None):
        """Time the wrapped block and log an execution_metric event."""
        start_time = time.perf_counter()
        success = False
        error = None
        try:
            yield
            success = True
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.log_event(
                "execution_metric",
                {
                    "operation": operation,
                    "duration_ms": round(duration_ms, 2),
                    "success": success,
                    "error": error,
                    **(metadata or {}),
                },
                level="INFO" if success else "WARNING",
            )

    def bind(self, **context: Any) -> "Observability":
        """New logger on a fresh trace, sharing the session and adding context."""
        return Observability(self.session_id, {**self.context, **context})
