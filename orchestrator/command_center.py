"""
Command Center — conversation controller.

Responsibility:
- Classify user input and resolve the effective oracle kind
  (explicit selection overrides inference)
- Append the user entry and a pending oracle entry
- Call the oracle gateway and resolve the pending entry in place

Concurrency:
- The gateway call is the only suspension point
- Each request owns its pending entry id, so overlapping requests
  resolve independently and in whatever order their calls settle

Prohibitions:
- Never raises for oracle failures; every path ends in a resolved entry
- No retries, no cancellation of superseded requests
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable

from conversation.store import ConversationStore, TranscriptListener
from gateway.http_gateway import OracleGateway, build_collect_request
from intent.classifier import resolve_intent
from observability.logger import Observability
from shared.errors import OracleTransportError, UnsupportedOracleError
from shared.models import ROUTABLE_KINDS, ConversationEntry, OracleKind, OracleResponse, ParsedIntent
from shared.oracle_catalog import GUIDANCE_TEXT, NO_DATA_TEXT, PENDING_TEXT, TRANSPORT_FAILURE_TEXT
from shared.response_formatter import format_failure, format_oracle_data

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Submission:
    """Result of submit(): the oracle entry id and the task resolving it (None when nothing to await)."""

    entry_id: str | None
    task: asyncio.Task | None


class CommandCenter:
    """Routes user messages to oracles and keeps the transcript current."""

    def __init__(
        self,
        gateway: OracleGateway,
        store: ConversationStore | None = None,
        observability: Observability | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.gateway = gateway
        self.store = store or ConversationStore()
        self.observability = observability or Observability()
        self._today = today
        self._selected: OracleKind | None = None
        self._inflight: set[asyncio.Task] = set()

    # ─── UI surface ───────────────────────────────────────────

    @property
    def selected_oracle(self) -> OracleKind | None:
        return self._selected

    def select_oracle(self, kind: OracleKind | str | None) -> OracleKind | None:
        """Set or clear the explicit oracle selection."""
        if kind is None or kind == "":
            self._selected = None
            return None
        try:
            resolved = OracleKind(kind)
        except ValueError as e:
            raise UnsupportedOracleError(f"Unknown oracle kind: {kind!r}") from e
        if resolved not in ROUTABLE_KINDS:
            raise UnsupportedOracleError(f"Oracle kind '{resolved.value}' is not routable yet.")
        self._selected = resolved
        logger.info("Oracle selection set to %s", resolved.value)
        return resolved

    def start(self) -> str | None:
        """Surface is ready to render: seed the welcome entry once."""
        return self.store.seed_welcome()

    def transcript(self) -> tuple[ConversationEntry, ...]:
        return self.store.entries()

    def subscribe(self, listener: TranscriptListener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    def submit(self, text: str) -> Submission:
        """
        Start a user turn without waiting for the oracle.
        Entries are appended right away; the gateway call runs as a task
        on the running loop and resolves the pending entry when it settles.
        """
        entry_id, intent = self._begin(text)
        if intent is None:
            return Submission(entry_id=entry_id, task=None)

        task = asyncio.get_running_loop().create_task(self._complete(entry_id, intent))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return Submission(entry_id=entry_id, task=task)

    async def drain(self) -> None:
        """Wait until every submitted message has settled."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    # ─── Orchestration ────────────────────────────────────────

    async def handle_user_message(self, text: str) -> str | None:
        """
        Run one user turn end to end.
        Returns the id of the oracle entry it produced, or None for blank input.
        """
        entry_id, intent = self._begin(text)
        if intent is not None:
            await self._complete(entry_id, intent)
        return entry_id

    def _begin(self, text: str) -> tuple[str | None, ParsedIntent | None]:
        """Synchronous part of a turn: transcript entries up to the pending one."""
        if not text or not text.strip():
            return None, None

        self.store.append("user", text)

        today = self._today() if self._today else None
        intent = resolve_intent(text, self._selected, today=today)
        if intent is None:
            self.observability.log_event("no_intent_recognized", {"selected": None})
            return self.store.append("oracle", GUIDANCE_TEXT, status="resolved_error"), None

        entry_id = self.store.append("oracle", PENDING_TEXT, status="pending")
        return entry_id, intent

    async def _complete(self, entry_id: str, intent: ParsedIntent) -> str:
        events = self.observability.bind(entry_id=entry_id, oracle_kind=intent.kind.value)
        events.log_event("oracle_query_started", {"parameters": intent.parameters})

        request = build_collect_request(intent.kind, intent.parameters)
        try:
            with events.measure("oracle_collect", {"sources": request.sources}):
                response = await self.gateway.collect(request)
        except OracleTransportError as e:
            logger.warning("Oracle transport failure for entry %s: %s", entry_id, e)
            self._fail(entry_id, TRANSPORT_FAILURE_TEXT, events, reason="transport", detail=str(e))
            return entry_id
        except Exception as e:
            logger.exception("Unexpected gateway error for entry %s", entry_id)
            self._fail(entry_id, TRANSPORT_FAILURE_TEXT, events, reason="unexpected", detail=str(e))
            return entry_id

        self._resolve(entry_id, intent, response, events)
        return entry_id

    def _resolve(self, entry_id: str, intent: ParsedIntent, response: OracleResponse, events: Observability) -> None:
        data = response.data
        if not response.success:
            self._fail(
                entry_id,
                format_failure(response),
                events,
                reason="application",
                detail=response.error.code if response.error else "",
                raw_payload=data,
            )
            return
        if data is None or data.aggregated_value is None:
            self._fail(entry_id, NO_DATA_TEXT, events, reason="empty", raw_payload=data)
            return

        text = format_oracle_data(intent.kind, data, intent.parameters)
        updated = self.store.update(entry_id, status="resolved_ok", text=text, raw_payload=data)
        events.log_event(
            "oracle_query_resolved",
            {
                "confidence": data.confidence,
                "execution_time_ms": data.execution_time,
                "consensus_achieved": data.consensus_achieved,
                "in_transcript": updated is not None,
            },
        )

    def _fail(
        self,
        entry_id: str,
        text: str,
        events: Observability,
        *,
        reason: str,
        detail: str = "",
        raw_payload=None,
    ) -> None:
        fields = {"status": "resolved_error", "text": text}
        if raw_payload is not None:
            fields["raw_payload"] = raw_payload
        updated = self.store.update(entry_id, **fields)
        events.log_event(
            "oracle_query_failed",
            {"reason": reason, "detail": detail, "in_transcript": updated is not None},
            level="WARNING",
        )
