"""
HTTP API for the Oracle Command Center.

Endpoints:
- GET /health
- GET /v1/oracles
- PUT /v1/selection
- POST /v1/messages
- GET /v1/transcript
- DELETE /v1/transcript
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from main import build_pipeline
from orchestrator.command_center import CommandCenter
from shared.errors import UnsupportedOracleError
from shared.models import ConversationEntry
from shared.oracle_catalog import ORACLE_OPTIONS


class MessageRequest(BaseModel):
    text: str
    wait: bool = Field(default=False, description="Wait for the oracle entry to resolve before responding")


class SelectionRequest(BaseModel):
    kind: str | None = None


def _entry_payload(entry: ConversationEntry | None) -> dict[str, Any] | None:
    if entry is None:
        return None
    return entry.model_dump(mode="json", by_alias=True)


def _command_center() -> CommandCenter:
    return app.state.command_center


@asynccontextmanager
async def lifespan(_app: FastAPI):
    _cli, command_center = build_pipeline()
    _app.state.command_center = command_center
    command_center.start()
    yield
    await _app.state.command_center.drain()


app = FastAPI(
    title="Oracle Command Center API",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/v1/oracles")
def list_oracles() -> dict[str, Any]:
    selected = _command_center().selected_oracle
    return {
        "selected": selected.value if selected else None,
        "data": [
            {
                "kind": kind.value,
                "name": option["name"],
                "icon": option["icon"],
                "sources": option["sources"],
                "examples": option["examples"],
            }
            for kind, option in ORACLE_OPTIONS.items()
        ],
    }


@app.put("/v1/selection")
def select_oracle(request: SelectionRequest) -> dict[str, Any]:
    try:
        selected = _command_center().select_oracle(request.kind)
    except UnsupportedOracleError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return {"selected": selected.value if selected else None}


@app.post("/v1/messages")
async def post_message(request: MessageRequest) -> dict[str, Any]:
    command_center = _command_center()
    if not request.text.strip():
        raise HTTPException(status_code=422, detail="Message text must not be empty.")

    submission = command_center.submit(request.text)
    if request.wait and submission.task is not None:
        await asyncio.shield(submission.task)

    entry = command_center.store.get(submission.entry_id) if submission.entry_id else None
    return {"entry": _entry_payload(entry)}


@app.get("/v1/transcript")
def get_transcript() -> dict[str, Any]:
    entries = _command_center().transcript()
    return {"data": [_entry_payload(entry) for entry in entries]}


@app.delete("/v1/transcript")
def clear_transcript() -> dict[str, Any]:
    command_center = _command_center()
    command_center.store.clear()
    command_center.start()
    return {"data": [_entry_payload(entry) for entry in command_center.transcript()]}
