"""
Shared Pydantic models for all layers.
All contracts are immutable (frozen) after creation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


# ─── Oracle Kinds ──────────────────────────────────────────────

class OracleKind(str, Enum):
    """Oracle data types known to the collection service."""

    PRICE_FEED = "price_feed"
    WEATHER = "weather"
    SPACE = "space"
    # Reserved in the wire contract, not routed yet
    CRYPTO_METRICS = "crypto_metrics"
    IOT_SENSOR = "iot_sensor"
    FINANCIAL = "financial"


ROUTABLE_KINDS: tuple[OracleKind, ...] = (
    OracleKind.PRICE_FEED,
    OracleKind.WEATHER,
    OracleKind.SPACE,
)


class ConsensusMethod(str, Enum):
    MAJORITY = "majority"
    WEIGHTED_AVERAGE = "weighted_average"
    MEDIAN = "median"
    AI_CONSENSUS = "ai_consensus"


# ─── Entry Layer ───────────────────────────────────────────────

class EntryRequest(BaseModel):
    """Normalized input from any entry adapter."""
    model_config = {"frozen": True}

    session_id: str
    input_text: str
    metadata: dict[str, Any] = Field(default_factory=dict)


# ─── Intent Layer ──────────────────────────────────────────────

class ParsedIntent(BaseModel):
    """Oracle kind plus the parameters extracted from a user utterance."""
    model_config = {"frozen": True}

    kind: OracleKind
    parameters: dict[str, str] = Field(default_factory=dict)


# ─── Conversation Layer ────────────────────────────────────────

EntryRole = Literal["user", "oracle", "system"]
EntryStatus = Literal["pending", "resolved_ok", "resolved_error"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"resolved_ok", "resolved_error"})


class ConversationEntry(BaseModel):
    """One transcript line. Snapshots are replaced, never mutated."""
    model_config = {"frozen": True}

    id: str
    role: EntryRole
    text: str
    raw_payload: AggregatedOracleData | None = Field(
        default=None,
        description="Aggregated data backing the text, for programmatic consumers",
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: EntryStatus | None = Field(default=None, description="None for user/system entries")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


# ─── Oracle Wire Contract ──────────────────────────────────────
# The collection service speaks camelCase; fields accept either spelling.

class _WireModel(BaseModel):
    """Inbound service payload: an explicit null means the field is absent."""
    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class OracleDataPoint(_WireModel):
    """A single provider reading that fed the consensus value."""

    source: str = ""
    data_type: str = Field(default="", alias="dataType")
    value: Any = None
    timestamp: float | str | None = None
    confidence: float = 0.0
    metadata: dict[str, Any] | None = None


class AggregatedOracleData(_WireModel):
    """Consensus answer from the oracle service. Every field may be absent."""

    data_type: str | None = Field(default=None, alias="dataType")
    sources: list[str] = Field(default_factory=list)
    aggregated_value: Any = Field(default=None, alias="aggregatedValue")
    confidence: float | None = None
    timestamp: float | str | None = None
    data_points: list[OracleDataPoint] = Field(default_factory=list, alias="dataPoints")
    consensus_method: str | None = Field(default=None, alias="consensusMethod")
    execution_time: float | None = Field(default=None, alias="executionTime", description="Milliseconds")
    sources_used: list[str] = Field(default_factory=list, alias="sourcesUsed")
    consensus_achieved: bool | None = Field(default=None, alias="consensusAchieved")


class ApiError(_WireModel):
    code: str = ""
    message: str = ""
    details: Any = None


class OracleResponse(_WireModel):
    """Envelope returned by POST /api/v1/oracle/collect."""

    success: bool
    data: AggregatedOracleData | None = None
    error: ApiError | None = None
    timestamp: str | float | None = None


class OracleCollectRequest(BaseModel):
    """Request body for the oracle collection endpoint."""
    model_config = {"frozen": True, "populate_by_name": True}

    sources: list[str]
    data_type: OracleKind = Field(..., alias="dataType")
    parameters: dict[str, Any] = Field(default_factory=dict)
    consensus_method: ConsensusMethod | None = Field(default=None, alias="consensusMethod")

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the service's camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


ConversationEntry.model_rebuild()
