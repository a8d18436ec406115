"""Pydantic models for Intents API requests and responses.

Intent documents are accepted as untyped JSON objects. All validation of
their contents happens in the canonicalizer, never in these models, so the
API and the library reject exactly the same documents.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


# Request Models


class CanonicalizeRequest(BaseModel):
    """Raw intent document to canonicalize."""

    intent: Dict[str, Any]


class SimulateRequest(BaseModel):
    """Intent plus the venue quote produced by the simulator."""

    intent: Dict[str, Any]
    venue: str = Field(..., min_length=1, max_length=64)
    estimated_fill: str = Field(..., min_length=1)
    estimated_fees: str = Field(..., min_length=1)


class ExecuteRequest(BaseModel):
    """Intent plus the fill reported by the venue."""

    intent: Dict[str, Any]
    solver_id: str = Field(..., min_length=1, max_length=64)
    fill_price: str = Field(..., min_length=1)
    notional: str = Field(..., min_length=1)
    fees_bps: int = Field(default=0, ge=0, le=1000)
    status: Literal["filled", "partial", "failed"] = "filled"
    pnl: Optional[str] = None


# Response Models


class HealthResponse(BaseModel):
    status: str
    version: str
    schema_version: str


class CanonicalizeResponse(BaseModel):
    """Canonical tree, its exact serialization and its hash."""

    intent_hash: str = Field(..., pattern=r"^[0-9a-f]{64}$")
    canonical: Dict[str, Any]
    serialized: str


class SimulationResponse(BaseModel):
    intent_hash: str
    simulation_hash: str
    success: bool
    venue: str
    estimated_fill: str
    estimated_fees: str
    timestamp: float
    error_message: Optional[str] = None


class ExecutionResponse(BaseModel):
    intent_hash: str
    simulation_hash: str
    solver_id: str
    venue: str
    fill_price: str
    notional: str
    fees_bps: int
    status: str
    timestamp: float
    pnl: Optional[str] = None


class IntentRecordResponse(BaseModel):
    """Everything the ledger knows about one intent hash."""

    intent_hash: str
    metadata: Optional[Dict[str, Any]] = None
    simulation: Optional[Dict[str, Any]] = None
    execution: Optional[Dict[str, Any]] = None


class VenueInfo(BaseModel):
    venue_id: str
    chain: str
    supported_instruments: List[str]
    fee_bps: int


class GuardrailsResponse(BaseModel):
    symbol: Optional[str] = None
    account: Optional[str] = None
    max_position_size: str
    max_leverage: str
    max_daily_volume: str
    allowed_instruments: List[str]
    cooldown_seconds: int
    venues: List[VenueInfo] = []


class ErrorResponse(BaseModel):
    """Error body for rejected documents and refused operations."""

    status: Literal["error"] = "error"
    error: str
    message: str
    field: Optional[str] = None
    value: Any = None
    reason: Optional[str] = None
    intent_hash: Optional[str] = None
