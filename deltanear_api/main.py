"""DeltaNEAR Intents API - canonicalization, simulation gating, execution log.

Every endpoint that receives an intent canonicalizes it with the same
library code the verifier uses; the returned intent_hash is the key for all
ledger records.

Error mapping:
- CanonicalizationError -> 422 with the taxonomy kind, field and value
- GateRejected          -> 409 with a stable reason code
- unknown intent hash   -> 404
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deltanear import SCHEMA_VERSION, canonicalize
from deltanear.gate import Fill, Quote, SimulationGate
from deltanear.guardrails import GuardrailConfig, load_config
from deltanear.ledger import IntentLedger
from deltanear.logger import get_logger
from deltanear.primitives.errors import CanonicalizationError, GateRejected
from deltanear_api import __version__
from deltanear_api.config import get_settings
from deltanear_api.models import (
    CanonicalizeRequest,
    CanonicalizeResponse,
    ErrorResponse,
    ExecuteRequest,
    ExecutionResponse,
    GuardrailsResponse,
    HealthResponse,
    IntentRecordResponse,
    SimulateRequest,
    SimulationResponse,
    VenueInfo,
)

logger = logging.getLogger(__name__)

# Simulation gate (initialized on first use)
_gate: Optional[SimulationGate] = None


def get_gate() -> SimulationGate:
    """Get the process-wide simulation gate."""
    global _gate
    if _gate is None:
        settings = get_settings()
        if settings.guardrails_file:
            guardrails = load_config(settings.guardrails_file)
        else:
            guardrails = GuardrailConfig()
        _gate = SimulationGate(
            ledger=IntentLedger(),
            guardrails=guardrails,
            validity_seconds=settings.simulation_validity_seconds,
            nonce_expiry_seconds=settings.nonce_expiry_seconds,
            solver_id=settings.solver_id,
        )
    return _gate


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - initialize on startup, cleanup on shutdown."""
    settings = get_settings()
    get_logger("deltanear", level=logging.getLevelName(settings.log_level.upper()))
    logger.info(f"Starting DeltaNEAR Intents API v{__version__} (schema {SCHEMA_VERSION})")
    get_gate()
    yield
    logger.info("Shutting down DeltaNEAR Intents API")


app = FastAPI(
    title="DeltaNEAR Intents API",
    description="Canonicalization, simulation gating and execution logging for derivatives intents",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR HANDLERS
# =============================================================================


@app.exception_handler(CanonicalizationError)
async def canonicalization_error_handler(request: Request, exc: CanonicalizationError):
    logger.info(f"Rejected intent: {exc}")
    body = ErrorResponse(
        error=exc.kind,
        message=exc.message,
        field=exc.field,
        value=exc.value,
    )
    return JSONResponse(
        status_code=422,
        content=body.model_dump(mode="json"),
    )


@app.exception_handler(GateRejected)
async def gate_rejected_handler(request: Request, exc: GateRejected):
    body = ErrorResponse(
        error="GateRejected",
        message=exc.message,
        reason=exc.reason,
        intent_hash=exc.intent_hash,
    )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=body.model_dump(mode="json"),
    )


# =============================================================================
# HEALTH CHECK
# =============================================================================


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__, schema_version=SCHEMA_VERSION)


# =============================================================================
# CANONICALIZE - Pure transformation, no ledger writes
# =============================================================================


@app.post("/v1/intents/canonicalize", response_model=CanonicalizeResponse)
async def canonicalize_intent(request: CanonicalizeRequest):
    """Return the canonical tree, its exact serialization and its hash."""
    result = canonicalize(request.intent)
    return CanonicalizeResponse(
        intent_hash=result.intent_hash,
        canonical=result.tree,
        serialized=result.serialized.decode("utf-8"),
    )


# =============================================================================
# SIMULATE / EXECUTE - Gated lifecycle
# =============================================================================


@app.post("/v1/intents/simulate", response_model=SimulationResponse)
async def simulate_intent(
    request: SimulateRequest,
    gate: SimulationGate = Depends(get_gate),
):
    """Record a simulation for an intent."""
    record = gate.simulate(
        request.intent,
        Quote(
            venue=request.venue,
            estimated_fill=request.estimated_fill,
            estimated_fees=request.estimated_fees,
        ),
    )
    return SimulationResponse(**record.to_dict())


@app.post("/v1/intents/execute", response_model=ExecutionResponse)
async def execute_intent(
    request: ExecuteRequest,
    gate: SimulationGate = Depends(get_gate),
):
    """Log an execution. Refused with 409 unless a fresh simulation exists."""
    log = gate.execute(
        request.intent,
        Fill(
            solver_id=request.solver_id,
            fill_price=request.fill_price,
            notional=request.notional,
            fees_bps=request.fees_bps,
            status=request.status,
            pnl=request.pnl,
        ),
    )
    return ExecutionResponse(**log.to_dict())


@app.get("/v1/intents/{intent_hash}", response_model=IntentRecordResponse)
async def get_intent(
    intent_hash: str,
    gate: SimulationGate = Depends(get_gate),
):
    """All ledger records stored under an intent hash."""
    key = intent_hash.lower()
    ledger = gate.ledger
    metadata = ledger.get_intent_metadata(key)
    simulation = ledger.get_simulation_result(key)
    execution = ledger.get_execution_log(key)

    if metadata is None and simulation is None and execution is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Intent not found: {intent_hash}",
        )

    return IntentRecordResponse(
        intent_hash=key,
        metadata=metadata.to_dict() if metadata else None,
        simulation=simulation.to_dict() if simulation else None,
        execution=execution.to_dict() if execution else None,
    )


# =============================================================================
# GUARDRAILS - Read-only configuration lookup
# =============================================================================


@app.get("/v1/guardrails", response_model=GuardrailsResponse)
async def get_guardrails(
    symbol: Optional[str] = Query(default=None),
    account: Optional[str] = Query(default=None),
    gate: SimulationGate = Depends(get_gate),
):
    """Effective guardrails (user > symbol > default) and venues for a symbol."""
    config = gate.guardrails or GuardrailConfig()
    rails = config.get_guardrails(symbol=symbol, account=account)
    venues = config.allowed_venues(symbol) if symbol else []
    return GuardrailsResponse(
        symbol=symbol,
        account=account,
        venues=[
            VenueInfo(
                venue_id=v.venue_id,
                chain=v.chain,
                supported_instruments=list(v.supported_instruments),
                fee_bps=v.fee_bps,
            )
            for v in venues
        ],
        **rails.to_dict(),
    )


def run():
    """Run the API with uvicorn using configured host/port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "deltanear_api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
