"""In-memory intent ledger keyed by intent hash.

Holds the three record families the host keeps per intent: submission
metadata, simulation results and execution logs (plus settlements). The
digest is treated as an opaque key. Storage backends are out of scope; this
class is the reference implementation used by the service and tests.
"""

import logging
import threading
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from deltanear.canonical.intent import DerivativesIntent
from deltanear.events import EventEmitter
from deltanear.primitives.errors import GateRejected

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentMetadata:
    """Summary of a submitted intent."""

    intent_hash: str
    signer_id: str
    instrument: str
    symbol: str
    side: str
    size: str
    leverage: str
    strike: Optional[str]
    expiry: Optional[str]
    solver_id: str
    created_at: int

    @classmethod
    def from_intent(cls, intent_hash: str, intent: DerivativesIntent,
                    solver_id: str, created_at: int) -> "IntentMetadata":
        derivs = intent.derivatives
        option = derivs.option
        return cls(
            intent_hash=intent_hash,
            signer_id=intent.signer_id,
            instrument=derivs.instrument.name,
            symbol=derivs.symbol,
            side=derivs.side,
            size=derivs.size,
            leverage=derivs.leverage,
            strike=option.strike if option else None,
            expiry=option.expiry if option else None,
            solver_id=solver_id,
            created_at=created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SimulationRecord:
    """Outcome of simulating an intent against a venue quote."""

    intent_hash: str
    simulation_hash: str
    success: bool
    venue: str
    estimated_fill: str
    estimated_fees: str
    timestamp: float
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExecutionLog:
    """Fill recorded for an executed intent. Notional is decimal text."""

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

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SettlementRecord:
    """Settlement of an executed intent."""

    intent_hash: str
    token_diff: Dict[str, Any] = field(default_factory=dict)
    tx_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class IntentLedger:
    """Thread-safe store of intent records keyed by intent hash."""

    def __init__(self, emitter: Optional[EventEmitter] = None):
        self.emitter = emitter or EventEmitter()
        self._metadata: Dict[str, IntentMetadata] = {}
        self._simulations: Dict[str, SimulationRecord] = {}
        self._executions: Dict[str, ExecutionLog] = {}
        self._settlements: Dict[str, SettlementRecord] = {}
        self._lock = threading.RLock()

    # Metadata

    def store_intent_metadata(self, metadata: IntentMetadata) -> None:
        with self._lock:
            self._metadata[metadata.intent_hash] = metadata
        self.emitter.intent_submitted(
            metadata.intent_hash,
            signer_id=metadata.signer_id,
            instrument=metadata.instrument,
            symbol=metadata.symbol,
            side=metadata.side,
            size=metadata.size,
        )

    def get_intent_metadata(self, intent_hash: str) -> Optional[IntentMetadata]:
        with self._lock:
            return self._metadata.get(intent_hash)

    # Simulations

    def record_simulation(self, record: SimulationRecord) -> None:
        """Store a simulation result, replacing any earlier one."""
        with self._lock:
            self._simulations[record.intent_hash] = record
        self.emitter.simulation_completed(
            record.intent_hash,
            simulation_hash=record.simulation_hash,
            success=record.success,
            error_message=record.error_message,
        )

    def get_simulation_result(self, intent_hash: str) -> Optional[SimulationRecord]:
        with self._lock:
            return self._simulations.get(intent_hash)

    def has_successful_simulation(self, intent_hash: str) -> bool:
        record = self.get_simulation_result(intent_hash)
        return record is not None and record.success

    # Executions

    def log_execution(self, log: ExecutionLog) -> None:
        """Record a fill. Requires a successful simulation for the same hash.

        An intent is executed at most once; the existing log is never
        replaced.

        Raises:
            GateRejected: ``simulation_required`` when no successful
                simulation exists, ``already_executed`` when a fill is
                already logged.
        """
        with self._lock:
            simulated = self.has_successful_simulation(log.intent_hash)
            duplicate = log.intent_hash in self._executions
            if simulated and not duplicate:
                self._executions[log.intent_hash] = log

        if not simulated:
            logger.warning(f"Execution refused for {log.intent_hash}: no successful simulation")
            self.emitter.simulation_required(log.intent_hash, "no_prior_simulation")
            raise GateRejected(
                "simulation_required",
                "Execution requires successful simulation",
                intent_hash=log.intent_hash,
            )
        if duplicate:
            logger.warning(f"Execution refused for {log.intent_hash}: already executed")
            raise GateRejected(
                "already_executed",
                "Intent has already been executed",
                intent_hash=log.intent_hash,
            )

        self.emitter.execution_logged(
            log.intent_hash,
            solver_id=log.solver_id,
            venue=log.venue,
            fill_price=log.fill_price,
            notional=log.notional,
            status=log.status,
        )

    def get_execution_log(self, intent_hash: str) -> Optional[ExecutionLog]:
        with self._lock:
            return self._executions.get(intent_hash)

    # Settlements

    def record_settlement(self, record: SettlementRecord) -> None:
        """Record settlement progress for an executed intent.

        A record without ``tx_hash`` marks the settlement as initiated; one
        with ``tx_hash`` marks it completed.
        """
        with self._lock:
            if record.intent_hash not in self._executions:
                raise GateRejected(
                    "not_executed",
                    "Settlement requires a logged execution",
                    intent_hash=record.intent_hash,
                )
            self._settlements[record.intent_hash] = record
        if record.tx_hash is None:
            self.emitter.settlement_initiated(record.intent_hash, record.token_diff)
        else:
            self.emitter.settlement_completed(record.intent_hash, record.tx_hash)

    def get_settlement(self, intent_hash: str) -> Optional[SettlementRecord]:
        with self._lock:
            return self._settlements.get(intent_hash)
