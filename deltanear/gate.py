"""Simulation gating for intent execution.

An intent may only be executed after a successful simulation recorded
under the same intent hash, and only while that simulation is fresh.
Rejections carry a stable reason code and are never retried here. An
intent is executed at most once.

Replay protection: a (signer_id, nonce) pair is bound to the first intent
hash that used it until it expires; any other intent reusing the pair is
refused. Re-simulating the same intent is allowed.
"""

import logging
import threading
import time
from calendar import timegm
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from deltanear.canonical.intent import CanonicalIntent, canonicalize
from deltanear.guardrails import GuardrailConfig
from deltanear.ledger import ExecutionLog, IntentLedger, IntentMetadata, SimulationRecord
from deltanear.primitives.errors import GateRejected
from deltanear.primitives.integrity import compute_integrity
from deltanear.primitives.normalizers import TIMESTAMP_FORMAT

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_SECONDS = 300
DEFAULT_NONCE_EXPIRY_SECONDS = 3600

# Rejection reason codes
NO_PRIOR_SIMULATION = "no_prior_simulation"
SIMULATION_FAILED = "simulation_failed"
SIMULATION_EXPIRED = "simulation_expired"
SIMULATION_HASH_MISMATCH = "simulation_hash_mismatch"
NONCE_REUSED = "nonce_reused"
DEADLINE_EXPIRED = "deadline_expired"
ALREADY_EXECUTED = "already_executed"


@dataclass(frozen=True)
class Quote:
    """Venue quote produced by an off-engine simulator."""

    venue: str
    estimated_fill: str
    estimated_fees: str


@dataclass(frozen=True)
class Fill:
    """Execution report from a venue."""

    solver_id: str
    fill_price: str
    notional: str
    fees_bps: int = 0
    status: str = "filled"
    pnl: Optional[str] = None


@dataclass(frozen=True)
class GateDecision:
    """Result of an execution check."""

    allowed: bool
    intent_hash: str
    reason: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "intent_hash": self.intent_hash,
            "reason": self.reason,
            "message": self.message,
        }


def deadline_epoch(deadline: str) -> int:
    """Seconds since the epoch for a canonical ``...Z`` timestamp."""
    return timegm(datetime.strptime(deadline, TIMESTAMP_FORMAT).timetuple())


def compute_simulation_hash(intent_hash: str, venue: str, estimated_fill: str,
                            estimated_fees: str, timestamp: float) -> str:
    """Digest binding a simulation to the intent and quote it was made for."""
    return compute_integrity({
        "intent_hash": intent_hash,
        "venue": venue,
        "estimated_fill": estimated_fill,
        "estimated_fees": estimated_fees,
        "timestamp": timestamp,
    })


class SimulationGate:
    """Enforces simulate-before-execute on top of an IntentLedger.

    Args:
        ledger: Record store. A fresh in-memory ledger is used when omitted.
        guardrails: Optional read-only guardrail configuration; intents that
            violate it are recorded as failed simulations.
        validity_seconds: Freshness window for simulations.
        nonce_expiry_seconds: How long a used nonce stays reserved.
        clock: Wall clock in seconds.
        solver_id: Solver recorded on submitted metadata.
    """

    def __init__(
        self,
        ledger: Optional[IntentLedger] = None,
        guardrails: Optional[GuardrailConfig] = None,
        validity_seconds: int = DEFAULT_VALIDITY_SECONDS,
        nonce_expiry_seconds: int = DEFAULT_NONCE_EXPIRY_SECONDS,
        clock: Callable[[], float] = time.time,
        solver_id: str = "solver.deltanear.near",
    ):
        self.ledger = ledger or IntentLedger()
        self.emitter = self.ledger.emitter
        self.guardrails = guardrails
        self.validity_seconds = validity_seconds
        self.nonce_expiry_seconds = nonce_expiry_seconds
        self.clock = clock
        self.solver_id = solver_id
        self._used_nonces: Dict[Tuple[str, str], Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def _reject_replay(self, result: CanonicalIntent, reason: str, message: str):
        intent = result.intent
        self.emitter.replay_prevented(result.intent_hash, nonce=intent.nonce, reason=reason)
        logger.warning(f"Replay prevented for {result.intent_hash}: {reason}")
        raise GateRejected(reason, message, intent_hash=result.intent_hash)

    def simulate(self, document: Any, quote: Quote) -> SimulationRecord:
        """Canonicalize an intent and record a simulation for it.

        Raises:
            CanonicalizationError: The document is not a valid intent.
            GateRejected: ``nonce_reused`` or ``deadline_expired``.
        """
        result = canonicalize(document)
        intent = result.intent
        now = self.clock()

        if deadline_epoch(intent.deadline) < now:
            self._reject_replay(result, DEADLINE_EXPIRED, "Intent deadline expired")

        key = (intent.signer_id, intent.nonce)
        with self._lock:
            used = self._used_nonces.get(key)
            if used is not None and used[0] != result.intent_hash \
                    and now - used[1] <= self.nonce_expiry_seconds:
                reused = True
            else:
                reused = False
                self._used_nonces[key] = (result.intent_hash, now)
        if reused:
            self._reject_replay(result, NONCE_REUSED, "Nonce already used")

        error_message = None
        if self.guardrails is not None:
            violations = self.guardrails.evaluate(intent)
            if violations:
                error_message = "; ".join(violations)

        simulation_hash = compute_simulation_hash(
            result.intent_hash, quote.venue, quote.estimated_fill, quote.estimated_fees, now
        )
        record = SimulationRecord(
            intent_hash=result.intent_hash,
            simulation_hash=simulation_hash,
            success=error_message is None,
            venue=quote.venue,
            estimated_fill=quote.estimated_fill,
            estimated_fees=quote.estimated_fees,
            timestamp=now,
            error_message=error_message,
        )

        if self.ledger.get_intent_metadata(result.intent_hash) is None:
            self.ledger.store_intent_metadata(IntentMetadata.from_intent(
                result.intent_hash, intent, solver_id=self.solver_id, created_at=int(now),
            ))
        self.ledger.record_simulation(record)
        logger.info(f"Simulated {result.intent_hash} on {quote.venue} (success={record.success})")
        return record

    def check_execution(self, document: Any) -> GateDecision:
        """Decide whether an intent may be executed now.

        An intent that already has an execution log is refused with
        ``already_executed`` before its simulation is looked at.
        """
        result = canonicalize(document)
        intent_hash = result.intent_hash

        if self.ledger.get_execution_log(intent_hash) is not None:
            self.emitter.replay_prevented(
                intent_hash, nonce=result.intent.nonce, reason=ALREADY_EXECUTED
            )
            logger.info(f"Execution denied for {intent_hash}: {ALREADY_EXECUTED}")
            return GateDecision(
                allowed=False, intent_hash=intent_hash, reason=ALREADY_EXECUTED,
                message="Intent has already been executed",
            )

        record = self.ledger.get_simulation_result(intent_hash)

        if record is None:
            return self._deny(intent_hash, NO_PRIOR_SIMULATION, "No prior simulation found")
        if not record.success:
            return self._deny(
                intent_hash, SIMULATION_FAILED, f"Simulation failed: {record.error_message}"
            )

        age = self.clock() - record.timestamp
        if age > self.validity_seconds:
            return self._deny(
                intent_hash, SIMULATION_EXPIRED, f"Simulation expired ({age:.0f}s old)"
            )

        expected = compute_simulation_hash(
            intent_hash, record.venue, record.estimated_fill, record.estimated_fees,
            record.timestamp,
        )
        if expected != record.simulation_hash:
            return self._deny(
                intent_hash, SIMULATION_HASH_MISMATCH, "Intent parameters changed since simulation"
            )

        return GateDecision(allowed=True, intent_hash=intent_hash)

    def _deny(self, intent_hash: str, reason: str, message: str) -> GateDecision:
        self.emitter.simulation_required(intent_hash, reason)
        logger.info(f"Execution denied for {intent_hash}: {reason}")
        return GateDecision(allowed=False, intent_hash=intent_hash, reason=reason, message=message)

    def execute(self, document: Any, fill: Fill) -> ExecutionLog:
        """Log an execution after the gate allows it.

        Raises:
            GateRejected: With the decision's reason code.
        """
        decision = self.check_execution(document)
        if not decision.allowed:
            raise GateRejected(decision.reason, decision.message, intent_hash=decision.intent_hash)

        record = self.ledger.get_simulation_result(decision.intent_hash)
        log = ExecutionLog(
            intent_hash=decision.intent_hash,
            simulation_hash=record.simulation_hash,
            solver_id=fill.solver_id,
            venue=record.venue,
            fill_price=fill.fill_price,
            notional=fill.notional,
            fees_bps=fill.fees_bps,
            status=fill.status,
            timestamp=self.clock(),
            pnl=fill.pnl,
        )
        self.ledger.log_execution(log)
        return log

    def purge_expired_nonces(self) -> int:
        """Drop nonce reservations older than the expiry window.

        Returns:
            Number of reservations removed.
        """
        now = self.clock()
        with self._lock:
            expired = [
                key for key, (_, used_at) in self._used_nonces.items()
                if now - used_at > self.nonce_expiry_seconds
            ]
            for key in expired:
                del self._used_nonces[key]
        return len(expired)
