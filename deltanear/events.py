"""Structured lifecycle events (NEP-297 format).

Every event is written as a single log line:

    EVENT_JSON:{"data":[{...}],"event":"<name>","standard":"deltanear_derivatives","version":"1.0.0"}

and fanned out to registered listeners. Each data record references the
intent hash and carries ``timestamp_ns`` from a clock that never goes
backwards within one emitter.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from deltanear.primitives.integrity import canonical_json

logger = logging.getLogger(__name__)

EVENT_STANDARD = "deltanear_derivatives"
EVENT_VERSION = "1.0.0"
EVENT_PREFIX = "EVENT_JSON:"

INTENT_SUBMITTED = "intent_submitted"
SIMULATION_COMPLETED = "simulation_completed"
SIMULATION_REQUIRED = "simulation_required"
EXECUTION_LOGGED = "execution_logged"
SETTLEMENT_INITIATED = "settlement_initiated"
SETTLEMENT_COMPLETED = "settlement_completed"
REPLAY_PREVENTED = "replay_prevented"

EVENT_NAMES = (
    INTENT_SUBMITTED,
    SIMULATION_COMPLETED,
    SIMULATION_REQUIRED,
    EXECUTION_LOGGED,
    SETTLEMENT_INITIATED,
    SETTLEMENT_COMPLETED,
    REPLAY_PREVENTED,
)

Listener = Callable[["Event"], None]


@dataclass(frozen=True)
class Event:
    """One emitted lifecycle event."""

    event: str
    data: List[Dict[str, Any]]
    standard: str = EVENT_STANDARD
    version: str = EVENT_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "standard": self.standard,
            "version": self.version,
            "event": self.event,
            "data": self.data,
        }

    def to_log_line(self) -> str:
        return EVENT_PREFIX + canonical_json(self.to_dict())


@dataclass
class MonotonicClock:
    """Wall-clock nanoseconds, forced to be strictly increasing."""

    source: Callable[[], int] = time.time_ns
    _last: int = field(default=0, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def now_ns(self) -> int:
        with self._lock:
            current = max(self.source(), self._last + 1)
            self._last = current
            return current


class EventEmitter:
    """Publishes lifecycle events for intents.

    Events are logged through the ``deltanear.events`` logger, delivered to
    listeners in registration order, and kept in ``history``.
    """

    def __init__(self, clock: Optional[MonotonicClock] = None):
        self.clock = clock or MonotonicClock()
        self.history: List[Event] = []
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def emit(self, name: str, intent_hash: str, **fields: Any) -> Event:
        """Emit one event.

        Args:
            name: Event name, one of EVENT_NAMES.
            intent_hash: Digest of the intent the event refers to.
            **fields: Event-specific data fields.

        Returns:
            The emitted Event.
        """
        if name not in EVENT_NAMES:
            raise ValueError(f"Unknown event: {name}")

        record = {"intent_hash": intent_hash, **fields}
        record["timestamp_ns"] = self.clock.now_ns()
        event = Event(event=name, data=[record])

        with self._lock:
            self.history.append(event)
        logger.info(event.to_log_line())

        for listener in list(self._listeners):
            listener(event)
        return event

    def events_for(self, intent_hash: str) -> List[Event]:
        """All recorded events referencing intent_hash, oldest first."""
        with self._lock:
            return [
                e for e in self.history
                if any(d.get("intent_hash") == intent_hash for d in e.data)
            ]

    # Typed helpers, one per lifecycle transition

    def intent_submitted(self, intent_hash: str, signer_id: str, instrument: str,
                         symbol: str, side: str, size: str) -> Event:
        return self.emit(
            INTENT_SUBMITTED, intent_hash,
            signer_id=signer_id, instrument=instrument, symbol=symbol, side=side, size=size,
        )

    def simulation_completed(self, intent_hash: str, simulation_hash: str, success: bool,
                             error_message: Optional[str] = None) -> Event:
        return self.emit(
            SIMULATION_COMPLETED, intent_hash,
            simulation_hash=simulation_hash, success=success, error_message=error_message,
        )

    def simulation_required(self, intent_hash: str, reason: str) -> Event:
        return self.emit(
            SIMULATION_REQUIRED, intent_hash, reason=reason, attempted_execution=True,
        )

    def execution_logged(self, intent_hash: str, solver_id: str, venue: str,
                         fill_price: str, notional: str, status: str) -> Event:
        return self.emit(
            EXECUTION_LOGGED, intent_hash,
            solver_id=solver_id, venue=venue, fill_price=fill_price,
            notional=notional, status=status,
        )

    def settlement_initiated(self, intent_hash: str, token_diff: Dict[str, Any]) -> Event:
        return self.emit(SETTLEMENT_INITIATED, intent_hash, token_diff=token_diff)

    def settlement_completed(self, intent_hash: str, tx_hash: str) -> Event:
        return self.emit(SETTLEMENT_COMPLETED, intent_hash, tx_hash=tx_hash)

    def replay_prevented(self, intent_hash: str, nonce: str, reason: str) -> Event:
        return self.emit(REPLAY_PREVENTED, intent_hash, nonce=nonce, reason=reason)
