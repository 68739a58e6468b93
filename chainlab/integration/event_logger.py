"""
Event Logger Module

Observer for ledger activity. The ledger, the validator and the tamper
simulator report every outcome here; a presentation layer subscribes with
callbacks to render mining progress and status messages.

Features:
- Mining lifecycle (mining flag + nonce progress)
- Human-readable status messages per outcome
- Bounded history of status events
- Forwarding to the standard `logging` hierarchy

Author: chainlab
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, NamedTuple, Optional

from ..config import HISTORY_LIMIT

logger = logging.getLogger("chainlab.events")


# ============================================================================
# Event Types
# ============================================================================

class EventType(Enum):
    """Outcomes the ledger reports to its observer."""

    # Mining lifecycle
    MINING_STARTED = "mining_started"
    MINING_PROGRESS = "mining_progress"
    MINING_FAILED = "mining_failed"
    BLOCK_MINED = "block_mined"

    # Chain integrity
    CHAIN_VALIDATED = "chain_validated"
    TAMPER_SIMULATED = "tamper_simulated"
    CHAIN_LOCKED = "chain_locked"

    # Input / housekeeping
    EMPTY_DATA = "empty_data"
    DIFFICULTY_CHANGED = "difficulty_changed"
    CHAIN_RESET = "chain_reset"


_WARNING_EVENTS = {
    EventType.MINING_FAILED,
    EventType.TAMPER_SIMULATED,
    EventType.CHAIN_LOCKED,
    EventType.EMPTY_DATA,
}


# ============================================================================
# Event Structure
# ============================================================================

class MiningStatus(NamedTuple):
    """Mining state as seen by the observer."""
    mining: bool
    progress: int


@dataclass
class ChainEvent:
    """A single outcome reported by the ledger."""
    event_type: EventType
    message: str
    timestamp: float = field(default_factory=time.time)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.event_type.value,
            'message': self.message,
            'time': self.timestamp,
            'iso_time': datetime.fromtimestamp(self.timestamp).isoformat(),
            'details': dict(self.details),
        }

    def __str__(self) -> str:
        dt = datetime.fromtimestamp(self.timestamp)
        first_line = self.message.splitlines()[0] if self.message else ''
        return (
            f"[{dt.strftime('%Y-%m-%d %H:%M:%S')}] "
            f"{self.event_type.value} | {first_line}"
        )


# ============================================================================
# Event Logger
# ============================================================================

class EventLogger:
    """
    Collects ledger events and fans them out to subscribers.

    Progress events only update `mining_status`; every other event becomes
    the current status `message` and is appended to the bounded history.
    """

    def __init__(self, history_limit: int = HISTORY_LIMIT):
        self._history: Deque[ChainEvent] = deque(maxlen=history_limit)
        self._callbacks: List[Callable[[ChainEvent], None]] = []
        self._mining = False
        self._progress = 0
        self._message = ''

    def add_callback(self, callback: Callable[[ChainEvent], None]) -> None:
        """Add a callback to be notified of new events."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[ChainEvent], None]) -> None:
        """Remove a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    # ========================================================================
    # Emission
    # ========================================================================

    def emit(
        self,
        event_type: EventType,
        message: str = '',
        **details: Any
    ) -> ChainEvent:
        """
        Record an event and notify subscribers.

        Args:
            event_type: What happened
            message: Human-readable status line (may span several lines)
            **details: Structured payload (block index, defects, counts...)

        Returns:
            The recorded event
        """
        event = ChainEvent(event_type=event_type, message=message, details=details)
        self._track(event)
        self._log(event)

        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:
                # A broken subscriber must not abort a ledger operation
                logger.exception("event callback failed for %s", event_type.value)

        return event

    def _track(self, event: ChainEvent) -> None:
        if event.event_type is EventType.MINING_STARTED:
            self._mining = True
            self._progress = 0
        elif event.event_type is EventType.MINING_PROGRESS:
            self._mining = True
            self._progress = event.details.get('progress', self._progress)
            return
        elif event.event_type in (EventType.BLOCK_MINED,
                                  EventType.MINING_FAILED,
                                  EventType.CHAIN_RESET):
            self._mining = False
            self._progress = 0

        self._message = event.message
        self._history.append(event)

    @staticmethod
    def _log(event: ChainEvent) -> None:
        if event.event_type is EventType.MINING_PROGRESS:
            logger.debug("mining  attempts=%s", event.details.get('progress'))
            return
        level = logging.WARNING if event.event_type in _WARNING_EVENTS else logging.INFO
        if (event.event_type is EventType.CHAIN_VALIDATED
                and not event.details.get('is_valid', True)):
            level = logging.WARNING
        logger.log(level, "%s  %s", event.event_type.value,
                   event.message.replace('\n', ' | '))

    # ========================================================================
    # Observer State
    # ========================================================================

    @property
    def mining_status(self) -> MiningStatus:
        return MiningStatus(self._mining, self._progress)

    @property
    def message(self) -> str:
        """Most recent status message."""
        return self._message

    @property
    def history(self) -> List[ChainEvent]:
        return list(self._history)

    def get_events_by_type(self, event_type: EventType) -> List[ChainEvent]:
        """Get all recorded events of a specific type."""
        return [e for e in self._history if e.event_type == event_type]

    def get_recent_events(self, count: int = 10) -> List[ChainEvent]:
        """Get the most recent events."""
        if count <= 0:
            return []
        events = list(self._history)
        return events[-count:] if len(events) > count else events

    def clear(self) -> None:
        """Forget history and status; subscribers stay attached."""
        self._history.clear()
        self._mining = False
        self._progress = 0
        self._message = ''

    def print_history(self, last_n: Optional[int] = None) -> None:
        """Print the event history in a readable format."""
        events = self.get_recent_events(last_n) if last_n else self.history

        print("\n" + "=" * 70)
        print("LEDGER EVENT LOG")
        print("=" * 70)
        for event in events:
            print(event)
            for k, v in event.details.items():
                print(f"    {k}: {v}")
        print("=" * 70)
        print(f"Total events: {len(self._history)}")
        print("=" * 70)


# ============================================================================
# Convenience Functions
# ============================================================================

def create_event_logger(history_limit: int = HISTORY_LIMIT) -> EventLogger:
    """Create a new event logger."""
    return EventLogger(history_limit=history_limit)
