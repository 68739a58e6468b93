"""
Blockchain Ledger Module

Implements a hash-chained ledger with:
- SHA-256 content addressing (see core_crypto.hasher)
- Proof of Work with a hex-zero difficulty target
- Cooperative progress reporting and cancellation during mining
- An append lock once the chain has been attacked

Blocks are frozen dataclasses. The only sanctioned "mutation" is a tamper
simulation, which swaps a block for a copy with different data and
compromise flags while keeping its hash, nonce and linkage stale.

Author: chainlab
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional

from ..config import (
    DEFAULT_DIFFICULTY,
    PROGRESS_INTERVAL,
    LedgerConfig,
    clamp_difficulty,
)
from ..core_crypto.hasher import (
    DIGEST_HEX_LENGTH,
    SENTINEL_HASH,
    compute_block_hash,
    meets_difficulty,
)
from ..integration.event_logger import EventLogger, EventType

logger = logging.getLogger("chainlab.ledger")


# ============================================================================
# Errors
# ============================================================================

class LedgerError(Exception):
    """Base class for ledger failures."""
    pass


class EmptyDataError(LedgerError, ValueError):
    """Raised when a block payload is empty or whitespace-only."""
    pass


class ChainLockedError(LedgerError):
    """Raised when appending to a chain that was found compromised."""
    pass


class IndexOutOfRangeError(LedgerError, IndexError):
    """Raised when a block index does not exist in the ledger."""
    pass


class DifficultyLockedError(LedgerError):
    """Raised when changing difficulty after the first block was mined."""
    pass


class MiningInProgressError(LedgerError):
    """Raised when a ledger is asked to mine or mutate while mining."""
    pass


class MiningAbortedError(LedgerError, RuntimeError):
    """Raised when a nonce search stops without a solution."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class MiningCancelledError(MiningAbortedError):
    """Raised when a nonce search is cancelled by its caller."""
    pass


# ============================================================================
# Block Structure
# ============================================================================

def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds, e.g. 2026-10-19T08:49:00.123Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass(frozen=True)
class Block:
    """
    A mined block.

    index, timestamp, data, previous_hash and nonce are hashed; hash is the
    digest found by proof of work; valid and tampered are bookkeeping flags
    set by the tamper simulator.
    """
    index: int
    timestamp: str
    data: str
    previous_hash: str
    hash: str
    nonce: int
    valid: bool = True
    tampered: bool = False

    def hashed_fields(self) -> Dict[str, Any]:
        """Fields covered by the block hash, in canonical order."""
        return {
            'index': self.index,
            'timestamp': self.timestamp,
            'data': self.data,
            'previous_hash': self.previous_hash,
            'nonce': self.nonce,
        }

    def recompute_hash(self) -> str:
        """Hash the block's current content."""
        return compute_block_hash(**self.hashed_fields())

    def to_dict(self) -> Dict[str, Any]:
        """Convert block to a plain dictionary for presentation."""
        return {
            'index': self.index,
            'timestamp': self.timestamp,
            'data': self.data,
            'previous_hash': self.previous_hash,
            'hash': self.hash,
            'nonce': self.nonce,
            'valid': self.valid,
            'tampered': self.tampered,
        }

    def __str__(self) -> str:
        status = "COMPROMISED" if self.tampered else "VALID"
        return (
            f"Block #{self.index} [{status}]\n"
            f"  Time: {self.timestamp}\n"
            f"  Data: {self.data}\n"
            f"  Nonce: {self.nonce}\n"
            f"  Prev: {self.previous_hash[:24]}...\n"
            f"  Hash: {self.hash[:24]}..."
        )


# ============================================================================
# Proof of Work
# ============================================================================

class ProofOfWorkResult(NamedTuple):
    """Winning nonce and the digest it produces."""
    nonce: int
    hash: str


class ProofOfWork:
    """
    Nonce search against a hex-zero difficulty target.

    A hash is valid when it starts with `difficulty` '0' characters, so the
    expected number of attempts is about 16 ** difficulty.
    """

    def __init__(
        self,
        difficulty: int = DEFAULT_DIFFICULTY,
        progress_interval: int = PROGRESS_INTERVAL,
        max_attempts: Optional[int] = None
    ):
        """
        Initialize PoW with given difficulty.

        Args:
            difficulty: Leading zero hex characters required (1-64)
            progress_interval: Nonces between progress reports
            max_attempts: Optional ceiling on attempts; None searches forever
        """
        if not 1 <= difficulty <= DIGEST_HEX_LENGTH:
            raise ValueError(f"Difficulty must be between 1 and {DIGEST_HEX_LENGTH}")
        if progress_interval < 1:
            raise ValueError("Progress interval must be at least 1")
        self.difficulty = difficulty
        self.progress_interval = progress_interval
        self.max_attempts = max_attempts

    @property
    def target(self) -> str:
        """Required hash prefix."""
        return '0' * self.difficulty

    def hash_meets_target(self, hash_hex: str) -> bool:
        """Check if a hash meets the difficulty target."""
        return meets_difficulty(hash_hex, self.difficulty)

    def mine(
        self,
        index: int,
        timestamp: str,
        data: str,
        previous_hash: str,
        on_progress: Optional[Callable[[int], None]] = None,
        cancel: Optional[Any] = None
    ) -> ProofOfWorkResult:
        """
        Search for a nonce whose block hash meets the target.

        Every `progress_interval` nonces the search reports the current
        nonce to `on_progress` and checks `cancel.is_set()`. Neither affects
        the result.

        Args:
            index: Block index
            timestamp: Block timestamp
            data: Block payload
            previous_hash: Hash of the preceding block
            on_progress: Called with the nonce count at each checkpoint
            cancel: Token with an is_set() method (e.g. threading.Event)

        Returns:
            ProofOfWorkResult(nonce, hash)

        Raises:
            MiningCancelledError: If the cancel token was set
            MiningAbortedError: If max_attempts was exceeded
        """
        if cancel is not None and cancel.is_set():
            raise MiningCancelledError("Mining cancelled before start", 0)

        nonce = 0
        while True:
            block_hash = compute_block_hash(index, timestamp, data, previous_hash, nonce)
            if self.hash_meets_target(block_hash):
                return ProofOfWorkResult(nonce, block_hash)

            nonce += 1

            if self.max_attempts is not None and nonce >= self.max_attempts:
                raise MiningAbortedError(
                    f"Failed to find valid nonce after {nonce} attempts", nonce
                )

            if nonce % self.progress_interval == 0:
                if on_progress is not None:
                    on_progress(nonce)
                if cancel is not None and cancel.is_set():
                    raise MiningCancelledError(
                        f"Mining cancelled after {nonce} attempts", nonce
                    )


# ============================================================================
# Ledger
# ============================================================================

class Ledger:
    """
    Ordered, append-only chain of mined blocks.

    Features:
    - Difficulty fixed once the first block exists
    - One mining operation at a time
    - Appends refused while the chain is known to be compromised
    - Every outcome reported to an EventLogger
    """

    def __init__(
        self,
        difficulty: Optional[int] = None,
        config: Optional[LedgerConfig] = None,
        events: Optional[EventLogger] = None,
        clock: Callable[[], str] = utc_timestamp
    ):
        """
        Initialize an empty ledger.

        Args:
            difficulty: Leading zeros required, clamped to [1, 5];
                overrides config.difficulty when given
            config: Tuneables; defaults to LedgerConfig()
            events: Observer; a fresh EventLogger when omitted
            clock: Returns the timestamp string for new blocks
        """
        self._config = config or LedgerConfig()
        self._difficulty = clamp_difficulty(
            self._config.difficulty if difficulty is None else difficulty
        )
        self._events = events or EventLogger(self._config.history_limit)
        self._clock = clock

        self._blocks: List[Block] = []
        self._chain_valid = True
        self._mining_lock = threading.Lock()
        self._progress = 0

    # ========================================================================
    # Read-only view
    # ========================================================================

    @property
    def blocks(self) -> List[Block]:
        """Get the chain (copy; blocks themselves are frozen)."""
        return list(self._blocks)

    @property
    def length(self) -> int:
        return len(self._blocks)

    @property
    def last_block(self) -> Optional[Block]:
        return self._blocks[-1] if self._blocks else None

    @property
    def difficulty(self) -> int:
        return self._difficulty

    @property
    def chain_valid(self) -> bool:
        """Last verdict from validation or tampering."""
        return self._chain_valid

    @property
    def mining(self) -> bool:
        return self._mining_lock.locked()

    @property
    def progress(self) -> int:
        """Nonce count at the last progress checkpoint of the running search."""
        return self._progress

    @property
    def events(self) -> EventLogger:
        return self._events

    @property
    def config(self) -> LedgerConfig:
        return self._config

    def __len__(self) -> int:
        return len(self._blocks)

    def __getitem__(self, index: int) -> Block:
        return self._blocks[index]

    def __iter__(self) -> Iterator[Block]:
        return iter(list(self._blocks))

    # ========================================================================
    # Settings
    # ========================================================================

    def set_difficulty(self, value: Any) -> int:
        """
        Change the mining difficulty.

        Args:
            value: int or numeric string, clamped to [1, 5]

        Returns:
            The difficulty now in effect

        Raises:
            DifficultyLockedError: If the chain already has blocks
            MiningInProgressError: If the first block is being mined
        """
        self._ensure_idle("change difficulty")
        if self._blocks:
            raise DifficultyLockedError(
                "Difficulty is fixed once the first block has been mined"
            )
        self._difficulty = clamp_difficulty(value)
        self._events.emit(
            EventType.DIFFICULTY_CHANGED,
            f"Difficulty set to {self._difficulty} ({'0' * self._difficulty})",
            difficulty=self._difficulty,
        )
        return self._difficulty

    # ========================================================================
    # Mining
    # ========================================================================

    def mine_and_append(self, data: str, cancel: Optional[Any] = None) -> Block:
        """
        Mine a new block carrying `data` and append it.

        Args:
            data: Block payload; must contain non-whitespace characters
            cancel: Optional token with is_set(); checked at each progress
                checkpoint

        Returns:
            The newly mined block

        Raises:
            EmptyDataError: If data is empty or whitespace-only
            ChainLockedError: If the chain is compromised and not reset
            MiningInProgressError: If another search is running
            MiningAbortedError: If the search hit the attempts ceiling or
                was cancelled (MiningCancelledError); nothing is appended
        """
        if not isinstance(data, str) or not data.strip():
            self._events.emit(EventType.EMPTY_DATA, "Enter some data for the block")
            raise EmptyDataError("Block data cannot be empty")

        if self._blocks and not self._chain_valid:
            self._events.emit(
                EventType.CHAIN_LOCKED,
                "CHAIN COMPROMISED\n\n"
                "Cannot add a block. The chain has been attacked and is invalid.",
                length=len(self._blocks),
            )
            raise ChainLockedError(
                "Chain is compromised; reset it before mining new blocks"
            )

        if not self._mining_lock.acquire(blocking=False):
            raise MiningInProgressError("A block is already being mined")

        try:
            return self._mine_locked(data, cancel)
        finally:
            self._progress = 0
            self._mining_lock.release()

    def _mine_locked(self, data: str, cancel: Optional[Any]) -> Block:
        index = len(self._blocks)
        timestamp = self._clock()
        previous_hash = SENTINEL_HASH if index == 0 else self._blocks[index - 1].hash

        self._progress = 0
        self._events.emit(
            EventType.MINING_STARTED,
            "Mining in progress...",
            index=index,
            difficulty=self._difficulty,
        )

        pow_ = ProofOfWork(
            self._difficulty,
            progress_interval=self._config.progress_interval,
            max_attempts=self._config.max_attempts,
        )

        try:
            nonce, block_hash = pow_.mine(
                index=index,
                timestamp=timestamp,
                data=data,
                previous_hash=previous_hash,
                on_progress=self._report_progress,
                cancel=cancel,
            )
        except MiningAbortedError as exc:
            self._events.emit(
                EventType.MINING_FAILED,
                f"Mining stopped: {exc}",
                index=index,
                attempts=exc.attempts,
                cancelled=isinstance(exc, MiningCancelledError),
            )
            raise
        except BaseException:
            # e.g. KeyboardInterrupt; the observer must not stay in mining state
            self._events.emit(
                EventType.MINING_FAILED,
                "Mining interrupted",
                index=index,
                attempts=self._progress,
                cancelled=True,
            )
            raise

        logger.debug("PoW found  index=%d  nonce=%d  digest=%s",
                     index, nonce, block_hash[:16])
        block = Block(
            index=index,
            timestamp=timestamp,
            data=data,
            previous_hash=previous_hash,
            hash=block_hash,
            nonce=nonce,
        )
        self._blocks.append(block)

        self._events.emit(
            EventType.BLOCK_MINED,
            f"Block {index} mined successfully!",
            index=index,
            nonce=nonce,
            hash=block_hash,
        )
        return block

    def _report_progress(self, nonce: int) -> None:
        self._progress = nonce
        self._events.emit(EventType.MINING_PROGRESS, progress=nonce)

    # ========================================================================
    # Mutation hooks for the validator and the tamper simulator
    # ========================================================================

    def _set_chain_valid(self, value: bool) -> None:
        self._chain_valid = bool(value)

    def _replace_block(self, index: int, block: Block) -> None:
        self._blocks[index] = block

    def _ensure_idle(self, action: str) -> None:
        if self.mining:
            raise MiningInProgressError(f"Cannot {action} while a block is being mined")

    # ========================================================================
    # Reset
    # ========================================================================

    def reset(self) -> None:
        """
        Discard every block and unlock the chain.

        The difficulty is kept but may be changed again.
        """
        self._ensure_idle("reset the chain")
        self._blocks.clear()
        self._chain_valid = True
        self._progress = 0
        self._events.emit(EventType.CHAIN_RESET, "Chain reset")

    def print_chain(self) -> None:
        """Print the ledger."""
        state = "valid" if self._chain_valid else "ATTACK DETECTED"
        print(f"\nLedger (difficulty={self.difficulty}, length={self.length}, {state})")
        print("=" * 60)
        if not self._blocks:
            print("No blocks yet. Start mining!")
        for i, block in enumerate(self._blocks):
            print(block)
            if i < len(self._blocks) - 1:
                print("    X" if block.tampered else "    |")
        print("-" * 60)


# ============================================================================
# Convenience Functions
# ============================================================================

def create_ledger(difficulty: int = DEFAULT_DIFFICULTY, **kwargs) -> Ledger:
    """Create a new empty ledger with given difficulty."""
    return Ledger(difficulty=difficulty, **kwargs)


def mine_blocks(ledger: Ledger, payloads: List[str]) -> List[Block]:
    """Mine one block per payload, in order."""
    return [ledger.mine_and_append(data) for data in payloads]


def tampered_copy(block: Block, data: Optional[str] = None) -> Block:
    """Copy of `block` marked compromised; only data and flags change."""
    return replace(
        block,
        data=block.data if data is None else data,
        valid=False,
        tampered=True,
    )
