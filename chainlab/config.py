"""
Configuration for a chainlab ledger.

Difficulty is bounded to a small range so that the expected proof-of-work
search (about 16^difficulty hashes) stays interactive.
"""

from dataclasses import dataclass
from typing import Any, Optional


MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
DEFAULT_DIFFICULTY = 2

PROGRESS_INTERVAL = 100  # nonces between progress reports
HISTORY_LIMIT = 100      # status events kept by the event logger


def clamp_difficulty(value: Any) -> int:
    """
    Coerce a user-supplied difficulty into [MIN_DIFFICULTY, MAX_DIFFICULTY].

    Accepts ints and numeric strings. Anything unparsable, and zero,
    falls back to MIN_DIFFICULTY.
    """
    if isinstance(value, bool):
        value = int(value)
    try:
        parsed = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError, OverflowError):
        parsed = 0
    if not parsed:
        parsed = MIN_DIFFICULTY
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, parsed))


@dataclass
class LedgerConfig:
    """All tuneable parameters for one ledger."""

    difficulty: int = DEFAULT_DIFFICULTY
    progress_interval: int = PROGRESS_INTERVAL
    max_attempts: Optional[int] = None  # None = search without a ceiling
    history_limit: int = HISTORY_LIMIT

    def __post_init__(self):
        self.difficulty = clamp_difficulty(self.difficulty)
        if self.progress_interval < 1:
            raise ValueError("progress_interval must be at least 1")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be positive when set")
        if self.history_limit < 1:
            raise ValueError("history_limit must be at least 1")
