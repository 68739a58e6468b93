# Blockchain Module
"""
Hash-chained ledger including:
- Proof of Work mining with progress reporting
- Full chain validation with per-block defects
- Tamper simulation with downstream propagation

Integrity features:
- Frozen blocks; only the tamper simulator swaps one for a flagged copy
- Appends refused once a chain is found compromised
"""

from .ledger import (
    Block,
    Ledger,
    ProofOfWork,
    ProofOfWorkResult,
    LedgerError,
    EmptyDataError,
    ChainLockedError,
    IndexOutOfRangeError,
    DifficultyLockedError,
    MiningInProgressError,
    MiningAbortedError,
    MiningCancelledError,
    create_ledger,
    mine_blocks,
)

from .validator import (
    ChainValidator,
    ValidationResult,
    Defect,
    DefectReason,
    validate_chain,
)

from .tamper import (
    TamperSimulator,
    tamper_block,
)

__all__ = [
    # Ledger
    'Block',
    'Ledger',
    'ProofOfWork',
    'ProofOfWorkResult',
    'create_ledger',
    'mine_blocks',
    # Errors
    'LedgerError',
    'EmptyDataError',
    'ChainLockedError',
    'IndexOutOfRangeError',
    'DifficultyLockedError',
    'MiningInProgressError',
    'MiningAbortedError',
    'MiningCancelledError',
    # Validation
    'ChainValidator',
    'ValidationResult',
    'Defect',
    'DefectReason',
    'validate_chain',
    # Tampering
    'TamperSimulator',
    'tamper_block',
]
