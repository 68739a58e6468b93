"""
Chain Validation Module

Recomputes every block and cross-checks it against the difficulty target
and its predecessor. Each block gets three independent checks:

- HASH_MISMATCH: the stored hash no longer matches the block content
- POW_INVALID:   the stored hash does not meet the difficulty target
- LINK_BROKEN:   previous_hash does not match the preceding block's hash,
                 or that block's content no longer hashes to it
                 (block 0 must point at the sentinel)

Validation never raises. An empty chain is valid.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple

from ..core_crypto.hasher import SENTINEL_HASH, meets_difficulty
from ..integration.event_logger import EventType
from .ledger import Block, Ledger


class DefectReason(Enum):
    """Why a block failed validation."""
    HASH_MISMATCH = "hash_mismatch"
    POW_INVALID = "pow_invalid"
    LINK_BROKEN = "link_broken"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    DefectReason.HASH_MISMATCH: "invalid hash",
    DefectReason.POW_INVALID: "invalid proof of work",
    DefectReason.LINK_BROKEN: "broken link",
}


@dataclass(frozen=True)
class Defect:
    """One failed check on one block."""
    block_index: int
    reason: DefectReason

    def __str__(self) -> str:
        return f"Block {self.block_index}: {self.reason.label}"


@dataclass(frozen=True)
class ValidationResult:
    """Verdict over a whole chain plus the defects behind it."""
    is_valid: bool
    defects: Tuple[Defect, ...] = field(default_factory=tuple)

    @property
    def defective_indices(self) -> List[int]:
        """Indices of blocks with at least one defect, ascending."""
        return sorted({d.block_index for d in self.defects})

    def defects_for(self, block_index: int) -> List[DefectReason]:
        return [d.reason for d in self.defects if d.block_index == block_index]

    def summary(self) -> str:
        return " | ".join(str(d) for d in self.defects)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_valid': self.is_valid,
            'defects': [
                {'block_index': d.block_index, 'reason': d.reason.value}
                for d in self.defects
            ],
        }


class ChainValidator:
    """
    Cross-checks a ledger block by block.

    `validate` writes the verdict back to the ledger (which gates further
    appends) and reports it to the ledger's event logger; `inspect` is the
    pure form.
    """

    @staticmethod
    def check_block(
        blocks: Sequence[Block],
        i: int,
        difficulty: int,
        recomputed: Sequence[str]
    ) -> List[Defect]:
        """
        Run all three checks on blocks[i]; never short-circuits.

        `recomputed[j]` is the hash of blocks[j]'s current content. A link
        is broken when previous_hash differs from the predecessor's stored
        hash, or when the predecessor's content no longer produces it.
        """
        block = blocks[i]
        defects = []

        if recomputed[i] != block.hash:
            defects.append(Defect(i, DefectReason.HASH_MISMATCH))

        if not meets_difficulty(block.hash, difficulty):
            defects.append(Defect(i, DefectReason.POW_INVALID))

        if i == 0:
            link_ok = block.previous_hash == SENTINEL_HASH
        else:
            link_ok = block.previous_hash == blocks[i - 1].hash == recomputed[i - 1]
        if not link_ok:
            defects.append(Defect(i, DefectReason.LINK_BROKEN))

        return defects

    def inspect(self, blocks: Sequence[Block], difficulty: int) -> ValidationResult:
        """Validate a sequence of blocks without touching any ledger."""
        recomputed = [block.recompute_hash() for block in blocks]
        defects: List[Defect] = []
        for i in range(len(blocks)):
            defects.extend(self.check_block(blocks, i, difficulty, recomputed))
        return ValidationResult(is_valid=not defects, defects=tuple(defects))

    def validate(self, ledger: Ledger) -> ValidationResult:
        """
        Validate the entire ledger and record the verdict on it.

        Args:
            ledger: The ledger to check

        Returns:
            ValidationResult with every defect found, in block order
        """
        result = self.inspect(ledger.blocks, ledger.difficulty)
        ledger._set_chain_valid(result.is_valid)

        if result.is_valid:
            message = "Chain valid and secure"
        else:
            message = f"ATTACK DETECTED\n{result.summary()}"
        ledger.events.emit(
            EventType.CHAIN_VALIDATED,
            message,
            is_valid=result.is_valid,
            defects=[str(d) for d in result.defects],
            length=ledger.length,
        )
        return result


def validate_chain(ledger: Ledger) -> ValidationResult:
    """Validate a ledger with a default validator."""
    return ChainValidator().validate(ledger)
