"""
Tamper Simulation

Edits the payload of one block in place and flags it, plus every block
after it, as compromised. No hash, nonce or link is recomputed: the stored
hash goes stale on purpose so that the next validation reports it.
"""

from ..integration.event_logger import EventType
from .ledger import IndexOutOfRangeError, Ledger, tampered_copy


class TamperSimulator:
    """Simulates an attacker rewriting history in a ledger."""

    def tamper(self, ledger: Ledger, index: int, new_data: str) -> int:
        """
        Replace a block's data and compromise it and its successors.

        Args:
            ledger: Ledger to attack
            index: Position of the block to rewrite
            new_data: Replacement payload

        Returns:
            Number of compromised blocks (the edited one included)

        Raises:
            IndexOutOfRangeError: If no block exists at index
            MiningInProgressError: If the ledger is mining
        """
        if isinstance(index, bool) or not isinstance(index, int) \
                or not 0 <= index < ledger.length:
            raise IndexOutOfRangeError(
                f"No block at index {index!r} (chain length {ledger.length})"
            )
        ledger._ensure_idle("tamper with a block")

        blocks = ledger.blocks
        ledger._replace_block(index, tampered_copy(blocks[index], new_data))
        for j in range(index + 1, len(blocks)):
            ledger._replace_block(j, tampered_copy(blocks[j]))

        ledger._set_chain_valid(False)

        compromised = len(blocks) - index
        ledger.events.emit(
            EventType.TAMPER_SIMULATED,
            f"ATTACK SIMULATED\n{compromised} block(s) compromised",
            index=index,
            compromised=compromised,
        )
        return compromised


def tamper_block(ledger: Ledger, index: int, new_data: str) -> int:
    """Tamper with a ledger block using a default simulator."""
    return TamperSimulator().tamper(ledger, index, new_data)
