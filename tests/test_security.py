"""
Security tests for chainlab.

Tests specifically for integrity scenarios:
- Chain validation of honest chains
- Tamper simulation and propagation
- Detection of forged blocks
- Append lock after an attack
"""

from dataclasses import replace

import pytest

from chainlab.blockchain import (
    ChainLockedError,
    ChainValidator,
    Defect,
    DefectReason,
    IndexOutOfRangeError,
    Ledger,
    ProofOfWork,
    TamperSimulator,
    ValidationResult,
    mine_blocks,
    tamper_block,
    validate_chain,
)
from chainlab.core_crypto.hasher import SENTINEL_HASH


def mined_ledger(payloads, difficulty=2):
    ledger = Ledger(difficulty=difficulty)
    mine_blocks(ledger, payloads)
    return ledger


class TestHonestChain:
    """Validation of chains built only by mining."""

    def test_empty_chain_valid(self):
        """An empty chain is vacuously valid."""
        ledger = Ledger()
        result = ChainValidator().validate(ledger)
        assert result.is_valid
        assert result.defects == ()
        assert ledger.chain_valid

    @pytest.mark.parametrize("length", [1, 2, 5])
    def test_mined_chain_valid(self, length):
        ledger = mined_ledger([f"block {i}" for i in range(length)])
        result = validate_chain(ledger)
        assert result.is_valid
        assert result.defects == ()
        assert result.summary() == ""

    def test_validation_idempotent(self):
        ledger = mined_ledger(["a", "b"])
        tamper_block(ledger, 0, "A")
        validator = ChainValidator()
        assert validator.validate(ledger) == validator.validate(ledger)

    def test_inspect_does_not_touch_ledger(self):
        ledger = mined_ledger(["a", "b"])
        ledger._replace_block(1, replace(ledger[1], data="forged"))
        result = ChainValidator().inspect(ledger.blocks, ledger.difficulty)
        assert not result.is_valid
        assert ledger.chain_valid is True


class TestTamperSimulation:
    """Tests for TamperSimulator."""

    def test_concrete_scenario(self):
        """Mine a, b, c; tamper block 1; detect; refuse new blocks."""
        ledger = Ledger(difficulty=2)
        mine_blocks(ledger, ["a", "b", "c"])
        validator = ChainValidator()

        result = validator.validate(ledger)
        assert result.is_valid and result.defects == ()

        TamperSimulator().tamper(ledger, 1, "B")
        result = validator.validate(ledger)

        assert not result.is_valid
        assert result.defects_for(0) == []
        assert DefectReason.HASH_MISMATCH in result.defects_for(1)
        assert result.defects_for(2)
        assert result.defective_indices == [1, 2]
        assert ledger.chain_valid is False

        with pytest.raises(ChainLockedError):
            ledger.mine_and_append("d")
        assert ledger.length == 3

    def test_propagation_flags(self):
        ledger = mined_ledger(["a", "b", "c", "d", "e"], difficulty=1)
        before = ledger.blocks

        compromised = tamper_block(ledger, 2, "evil")

        assert compromised == 3
        for i, block in enumerate(ledger.blocks):
            if i < 2:
                assert block == before[i]
            else:
                assert block.tampered is True
                assert block.valid is False

    def test_only_target_data_changes(self):
        """No hash, nonce, link, index or timestamp is recomputed."""
        ledger = mined_ledger(["a", "b", "c"], difficulty=1)
        before = ledger.blocks

        tamper_block(ledger, 1, "B")
        after = ledger.blocks

        assert after[1].data == "B"
        assert after[2].data == "c"
        for old, new in zip(before, after):
            assert (old.index, old.timestamp, old.previous_hash, old.hash, old.nonce) == \
                   (new.index, new.timestamp, new.previous_hash, new.hash, new.nonce)

    def test_tamper_locks_without_validation(self):
        ledger = mined_ledger(["a"], difficulty=1)
        tamper_block(ledger, 0, "z")
        assert ledger.chain_valid is False
        with pytest.raises(ChainLockedError):
            ledger.mine_and_append("b")

    def test_tamper_last_block(self):
        ledger = mined_ledger(["a", "b"], difficulty=1)
        assert tamper_block(ledger, 1, "x") == 1
        result = validate_chain(ledger)
        assert [str(d) for d in result.defects] == ["Block 1: invalid hash"]

    def test_tamper_first_block(self):
        ledger = mined_ledger(["a", "b", "c"], difficulty=1)
        tamper_block(ledger, 0, "x")
        result = validate_chain(ledger)
        assert result.defects_for(0) == [DefectReason.HASH_MISMATCH]
        assert result.defects_for(1) == [DefectReason.LINK_BROKEN]
        assert result.defects_for(2) == []

    def test_same_data_still_flags_but_validates(self):
        """Rewriting with identical data flags blocks yet the content is intact."""
        ledger = mined_ledger(["a", "b"], difficulty=1)
        tamper_block(ledger, 0, "a")
        assert all(b.tampered for b in ledger.blocks)
        assert validate_chain(ledger).is_valid

    def test_undecodable_input_mines_and_validates(self):
        """Data carrying lone surrogates is hashed, tampered and checked."""
        ledger = mined_ledger(["caf\udce9", "b"], difficulty=1)
        assert validate_chain(ledger).is_valid

        tamper_block(ledger, 0, "bad\udcff")
        result = ChainValidator().validate(ledger)

        assert result.defects_for(0) == [DefectReason.HASH_MISMATCH]
        assert result.defects_for(1) == [DefectReason.LINK_BROKEN]
        assert ledger.chain_valid is False

    @pytest.mark.parametrize("index", [-1, 3, 100, True, "1", 1.0, None])
    def test_index_out_of_range(self, index):
        ledger = mined_ledger(["a", "b", "c"], difficulty=1)
        before = ledger.blocks

        with pytest.raises(IndexOutOfRangeError):
            tamper_block(ledger, index, "x")

        assert ledger.blocks == before
        assert ledger.chain_valid is True

    def test_index_error_on_empty_chain(self):
        with pytest.raises(IndexError):
            tamper_block(Ledger(), 0, "x")

    def test_reset_after_attack(self):
        ledger = mined_ledger(["a", "b"], difficulty=1)
        tamper_block(ledger, 0, "x")
        ledger.reset()

        block = ledger.mine_and_append("again")
        assert block.index == 0
        assert validate_chain(ledger).is_valid


class TestForgedBlocks:
    """Blocks rewritten behind the ledger's back."""

    def test_bad_pow_detected(self):
        ledger = mined_ledger(["a", "b"])
        ledger._replace_block(0, replace(ledger[0], hash="f" * 64))

        result = validate_chain(ledger)

        assert set(result.defects_for(0)) == {
            DefectReason.HASH_MISMATCH, DefectReason.POW_INVALID
        }
        assert result.defects_for(1) == [DefectReason.LINK_BROKEN]

    def test_all_three_defects_on_one_block(self):
        """Checks within a block don't short-circuit."""
        ledger = mined_ledger(["a"])
        ledger._replace_block(0, replace(ledger[0], previous_hash="1" * 64, hash="f" * 64))

        result = validate_chain(ledger)

        assert result.defects == (
            Defect(0, DefectReason.HASH_MISMATCH),
            Defect(0, DefectReason.POW_INVALID),
            Defect(0, DefectReason.LINK_BROKEN),
        )

    def test_genesis_must_point_at_sentinel(self):
        """A re-mined genesis with a non-sentinel link is caught."""
        ledger = mined_ledger(["a"])
        genesis = ledger[0]
        prev = "1" * 64
        nonce, block_hash = ProofOfWork(ledger.difficulty).mine(
            0, genesis.timestamp, genesis.data, prev
        )
        ledger._replace_block(0, replace(genesis, previous_hash=prev,
                                         hash=block_hash, nonce=nonce))

        result = validate_chain(ledger)
        assert result.defects == (Defect(0, DefectReason.LINK_BROKEN),)

    def test_remined_forgery_breaks_next_link(self):
        """An attacker who re-mines one block still breaks its successor."""
        ledger = mined_ledger(["a", "b", "c"])
        target = ledger[1]
        nonce, block_hash = ProofOfWork(ledger.difficulty).mine(
            target.index, target.timestamp, "B", target.previous_hash
        )
        ledger._replace_block(1, replace(target, data="B", hash=block_hash, nonce=nonce))

        result = validate_chain(ledger)

        assert result.defects_for(1) == []
        assert result.defects_for(2) == [DefectReason.LINK_BROKEN]

    def test_lower_difficulty_block_detected(self):
        """Blocks mined at difficulty 1 fail a difficulty-3 chain."""
        ledger = Ledger(difficulty=3)
        ledger.mine_and_append("a")
        weak = ProofOfWork(1)
        prev = ledger[0].hash
        # find a solution that only meets difficulty 1
        ts = ledger[0].timestamp
        for i in range(100):
            nonce, block_hash = weak.mine(1, ts, f"weak {i}", prev)
            if not block_hash.startswith("000"):
                break
        forged = replace(ledger[0], index=1, data=f"weak {i}", previous_hash=prev,
                         hash=block_hash, nonce=nonce)
        ledger._blocks.append(forged)

        result = validate_chain(ledger)
        assert result.defects == (Defect(1, DefectReason.POW_INVALID),)


class TestValidationResult:
    """Tests for ValidationResult helpers."""

    def test_summary_and_dict(self):
        result = ValidationResult(False, (
            Defect(1, DefectReason.HASH_MISMATCH),
            Defect(2, DefectReason.LINK_BROKEN),
        ))
        assert result.summary() == "Block 1: invalid hash | Block 2: broken link"
        assert result.to_dict() == {
            'is_valid': False,
            'defects': [
                {'block_index': 1, 'reason': 'hash_mismatch'},
                {'block_index': 2, 'reason': 'link_broken'},
            ],
        }

    def test_sentinel_constant(self):
        assert SENTINEL_HASH == "0" * 64
