# Core Cryptography Module
"""
Hashing primitives for the ledger:
- SHA-256 digests (cryptography package)
- Canonical block payload serialization
- Difficulty predicate
"""

from .hasher import (
    DIGEST_HEX_LENGTH,
    SENTINEL_HASH,
    canonical_payload,
    compute_block_hash,
    leading_zeros,
    meets_difficulty,
    sha256_hex,
)

__all__ = [
    'DIGEST_HEX_LENGTH',
    'SENTINEL_HASH',
    'canonical_payload',
    'compute_block_hash',
    'leading_zeros',
    'meets_difficulty',
    'sha256_hex',
]
