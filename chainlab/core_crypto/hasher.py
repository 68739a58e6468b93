"""
Block Hasher

Content-addressed digest for ledger blocks.

A block is identified by the SHA-256 of a canonical serialization of its
hashed fields:

    {"index":..,"timestamp":..,"data":..,"previousHash":..,"nonce":..}

Key order is fixed, separators are compact and non-ASCII characters are
emitted verbatim, so the bytes match a JavaScript JSON.stringify of the
same object. Lone surrogates, which UTF-8 cannot carry, become \\uXXXX
escapes as they do in JavaScript. The bookkeeping fields (hash, valid,
tampered) are never hashed.
"""

import json
import re

from cryptography.hazmat.primitives import hashes


# ============================================================================
# Constants
# ============================================================================

DIGEST_HEX_LENGTH = 64  # SHA-256 = 32 bytes = 64 hex chars
SENTINEL_HASH = '0' * DIGEST_HEX_LENGTH  # previous hash of block 0

# UTF-16 halves that cannot be encoded on their own
_LONE_SURROGATE = re.compile('[\ud800-\udfff]')


# ============================================================================
# Digest
# ============================================================================

def sha256_hex(data: bytes) -> str:
    """SHA-256 of raw bytes as lowercase hex."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize().hex()


def canonical_payload(
    index: int,
    timestamp: str,
    data: str,
    previous_hash: str,
    nonce: int
) -> bytes:
    """
    Serialize the hashed fields of a block.

    Args:
        index: Block position in the ledger
        timestamp: ISO-8601 timestamp string
        data: Block payload
        previous_hash: Hex digest of the preceding block
        nonce: Proof-of-work nonce

    Returns:
        UTF-8 encoded compact JSON
    """
    fields = {
        'index': index,
        'timestamp': timestamp,
        'data': data,
        'previousHash': previous_hash,
        'nonce': nonce,
    }
    text = json.dumps(fields, separators=(',', ':'), ensure_ascii=False)
    text = _LONE_SURROGATE.sub(lambda m: '\\u%04x' % ord(m.group()), text)
    return text.encode('utf-8')


def compute_block_hash(
    index: int,
    timestamp: str,
    data: str,
    previous_hash: str,
    nonce: int
) -> str:
    """Compute the hex digest identifying a block."""
    return sha256_hex(
        canonical_payload(index, timestamp, data, previous_hash, nonce)
    )


# ============================================================================
# Difficulty Predicate
# ============================================================================

def leading_zeros(hash_hex: str) -> int:
    """Count leading '0' hex characters."""
    return len(hash_hex) - len(hash_hex.lstrip('0'))


def meets_difficulty(hash_hex: str, difficulty: int) -> bool:
    """Check that a digest starts with `difficulty` zero characters."""
    return hash_hex.startswith('0' * difficulty)
