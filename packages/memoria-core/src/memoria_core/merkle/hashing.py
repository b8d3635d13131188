"""Hash primitives: 32-byte Keccak-256 digests rendered as 0x-prefixed hex."""

from __future__ import annotations

import re

from eth_utils import keccak

from memoria_core.errors import InvalidInputError

HASH_BYTES = 32
ZERO_HASH = "0x" + "00" * HASH_BYTES

_HEX64_RE = re.compile(r"[a-f0-9]{64}")


def normalize_hash(value: str | bytes | None) -> str:
    """Coerce *value* to canonical ``0x`` + 64 lowercase hex form.

    Accepts 32 raw bytes or a hex string with or without the ``0x`` prefix.
    ``None`` and the empty string normalise to ``ZERO_HASH``.
    Raises InvalidInputError for anything else.
    """
    if value is None:
        return ZERO_HASH
    if isinstance(value, (bytes, bytearray)):
        if len(value) == 0:
            return ZERO_HASH
        if len(value) != HASH_BYTES:
            raise InvalidInputError(
                f"hash must be {HASH_BYTES} bytes, got {len(value)}",
                invariant="malformed hash",
            )
        return "0x" + bytes(value).hex()
    if not isinstance(value, str):
        raise InvalidInputError(
            f"hash must be str or bytes, got {type(value).__name__}",
            invariant="malformed hash",
        )
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    if not text:
        return ZERO_HASH
    if not _HEX64_RE.fullmatch(text):
        raise InvalidInputError(
            f"hash must be 64 hex characters, got {value!r}",
            invariant="malformed hash",
        )
    return "0x" + text


def is_zero(value: str | bytes | None) -> bool:
    """True when *value* is empty or the all-zero digest."""
    return normalize_hash(value) == ZERO_HASH


def hash_bytes(value: str) -> bytes:
    """Raw 32 bytes of a canonical hash string."""
    return bytes.fromhex(normalize_hash(value)[2:])


def compute_hash(content: bytes) -> str:
    """Keccak-256 of *content*, as a canonical hash string."""
    return "0x" + keccak(content).hex()


def hash_pair(a: str, b: str) -> str:
    """Combine two hashes in sorted order, so sibling order doesn't matter."""
    left, right = hash_bytes(a), hash_bytes(b)
    if right < left:
        left, right = right, left
    return "0x" + keccak(left + right).hex()
