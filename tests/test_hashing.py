"""Tests for hash primitives and normalisation."""

from __future__ import annotations

import pytest

from memoria_core.errors import InvalidInputError
from memoria_core.merkle import ZERO_HASH, compute_hash, hash_pair, is_zero, normalize_hash


# ── compute_hash ─────────────────────────────────────────────────────


def test_compute_hash_deterministic():
    assert compute_hash(b"hello") == compute_hash(b"hello")


def test_compute_hash_is_keccak256():
    """Known Keccak-256 digest of the empty string."""
    assert compute_hash(b"") == (
        "0xc5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    )


def test_compute_hash_format():
    value = compute_hash(b"anything")
    assert value.startswith("0x")
    assert len(value) == 66
    assert all(c in "0123456789abcdef" for c in value[2:])


def test_compute_hash_different_inputs():
    assert compute_hash(b"a") != compute_hash(b"b")


# ── hash_pair ────────────────────────────────────────────────────────


def test_hash_pair_order_independent():
    a, b = compute_hash(b"a"), compute_hash(b"b")
    assert hash_pair(a, b) == hash_pair(b, a)


def test_hash_pair_differs_from_inputs():
    a, b = compute_hash(b"a"), compute_hash(b"b")
    assert hash_pair(a, b) not in (a, b)


# ── normalize_hash ───────────────────────────────────────────────────


def test_normalize_accepts_bytes():
    raw = bytes(range(32))
    assert normalize_hash(raw) == "0x" + raw.hex()


def test_normalize_adds_prefix_and_lowercases():
    value = "AB" * 32
    assert normalize_hash(value) == "0x" + "ab" * 32


def test_normalize_empty_is_zero():
    assert normalize_hash("") == ZERO_HASH
    assert normalize_hash(None) == ZERO_HASH
    assert normalize_hash(b"") == ZERO_HASH


@pytest.mark.parametrize("bad", ["0x1234", "zz" * 32, b"short"])
def test_normalize_rejects_malformed(bad):
    with pytest.raises(InvalidInputError) as exc_info:
        normalize_hash(bad)
    assert exc_info.value.invariant == "malformed hash"


def test_is_zero():
    assert is_zero(ZERO_HASH)
    assert is_zero("0x" + "0" * 64)
    assert not is_zero(compute_hash(b"x"))
