"""Membership proofs against an entity's stored root."""

from __future__ import annotations

from collections.abc import Sequence

from memoria_core.errors import InvalidInputError
from memoria_core.merkle.hashing import ZERO_HASH, hash_pair, normalize_hash


def process_proof(claim: str | bytes, proof: Sequence[str | bytes]) -> str:
    """Fold *proof* into *claim*, one sibling at a time, and return the result."""
    computed = normalize_hash(claim)
    for sibling in proof:
        computed = hash_pair(computed, normalize_hash(sibling))
    return computed


class ProofVerifier:
    """Pure check of a sibling-hash proof.

    Cost is linear in the proof length (tree depth), independent of how many
    nodes the entity stores.
    """

    def __init__(self, root: str) -> None:
        self._root = root

    def verify(self, claim: str | bytes, proof: Sequence[str | bytes]) -> bool:
        if self._root == ZERO_HASH:
            return False
        try:
            if normalize_hash(claim) == ZERO_HASH:
                return False
            return process_proof(claim, proof) == self._root
        except InvalidInputError:
            return False
