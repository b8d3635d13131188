"""Merkle tree subsystem for per-entity learning histories."""

from memoria_core.merkle.builder import BuiltTree, build_tree
from memoria_core.merkle.hashing import (
    ZERO_HASH,
    compute_hash,
    hash_pair,
    is_zero,
    normalize_hash,
)
from memoria_core.merkle.integrity import IntegrityChecker
from memoria_core.merkle.metrics import MetricsEngine
from memoria_core.merkle.models import (
    EntityState,
    IntegrityReport,
    LearningMetrics,
    NodeIntegrity,
    RootUpdate,
    TreeNode,
)
from memoria_core.merkle.node_store import NodeStore
from memoria_core.merkle.path import MAX_PATH_HOPS, PathFinder
from memoria_core.merkle.proof import ProofVerifier, process_proof
from memoria_core.merkle.root_ledger import RootLedger

__all__ = [
    "BuiltTree",
    "EntityState",
    "IntegrityChecker",
    "IntegrityReport",
    "LearningMetrics",
    "MAX_PATH_HOPS",
    "MetricsEngine",
    "NodeIntegrity",
    "NodeStore",
    "PathFinder",
    "ProofVerifier",
    "RootLedger",
    "RootUpdate",
    "TreeNode",
    "ZERO_HASH",
    "build_tree",
    "compute_hash",
    "hash_pair",
    "is_zero",
    "normalize_hash",
    "process_proof",
]
