"""Shared test fixtures for Memoria."""

import pytest

from memoria_core.auth import SingleAdminAuthorizer
from memoria_core.config.models import MemoriaConfig
from memoria_core.events import MemoryEventSink
from memoria_core.ledger import LearningLedger
from memoria_core.merkle import TreeNode, compute_hash, hash_pair
from memoria_core.storage import MemoryBackend

ADMIN = "owner"
START = 1_700_000_000


def h(label: str) -> str:
    """Deterministic test hash for a label."""
    return compute_hash(label.encode())


def leaf(label: str, position: int = 0) -> TreeNode:
    return TreeNode(hash=h(label), data=f"{label}_data", level=0, position=position, is_leaf=True)


def internal(label: str, left: str, right: str, level: int = 1, position: int = 0) -> TreeNode:
    return TreeNode(hash=h(label), left_child=left, right_child=right, level=level, position=position)


class FakeClock:
    """Monotonic stand-in for wall-clock seconds."""

    def __init__(self, now: int = START) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> MemoryEventSink:
    return MemoryEventSink()


@pytest.fixture
def ledger(clock, sink) -> LearningLedger:
    return LearningLedger(
        backend=MemoryBackend(),
        authorizer=SingleAdminAuthorizer(ADMIN),
        clock=clock,
        sinks=[sink],
    )


@pytest.fixture
def sample_config():
    return MemoriaConfig()


@pytest.fixture
def small_tree() -> list[TreeNode]:
    """Three leaves under one parent, plus a loose leaf (not under the parent)."""
    return [
        leaf("leaf1", 0),
        leaf("leaf2", 1),
        internal("parent1", h("leaf1"), h("leaf2")),
        leaf("leaf3", 2),
    ]


@pytest.fixture
def four_leaf_tree() -> dict[str, str]:
    """Hashes of a balanced 4-leaf tree built with sorted-pair hashing."""
    l0, l1, l2, l3 = h("L0"), h("L1"), h("L2"), h("L3")
    p0 = hash_pair(l0, l1)
    p1 = hash_pair(l2, l3)
    return {"L0": l0, "L1": l1, "L2": l2, "L3": l3, "P0": p0, "P1": p1, "R": hash_pair(p0, p1)}
