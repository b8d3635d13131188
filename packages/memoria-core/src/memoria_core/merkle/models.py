"""Data models for the learning-history tree and its ledger."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from memoria_core.merkle.hashing import ZERO_HASH, normalize_hash


def _coerce_bytes(value: object) -> object:
    """Accept raw bytes, ``0x`` hex, or plain text (encoded as UTF-8)."""
    if value is None:
        return b""
    if isinstance(value, str):
        if value.startswith("0x"):
            return bytes.fromhex(value[2:])
        return value.encode("utf-8")
    if isinstance(value, bytearray):
        return bytes(value)
    return value


class TreeNode(BaseModel):
    """A content-addressed node: a leaf with payload, or an internal node.

    ``data`` accepts raw bytes, or a string. A string starting with ``0x`` is
    read as hex (the form JSON dumps use); any other string is UTF-8 encoded.
    Text that itself starts with ``0x`` must therefore be passed as bytes.
    """

    model_config = ConfigDict(frozen=True)

    hash: str
    left_child: str = ZERO_HASH
    right_child: str = ZERO_HASH
    data: bytes = b""
    level: int = Field(default=0, ge=0)
    position: int = Field(default=0, ge=0)
    is_leaf: bool = False
    inserted_at: int = Field(default=0, ge=0)

    @field_validator("hash", "left_child", "right_child", mode="before")
    @classmethod
    def _normalize_hash(cls, v: object) -> str:
        return normalize_hash(v)

    @field_validator("data", mode="before")
    @classmethod
    def _normalize_data(cls, v: object) -> object:
        return _coerce_bytes(v)

    @field_serializer("data", when_used="json")
    def _hex_data(self, v: bytes) -> str:
        return "0x" + v.hex()

    def children(self) -> tuple[str, ...]:
        """Declared non-zero child hashes, left first."""
        return tuple(c for c in (self.left_child, self.right_child) if c != ZERO_HASH)


class RootUpdate(BaseModel):
    """One root transition. Append-only, never mutated."""

    model_config = ConfigDict(frozen=True)

    previous_root: str
    new_root: str
    proof: bytes = b""
    reason: str = ""
    timestamp: int = Field(ge=0)

    @field_validator("previous_root", "new_root", mode="before")
    @classmethod
    def _normalize_root(cls, v: object) -> str:
        return normalize_hash(v)

    @field_validator("proof", mode="before")
    @classmethod
    def _normalize_proof(cls, v: object) -> object:
        return _coerce_bytes(v)

    @field_serializer("proof", when_used="json")
    def _hex_proof(self, v: bytes) -> str:
        return "0x" + v.hex()


class LearningMetrics(BaseModel):
    """Derived cadence statistics. One mutable record per entity."""

    total_interactions: int = 0
    learning_events: int = 0
    last_update_timestamp: int = 0
    learning_velocity: int = 0
    confidence_score: int = 0


class NodeIntegrity(BaseModel):
    """Result of checking a single node against the stored structure.

    ``is_valid=False`` is the structural-inconsistency signal; it is reported,
    never raised. ``issues`` names each rule the node breaks.
    """

    node_hash: str
    exists: bool = False
    is_leaf: bool = False
    is_root: bool = False
    has_valid_parent: bool = False
    parent_hash: str = ZERO_HASH
    has_valid_children: bool = False
    is_valid: bool = False
    issues: list[str] = Field(default_factory=list)


class IntegrityReport(BaseModel):
    """Whole-tree integrity scan."""

    entity: str
    root: str
    node_count: int = 0
    invalid: list[NodeIntegrity] = Field(default_factory=list)
    dangling: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.invalid and not self.dangling


# ---------------------------------------------------------------------------
# Mutable per-entity state
# ---------------------------------------------------------------------------


@dataclass
class EntityTree:
    """Live node index for one entity.

    ``parents`` maps child hash -> first parent (insertion order) that
    declares it, rebuilt on every replace.
    """

    order: list[str] = field(default_factory=list)
    nodes: dict[str, TreeNode] = field(default_factory=dict)
    parents: dict[str, str] = field(default_factory=dict)

    @property
    def node_count(self) -> int:
        return len(self.order)


@dataclass
class EntityLedger:
    """Current root, root history and cadence metrics for one entity."""

    root: str = ZERO_HASH
    updates: list[RootUpdate] = field(default_factory=list)
    update_count: int = 0
    last_updated: int = 0
    metrics: LearningMetrics = field(default_factory=LearningMetrics)


@dataclass
class EntityState:
    """Everything stored under one entity identifier."""

    entity: str
    tree: EntityTree = field(default_factory=EntityTree)
    ledger: EntityLedger = field(default_factory=EntityLedger)

    def clone(self) -> EntityState:
        """Copy deep enough that mutating the clone never touches *self*.

        Nodes and updates are frozen, so sharing them is safe.
        """
        return EntityState(
            entity=self.entity,
            tree=EntityTree(
                order=list(self.tree.order),
                nodes=dict(self.tree.nodes),
                parents=dict(self.tree.parents),
            ),
            ledger=EntityLedger(
                root=self.ledger.root,
                updates=list(self.ledger.updates),
                update_count=self.ledger.update_count,
                last_updated=self.ledger.last_updated,
                metrics=self.ledger.metrics.model_copy(),
            ),
        )
