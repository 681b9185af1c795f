"""Migration data model: artifact types, records, descriptors and waves."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MigrationType(str, Enum):
    """Closed set of artifact types, keyed by filename prefix letter."""

    VERSIONED = "versioned"
    REPEATABLE = "repeatable"
    SEED = "seed"

    @classmethod
    def from_prefix(cls, prefix: str) -> MigrationType:
        if prefix == "V":
            return cls.VERSIONED
        elif prefix == "R":
            return cls.REPEATABLE
        elif prefix == "S":
            return cls.SEED
        raise ValueError(f"Unknown migration type prefix: {prefix!r}")

    @property
    def is_repeatable(self) -> bool:
        return self is MigrationType.REPEATABLE


@dataclass
class MigrationRecord:
    """
    One source artifact, as seen by a single run.

    Built fresh per invocation from the artifact and a ledger snapshot;
    never persisted. ``should_run`` is the loader's verdict from the ledger
    alone. Whether the record actually runs is decided by the graph
    (``MigrationGraph.runnable``), which can add repeatables via cascade.

    Attributes:
        id: Stable identity, the metadata ``id`` or the filename
        filename: Artifact name, the ledger join key
        type: Versioned, repeatable or seed
        version: Digit string from the name (None for unversioned repeatables)
        description: Human text derived from the name
        sql: Body executed verbatim
        dependencies: Ids of records this one must run after
        should_run: Ledger verdict (pending, or content changed)
        hash: Content hash of ``sql``
        wave: Scheduled wave (1-based), None until scheduled
    """

    id: str
    filename: str
    type: MigrationType
    version: str | None
    description: str
    sql: str
    dependencies: frozenset[str] = field(default_factory=frozenset)
    should_run: bool = True
    hash: str | None = None
    wave: int | None = None

    @property
    def sort_key(self) -> tuple:
        """Deterministic order within a wave.

        Non-repeatable before repeatable, then numeric version, versioned
        before seed at the same version, then id.
        """
        version = int(self.version) if self.version else -1
        return (
            self.type.is_repeatable,
            version,
            self.type is MigrationType.SEED,
            self.id,
        )

    def describe(self) -> AppliedMigration:
        return AppliedMigration(
            id=self.id,
            filename=self.filename,
            type=self.type,
            version=self.version,
            description=self.description,
            wave=self.wave,
        )


@dataclass(frozen=True)
class AppliedMigration:
    """Descriptor of a migration handed back to callers and event callbacks."""

    id: str
    filename: str
    type: MigrationType
    version: str | None
    description: str
    wave: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "type": self.type.value,
            "version": self.version,
            "description": self.description,
            "wave": self.wave,
        }

    def __str__(self) -> str:
        return f"[{self.type.value} | {self.description} @ {self.version}]"


@dataclass(frozen=True)
class Wave:
    """A set of record ids that can run together; ``ids`` in execution order."""

    number: int
    ids: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self):
        return iter(self.ids)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self.ids
