"""Migration loader - turn source artifacts into ``MigrationRecord``s.

The loader is pure: it reads artifacts and compares them with a ledger
snapshot, but never touches the database itself.

``should_run`` per type:

    versioned / seed   filename not in the performed exclusions
    repeatable         content hash differs from the last performed hash
                       (no recorded hash counts as different)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Set

from sqlwave.core.hashing import hash_content
from sqlwave.core.logging import get_logger
from sqlwave.migrations.metadata import parse_metadata
from sqlwave.migrations.model import MigrationRecord
from sqlwave.migrations.naming import parse_filename
from sqlwave.migrations.sources import ArtifactSource

logger = get_logger(__name__)


def build_record(
    name: str,
    sql: str,
    exclusions: Set[str],
    hashes: Mapping[str, str],
) -> MigrationRecord:
    """Build the record for one artifact.

    Raises:
        MalformedArtifactError: Bad name or metadata block.
    """
    parsed = parse_filename(name)
    metadata = parse_metadata(sql, parsed.filename)
    content_hash = hash_content(sql)

    if parsed.type.is_repeatable:
        should_run = hashes.get(parsed.filename) != content_hash
    else:
        should_run = parsed.filename not in exclusions

    return MigrationRecord(
        id=metadata.id or parsed.filename,
        filename=parsed.filename,
        type=parsed.type,
        version=parsed.version,
        description=parsed.description,
        sql=sql,
        dependencies=metadata.dependencies,
        should_run=should_run,
        hash=content_hash,
    )


def load_records(
    names: Iterable[str],
    fetch: Callable[[str], str],
    exclusions: Set[str] = frozenset(),
    hashes: Mapping[str, str] | None = None,
) -> list[MigrationRecord]:
    """Load every named artifact into a record.

    Args:
        names: Artifact names, in any order
        fetch: Returns the raw body for a name
        exclusions: Filenames of performed versioned/seed artifacts
        hashes: Filename → last performed hash, for repeatable artifacts

    Returns:
        Records in the order of ``names``.
    """
    hashes = hashes or {}
    records = [build_record(name, fetch(name), exclusions, hashes) for name in names]

    logger.debug(
        "loader.loaded",
        record_count=len(records),
        should_run=sum(1 for r in records if r.should_run),
    )
    return records


def load_from_source(
    source: ArtifactSource,
    exclusions: Set[str] = frozenset(),
    hashes: Mapping[str, str] | None = None,
) -> list[MigrationRecord]:
    """Load every artifact a source lists."""
    return load_records(source.names(), source.read, exclusions, hashes)
