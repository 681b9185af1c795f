"""Artifact filename tokenization.

Names follow ``T<version>__<description>.sql`` (case-sensitive):

    V001__create_users_table.sql    versioned, version "001"
    S001__seed_users_table.sql      seed, version "001"
    R__users_with_email.sql         repeatable, no version
    R002__orders_summary_view.sql   repeatable, version "002"
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sqlwave.core.errors import MalformedArtifactError
from sqlwave.migrations.model import MigrationType

_ARTIFACT_RE = re.compile(r"^(?P<type>[VRS])(?P<version>\d*)__(?P<description>.+)\.sql$")


@dataclass(frozen=True)
class ParsedName:
    filename: str
    type: MigrationType
    version: str | None
    description: str


def parse_filename(name: str) -> ParsedName:
    """Split an artifact name into type, version and description.

    Any directory prefix is stripped first; the result's ``filename`` is the
    bare name the ledger is keyed on.

    Raises:
        MalformedArtifactError: The name does not follow the scheme, or a
            versioned/seed artifact has no version.
    """
    filename = name.replace("\\", "/").rsplit("/", 1)[-1]
    match = _ARTIFACT_RE.match(filename)
    if match is None:
        raise MalformedArtifactError(filename)

    migration_type = MigrationType.from_prefix(match.group("type"))
    version = match.group("version") or None
    if version is None and not migration_type.is_repeatable:
        raise MalformedArtifactError(
            filename, f"{migration_type.value} artifacts require a version"
        )

    return ParsedName(
        filename=filename,
        type=migration_type,
        version=version,
        description=match.group("description").replace("_", " "),
    )
