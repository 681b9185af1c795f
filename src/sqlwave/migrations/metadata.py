"""Embedded metadata block parser.

An artifact may open with a block comment holding a JSON object::

    /* {"id": "users_view", "dependencies": ["V001__create_users.sql"]} */
    CREATE OR REPLACE VIEW users_view AS SELECT * FROM users;

Recognised keys are ``id`` (string) and ``dependencies`` (list of ids, or a
single id). Other keys are ignored. A leading comment that is not a JSON
object is an ordinary comment and yields empty metadata; one that opens with
``{`` must be valid JSON. The block stays in the SQL body; databases skip it
as a comment.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field

from sqlwave.core.errors import MalformedArtifactError

_BLOCK_RE = re.compile(r"\A\s*/\*(?P<body>.*?)\*/", re.DOTALL)


@dataclass(frozen=True)
class ArtifactMetadata:
    id: str | None = None
    dependencies: frozenset[str] = field(default_factory=frozenset)


def parse_metadata(sql: str, filename: str = "<artifact>") -> ArtifactMetadata:
    """Read the optional leading metadata block of an artifact body.

    Raises:
        MalformedArtifactError: The block opens with ``{`` but is not valid
            JSON, or ``id`` or ``dependencies`` have the wrong type.
    """
    match = _BLOCK_RE.match(sql.lstrip("\ufeff"))
    if match is None:
        return ArtifactMetadata()

    body = match.group("body").strip()
    if not body.startswith("{"):
        return ArtifactMetadata()
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedArtifactError(
            filename, f"metadata block is not valid JSON: {exc}", cause=exc
        ) from exc

    record_id = data.get("id")
    if record_id is not None and (not isinstance(record_id, str) or not record_id):
        raise MalformedArtifactError(filename, "metadata 'id' must be a non-empty string")

    dependencies = data.get("dependencies")
    if dependencies is None:
        dependencies = []
    if isinstance(dependencies, str):
        dependencies = [dependencies]
    if not isinstance(dependencies, list) or not all(
        isinstance(dep, str) for dep in dependencies
    ):
        raise MalformedArtifactError(
            filename, "metadata 'dependencies' must be a list of strings"
        )

    return ArtifactMetadata(id=record_id, dependencies=frozenset(dependencies))
