"""
Deterministic content hashing for repeatable-migration change detection.

A repeatable artifact re-runs when the hash of its body differs from the
hash recorded in the ledger for its filename. The hash must therefore be
stable across runs, machines and Python versions, and must match what
earlier runs wrote to the ``hash`` column.

Hash format:
    Lowercase hex MD5 of the UTF-8 encoded body, 32 characters. The body
    is hashed verbatim: whitespace and comment changes count as changes.

Examples:
    >>> hash_content("CREATE VIEW v AS SELECT 1;")
    'a0a5e9d2...'  # 32-char hex string
    >>> hash_content("a") == hash_content("a")
    True

Tags:
    hashing, change-detection, idempotency, sqlwave
"""

import hashlib


def hash_content(sql: str) -> str:
    """Return the ledger content hash for a migration body."""
    # Not a security boundary: MD5 only detects edits to an artifact
    return hashlib.md5(sql.encode("utf-8"), usedforsecurity=False).hexdigest()
