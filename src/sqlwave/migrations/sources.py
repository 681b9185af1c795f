"""Where migration artifacts come from.

A source lists artifact names and reads their bodies. Two are provided:

- ``DirectorySource``: ``.sql`` files in a filesystem directory
- ``PackageSource``: ``.sql`` resources shipped inside an installed package,
  selected with a root of the form ``package:myapp/migrations``

Only ``.sql`` entries are listed; other files (READMEs, fixtures) are
skipped. Whether a ``.sql`` name follows the naming scheme is the loader's
concern.
"""

from __future__ import annotations

from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Protocol

from sqlwave.core.errors import ConfigError, MalformedArtifactError

PACKAGE_PREFIX = "package:"


class ArtifactSource(Protocol):
    def names(self) -> list[str]: ...

    def read(self, name: str) -> str: ...


def _decode(name: str, raw: bytes) -> str:
    # utf-8-sig drops a leading BOM so the metadata block is still found
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedArtifactError(name, "not valid UTF-8", cause=exc) from exc


class DirectorySource:
    """Artifacts in a filesystem directory (non-recursive)."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def names(self) -> list[str]:
        if not self.path.is_dir():
            raise ConfigError(f"Migration directory not found: {self.path}")
        return sorted(entry.name for entry in self.path.glob("*.sql") if entry.is_file())

    def read(self, name: str) -> str:
        return _decode(name, (self.path / name).read_bytes())

    def __repr__(self) -> str:
        return f"DirectorySource({str(self.path)!r})"


class PackageSource:
    """Artifacts bundled as resources of an importable package."""

    def __init__(self, package: str, subdir: str = "") -> None:
        self.package = package
        self.subdir = subdir.strip("/")

    def _root(self) -> Traversable:
        try:
            root = resources.files(self.package)
        except ModuleNotFoundError as exc:
            raise ConfigError(f"Migration package not importable: {self.package}", cause=exc)
        for part in filter(None, self.subdir.split("/")):
            root = root.joinpath(part)
        return root

    def names(self) -> list[str]:
        root = self._root()
        if not root.is_dir():
            raise ConfigError(
                f"Migration resource directory not found: {self.package}/{self.subdir}"
            )
        return sorted(
            entry.name
            for entry in root.iterdir()
            if entry.is_file() and entry.name.endswith(".sql")
        )

    def read(self, name: str) -> str:
        return _decode(name, self._root().joinpath(name).read_bytes())

    def __repr__(self) -> str:
        return f"PackageSource({self.package!r}, {self.subdir!r})"


def source_for(root: str | Path) -> ArtifactSource:
    """Pick a source for a configured root.

    ``package:myapp.db/migrations`` → ``PackageSource("myapp.db", "migrations")``;
    anything else is a directory path.
    """
    if isinstance(root, str) and root.startswith(PACKAGE_PREFIX):
        target = root[len(PACKAGE_PREFIX):]
        package, _, subdir = target.partition("/")
        if not package:
            raise ConfigError(f"Invalid package migration root: {root!r}")
        return PackageSource(package, subdir)
    return DirectorySource(root)
