"""Index of built executables, keyed by kind and name."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from bintest.build.parser import ArtifactKind, ArtifactProduced
from bintest.core.errors import AmbiguousError, NotFoundError
from bintest.core.log import logger

HOST_EXE_SUFFIX = ".exe" if sys.platform == "win32" else ""


class ArtifactEntry(BaseModel):
    """One resolved executable."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ArtifactKind
    path: Path
    exists: bool = True
    package_id: str | None = None


@dataclass(frozen=True)
class StaleArtifact:
    """An artifact the build reported but that is not on disk."""

    name: str
    kind: ArtifactKind
    paths: tuple[Path, ...]
    reason: str


@dataclass(frozen=True)
class Unique:
    entry: ArtifactEntry


@dataclass(frozen=True)
class Ambiguous:
    name: str
    candidates: tuple[ArtifactEntry, ...]


@dataclass(frozen=True)
class NotFound:
    name: str
    kind: ArtifactKind | None = None


Resolution = Unique | Ambiguous | NotFound


class ArtifactIndex:
    """Read-only mapping from (kind, name) to ArtifactEntry.

    Produced by IndexBuilder.freeze() once a build has finished.
    """

    def __init__(
        self,
        entries: dict[tuple[ArtifactKind, str], ArtifactEntry],
        dropped: tuple[StaleArtifact, ...] = (),
    ):
        self._entries = MappingProxyType(dict(entries))
        self.dropped = dropped

    @property
    def entries(self) -> MappingProxyType:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ArtifactEntry]:
        """Entries ordered by name, then kind."""
        return iter(sorted(
            self._entries.values(), key=lambda e: (e.name, e.kind)
        ))

    def __contains__(self, key) -> bool:
        return key in self._entries

    def names(self) -> list[str]:
        return sorted({name for _, name in self._entries})

    def resolve(
        self, name: str, kind: ArtifactKind | None = None
    ) -> Resolution:
        """Resolve a name, optionally restricted to one kind.

        Without a kind, the name must be unique across kinds.
        """
        if kind is not None:
            entry = self._entries.get((kind, name))
            return Unique(entry) if entry else NotFound(name, kind)

        candidates = tuple(
            entry for (_, entry_name), entry in sorted(self._entries.items())
            if entry_name == name
        )
        if not candidates:
            return NotFound(name)
        if len(candidates) == 1:
            return Unique(candidates[0])
        return Ambiguous(name, candidates)

    def lookup(
        self, name: str, kind: ArtifactKind | None = None
    ) -> ArtifactEntry:
        """Like resolve(), but raise on anything but a unique match.

        Raises:
            NotFoundError: Nothing matches
            AmbiguousError: Several kinds match and no kind was given
        """
        match self.resolve(name, kind):
            case Unique(entry):
                return entry
            case Ambiguous(_, candidates):
                raise AmbiguousError(name, candidates)
            case NotFound():
                raise NotFoundError(
                    name, str(kind) if kind else None, self.names()
                )

    def list_executables(self) -> list[tuple[str, Path]]:
        """(name, path) pairs ordered by name, then kind."""
        return [(entry.name, entry.path) for entry in self]


class IndexBuilder:
    """Folds ArtifactProduced records into an ArtifactIndex.

    Reported paths are checked against the filesystem when they are
    added. A record none of whose paths exist is dropped and kept as
    a StaleArtifact.
    """

    def __init__(self, base_dir: Path | None = None, host_suffix: str = HOST_EXE_SUFFIX):
        self.base_dir = base_dir
        self.host_suffix = host_suffix
        self._entries: dict[tuple[ArtifactKind, str], ArtifactEntry] = {}
        self._dropped: list[StaleArtifact] = []

    def add(self, record: ArtifactProduced) -> ArtifactEntry | None:
        """Add one record; returns the stored entry, or None if it
        was dropped."""
        paths = tuple(self._absolute(p) for p in record.executable_paths)
        path = self._select(paths)

        if path is None:
            stale = StaleArtifact(
                name=record.target_name,
                kind=record.kind,
                paths=paths,
                reason="no reported path exists on disk",
            )
            self._dropped.append(stale)
            logger.warn(
                "Dropping stale artifact {name} ({kind}): {reason}",
                name=stale.name,
                kind=str(stale.kind),
                reason=stale.reason,
                paths=[str(p) for p in paths],
            )
            return None

        key = (record.kind, record.target_name)
        previous = self._entries.get(key)
        if previous is not None and previous.path != path:
            logger.debug(
                "Replacing {kind} {name}: {old} -> {new}",
                kind=str(record.kind),
                name=record.target_name,
                old=str(previous.path),
                new=str(path),
            )

        entry = ArtifactEntry(
            name=record.target_name,
            kind=record.kind,
            path=path,
            exists=True,
            package_id=record.package_id,
        )
        self._entries[key] = entry
        logger.debug(
            "Found {kind} {name} at {path}",
            kind=str(entry.kind),
            name=entry.name,
            path=str(entry.path),
        )
        return entry

    def freeze(self) -> ArtifactIndex:
        return ArtifactIndex(self._entries, tuple(self._dropped))

    def _absolute(self, path: Path) -> Path:
        if path.is_absolute() or self.base_dir is None:
            return path
        return self.base_dir / path

    def _select(self, paths: tuple[Path, ...]) -> Path | None:
        """Pick the host-suffixed existing path, else the first
        existing one in reported order."""
        existing = [p for p in paths if p.is_file()]
        for path in existing:
            if path.suffix == self.host_suffix:
                return path
        return existing[0] if existing else None
