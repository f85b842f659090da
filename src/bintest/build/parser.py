"""Parse build tool output lines into structured records.

The build tool is run with ``--message-format json`` and prints one
JSON object per line, discriminated by its ``reason`` field. Human
readable lines may be interleaved with them. Parsing never fails:
anything not understood becomes an Unrecognized record.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class ArtifactKind(StrEnum):
    """Kinds of executable targets a build can produce."""

    BIN = "bin"
    EXAMPLE = "example"
    TEST = "test"
    BENCH = "bench"


@dataclass(frozen=True)
class ArtifactProduced:
    """An executable was produced for a build target."""

    target_name: str
    kind: ArtifactKind
    executable_paths: tuple[Path, ...]
    package_id: str | None = None
    fresh: bool = False


@dataclass(frozen=True)
class CompilerMessage:
    """A compiler diagnostic."""

    severity: str
    text: str


@dataclass(frozen=True)
class Unrecognized:
    raw_line: str


BuildRecord = ArtifactProduced | CompilerMessage | Unrecognized

# error: ..., error[E0412]: ..., warning: ...
_HUMAN_DIAGNOSTIC = re.compile(
    r"^(?P<severity>error|warning)(?:\[[A-Za-z0-9]+\])?:\s"
)

_EXECUTABLE_SUFFIXES = ("", ".exe")


def parse_line(line: str) -> BuildRecord:
    """Convert one line of build output into a BuildRecord."""
    stripped = line.strip()

    if stripped.startswith("{"):
        try:
            message = json.loads(stripped)
        except ValueError:
            return Unrecognized(raw_line=line)
        if isinstance(message, dict):
            return _parse_message(message, line)
        return Unrecognized(raw_line=line)

    match = _HUMAN_DIAGNOSTIC.match(stripped)
    if match:
        return CompilerMessage(severity=match.group("severity"), text=stripped)

    return Unrecognized(raw_line=line)


def parse_stream(lines: Iterable[str]) -> Iterator[BuildRecord]:
    """Lazily parse an iterable of output lines."""
    for line in lines:
        yield parse_line(line)


def _parse_message(message: dict, line: str) -> BuildRecord:
    reason = message.get("reason")

    if reason == "compiler-artifact":
        return _parse_artifact(message) or Unrecognized(raw_line=line)

    if reason == "compiler-message":
        diagnostic = message.get("message")
        if not isinstance(diagnostic, dict):
            return Unrecognized(raw_line=line)
        text = diagnostic.get("rendered") or diagnostic.get("message")
        if not isinstance(text, str):
            return Unrecognized(raw_line=line)
        return CompilerMessage(
            severity=str(diagnostic.get("level", "unknown")),
            text=text.rstrip("\n"),
        )

    return Unrecognized(raw_line=line)


def _parse_artifact(message: dict) -> ArtifactProduced | None:
    """Extract an executable artifact, or None for libraries and
    malformed records."""
    target = message.get("target")
    if not isinstance(target, dict):
        return None
    name = target.get("name")
    if not isinstance(name, str) or not name:
        return None

    kind = _artifact_kind(target, message.get("profile"))
    if kind is None:
        return None

    paths: list[Path] = []
    executable = message.get("executable")
    if isinstance(executable, str) and executable:
        paths.append(Path(executable))

    filenames = message.get("filenames")
    if isinstance(filenames, list):
        for filename in filenames:
            if not isinstance(filename, str):
                continue
            path = Path(filename)
            if path.suffix in _EXECUTABLE_SUFFIXES and path not in paths:
                paths.append(path)

    if not paths:
        return None

    package_id = message.get("package_id")
    return ArtifactProduced(
        target_name=name,
        kind=kind,
        executable_paths=tuple(paths),
        package_id=package_id if isinstance(package_id, str) else None,
        fresh=bool(message.get("fresh", False)),
    )


def _artifact_kind(target: dict, profile) -> ArtifactKind | None:
    if isinstance(profile, dict) and profile.get("test") is True:
        return ArtifactKind.TEST

    kinds = target.get("kind")
    if not isinstance(kinds, list):
        return None
    for kind in kinds:
        try:
            return ArtifactKind(kind)
        except ValueError:
            continue
    return None
