"""Typed errors raised by build coordination and artifact lookup.

Every error carries a message, an optional hint for the person
reading the failing test, and a context mapping that is rendered
below the message.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence


class BinTestError(Exception):
    """Base error carrying an optional hint and context."""

    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        for k, v in self.context.items():
            if v:
                parts.append(f"  {k}: {v}")
        return "\n".join(parts)


class SpawnFailedError(BinTestError):
    """The build tool could not be launched at all."""

    def __init__(self, command: Sequence[str], cause: OSError) -> None:
        self.command = list(command)
        self.cause = cause
        super().__init__(
            f"Could not start build tool {self.command[0]!r}: {cause}",
            hint=(
                "Check that the build tool is installed and on PATH, "
                "or point the CARGO environment variable at it"
            ),
            context={"command": " ".join(self.command)},
        )


class BuildFailedError(BinTestError):
    """The build tool ran and reported failure."""

    def __init__(
        self,
        exit_code: int,
        diagnostics: Sequence[str],
        log_file: str | None = None,
    ) -> None:
        self.exit_code = exit_code
        self.diagnostics = list(diagnostics)
        body = "\n".join(self.diagnostics) or "(no diagnostics captured)"
        super().__init__(
            f"Build failed with exit code {exit_code}:\n{body}",
            context={"log": log_file or ""},
        )


class NotFoundError(BinTestError):
    """No built executable has the requested name."""

    def __init__(
        self,
        name: str,
        kind: str | None = None,
        available: Sequence[str] = (),
    ) -> None:
        self.name = name
        self.kind = kind
        where = f" of kind {kind!r}" if kind else ""
        super().__init__(
            f"No executable named {name!r}{where} was built",
            hint=(
                f"Available: {', '.join(sorted(set(available)))}"
                if available else "The build produced no executables"
            ),
        )


class AmbiguousError(BinTestError):
    """The name matches executables of more than one kind."""

    def __init__(self, name: str, candidates: Sequence) -> None:
        self.name = name
        self.candidates = tuple(candidates)
        kinds = ", ".join(str(entry.kind) for entry in self.candidates)
        super().__init__(
            f"Executable name {name!r} is ambiguous; built as: {kinds}",
            hint="Pass a kind to choose one",
            context={
                str(entry.kind): str(entry.path) for entry in self.candidates
            },
        )


__all__ = [
    "AmbiguousError",
    "BinTestError",
    "BuildFailedError",
    "NotFoundError",
    "SpawnFailedError",
]
