"""Public lookup API: executable name -> launch descriptor."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from bintest.build.coordinator import BuildCoordinator
from bintest.build.index import ArtifactIndex
from bintest.build.parser import ArtifactKind
from bintest.core.config import BuildConfig
from bintest.core.errors import BinTestError, BuildFailedError
from bintest.core.result import BuildFailed


class LaunchDescriptor(BaseModel):
    """Where a built executable lives and how to start it.

    Arguments, stdio and any further environment are up to the
    caller.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ArtifactKind
    program: Path
    cwd: Path
    env: dict[str, str] = Field(default_factory=dict)

    def argv(self, *args: str | os.PathLike) -> list[str]:
        return [str(self.program), *(os.fspath(a) for a in args)]

    def environ(self) -> dict[str, str]:
        """The inherited environment with env applied on top."""
        return {**os.environ, **self.env}

    def run(self, *args, **kwargs) -> subprocess.CompletedProcess:
        """subprocess.run() the executable with args."""
        kwargs.setdefault("cwd", self.cwd)
        kwargs.setdefault("env", self.environ())
        return subprocess.run(self.argv(*args), **kwargs)

    def popen(self, *args, **kwargs) -> subprocess.Popen:
        """subprocess.Popen() the executable with args."""
        kwargs.setdefault("cwd", self.cwd)
        kwargs.setdefault("env", self.environ())
        return subprocess.Popen(self.argv(*args), **kwargs)


class CommandResolver:
    """Resolves executable names against the outcome of one build."""

    def __init__(self, coordinator: BuildCoordinator):
        self.coordinator = coordinator

    @property
    def config(self) -> BuildConfig:
        return self.coordinator.config

    def index(self) -> ArtifactIndex:
        """Build if needed and return the artifact index.

        Raises:
            SpawnFailedError: If the build tool could not be started
            BuildFailedError: If the build failed
        """
        outcome = self.coordinator.ensure_built()
        if isinstance(outcome, BuildFailed):
            raise BuildFailedError(
                outcome.exit_code,
                outcome.diagnostics,
                str(outcome.log_file) if outcome.log_file else None,
            )
        return outcome.index

    def command_for(
        self, name: str, kind: ArtifactKind | str | None = None
    ) -> LaunchDescriptor:
        """Return a launch descriptor for the named executable.

        Args:
            name: Target name of the executable
            kind: Restrict the lookup to one kind; required when the
                name exists under several kinds

        Raises:
            SpawnFailedError: If the build tool could not be started
            BuildFailedError: If the build failed
            NotFoundError: If nothing by that name was built
            BinTestError: If kind is not a known ArtifactKind
            AmbiguousError: If kind is None and several kinds match
        """
        if kind is not None:
            try:
                kind = ArtifactKind(kind)
            except ValueError as e:
                raise BinTestError(
                    f"Unknown executable kind {kind!r}",
                    hint="Valid kinds: " + ", ".join(k.value for k in ArtifactKind),
                ) from e
        entry = self.index().lookup(name, kind)
        return LaunchDescriptor(
            name=entry.name,
            kind=entry.kind,
            program=entry.path,
            cwd=self.config.project_root,
            env=self.config.run_env,
        )

    def list_executables(self) -> list[tuple[str, Path]]:
        """(name, path) pairs of every built executable."""
        return self.index().list_executables()


class BinTest(CommandResolver):
    """Access to the executables of a project build.

    Example:
        executables = BinTest.with_(quiet=True)
        result = executables.command("tool").run("--help", capture_output=True)
    """

    def __init__(self, config: BuildConfig | None = None, **kwargs):
        super().__init__(BuildCoordinator(config, **kwargs))

    @classmethod
    def with_(cls, **options) -> BinTest:
        """Construct from BuildConfig field values."""
        return cls(BuildConfig(**options))

    def command(
        self, name: str, kind: ArtifactKind | str | None = None
    ) -> LaunchDescriptor:
        return self.command_for(name, kind)
