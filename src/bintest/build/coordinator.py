"""Run the build once and share its outcome with every caller."""

from __future__ import annotations

import os
import threading
from datetime import datetime
from pathlib import Path

from bintest.build.index import IndexBuilder
from bintest.build.parser import (
    ArtifactProduced,
    CompilerMessage,
    Unrecognized,
    parse_line,
)
from bintest.core.config import BuildConfig
from bintest.core.errors import SpawnFailedError
from bintest.core.log import logger
from bintest.core.result import BuildFailed, BuildOutcome, BuildSucceeded
from bintest.core.runner import STDOUT, RunResult, StreamingRunner


class BuildCoordinator:
    """Invokes the build tool at most once and caches the outcome.

    The first ensure_built() call runs the build on its own thread;
    concurrent callers block on the same lock and then observe the
    identical outcome object. Neither a failed build nor a failure to
    start the build tool is retried.
    """

    def __init__(
        self,
        config: BuildConfig | None = None,
        runner: StreamingRunner | None = None,
    ):
        """Initialize BuildCoordinator.

        Args:
            config: Build tool invocation (defaults to BuildConfig())
            runner: Process runner; tests pass one with a fake popen
        """
        self.config = config or BuildConfig()
        self.runner = runner or StreamingRunner()
        self._lock = threading.Lock()
        self._outcome: BuildOutcome | None = None
        self._spawn_error: SpawnFailedError | None = None

    @property
    def outcome(self) -> BuildOutcome | None:
        """The cached outcome, or None if no build finished yet."""
        return self._outcome

    def ensure_built(self) -> BuildOutcome:
        """Return the build outcome, running the build if needed.

        Raises:
            SpawnFailedError: If the build tool could not be started
        """
        outcome = self._outcome
        if outcome is not None:
            return outcome

        with self._lock:
            if self._spawn_error is not None:
                raise self._spawn_error
            if self._outcome is None:
                try:
                    self._outcome = self._build()
                except SpawnFailedError as e:
                    logger.error("Build tool could not be started: {error}", error=str(e))
                    self._spawn_error = e
                    raise
            return self._outcome

    def _build(self) -> BuildOutcome:
        command = self.config.build_command()
        timestamp = datetime.now()
        index = IndexBuilder(base_dir=self.config.project_root)
        errors: list[str] = []

        def on_line(channel: str, line: str) -> None:
            if channel != STDOUT:
                return
            match parse_line(line):
                case ArtifactProduced() as record:
                    index.add(record)
                case CompilerMessage(severity="error", text=text):
                    errors.append(text)
                    logger.error("{text}", text=text)
                case CompilerMessage(severity=severity, text=text):
                    logger.debug("{severity}: {text}", severity=severity, text=text)
                case Unrecognized(raw_line=raw):
                    logger.trace("Unrecognized build output: {line}", line=raw)

        with logger.span("Building artifacts", command=" ".join(command)):
            result = self.runner.run(
                command,
                cwd=self.config.project_root,
                env=self.config.env,
                on_line=on_line,
            )
            log_file = self._write_log(result, timestamp)

            if result.returncode != 0:
                logger.error(
                    "Build failed with exit code {exit_code}",
                    exit_code=result.returncode,
                )
                return BuildFailed(
                    exit_code=result.returncode,
                    diagnostics=errors + result.stderr,
                    log_file=log_file,
                    timestamp=timestamp,
                )

            frozen = index.freeze()
            logger.info(
                "Build finished: {count} executables, {dropped} dropped",
                count=len(frozen),
                dropped=len(frozen.dropped),
            )
            return BuildSucceeded(
                index=frozen,
                stderr=result.stderr,
                log_file=log_file,
                timestamp=timestamp,
            )

    def _write_log(self, result: RunResult, timestamp: datetime) -> Path | None:
        """Save the combined build output; returns None when there is
        no log_dir or the file could not be written."""
        if self.config.log_dir is None:
            return None
        log_file = self.config.log_dir / (
            f"build-{timestamp:%Y%m%d-%H%M%S-%f}-{os.getpid()}.log"
        )
        try:
            self.config.log_dir.mkdir(parents=True, exist_ok=True)
            with open(log_file, "w", encoding="utf-8") as f:
                for line in result.stdout + result.stderr:
                    f.write(line + "\n")
        except OSError as e:
            logger.warn(
                "Could not write build log {path}: {error}",
                path=str(log_file),
                error=str(e),
            )
            return None
        return log_file
