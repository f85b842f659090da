"""Subprocess execution with concurrent stdout/stderr draining."""

from __future__ import annotations

import os
import queue
import subprocess
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from bintest.core.errors import SpawnFailedError
from bintest.core.log import logger

STDOUT = "stdout"
STDERR = "stderr"

LineHandler = Callable[[str, str], None]


@dataclass
class RunResult:
    """Exit status and captured output of one process."""

    returncode: int
    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)


def _drain(stream: IO[str], channel: str, sink: queue.Queue) -> None:
    """Copy lines from one pipe into the shared queue.

    A (channel, None) item marks the end of the stream.
    """
    try:
        for line in stream:
            sink.put((channel, line))
    finally:
        stream.close()
        sink.put((channel, None))


class StreamingRunner:
    """Runs a command and hands every output line to a callback.

    stdout and stderr are read by two reader threads feeding one
    queue, so a child that fills one pipe while we wait on the other
    cannot deadlock. The callback always runs on the calling thread.
    """

    def __init__(self, popen: Callable[..., subprocess.Popen] = subprocess.Popen):
        """Initialize StreamingRunner.

        Args:
            popen: Process factory with the subprocess.Popen signature
        """
        self.popen = popen

    def run(
        self,
        command: Sequence[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        on_line: LineHandler | None = None,
    ) -> RunResult:
        """Run command to completion.

        Args:
            command: Argument vector (no shell)
            cwd: Working directory for the process
            env: Variables added to the inherited environment
            on_line: Called as on_line(channel, line) for each line,
                with the line terminator stripped

        Returns:
            RunResult with the exit code and all captured lines

        Raises:
            SpawnFailedError: If the process could not be started
        """
        environ = {**os.environ, **env} if env else None

        logger.debug(
            "Running {command}",
            command=" ".join(command),
            cwd=str(cwd) if cwd else None,
        )
        try:
            process = self.popen(
                list(command),
                cwd=str(cwd) if cwd else None,
                env=environ,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise SpawnFailedError(command, e) from e

        lines: queue.Queue = queue.Queue()
        readers = [
            threading.Thread(
                target=_drain,
                args=(process.stdout, STDOUT, lines),
                name=f"bintest-{STDOUT}",
                daemon=True,
            ),
            threading.Thread(
                target=_drain,
                args=(process.stderr, STDERR, lines),
                name=f"bintest-{STDERR}",
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        result = RunResult(returncode=-1)
        captured = {STDOUT: result.stdout, STDERR: result.stderr}
        try:
            open_streams = len(readers)
            while open_streams:
                channel, line = lines.get()
                if line is None:
                    open_streams -= 1
                    continue
                line = line.rstrip("\r\n")
                captured[channel].append(line)
                if on_line is not None:
                    on_line(channel, line)
        except BaseException:
            process.kill()
            process.wait()
            raise

        for reader in readers:
            reader.join()
        result.returncode = process.wait()
        logger.debug(
            "Process exited with {returncode}", returncode=result.returncode
        )
        return result
