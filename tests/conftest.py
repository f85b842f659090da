"""Pytest configuration and fixtures for bintest tests."""

import json
import subprocess
import sys
import tempfile
import threading
from pathlib import Path

import pytest

from bintest.core.config import BuildConfig
from bintest.core.log import ConsoleSink, setup_logger

FAKE_TOOL = """\
import sys
import time

time.sleep({delay!r})
for line in {stdout!r}:
    print(line, flush=True)
for line in {stderr!r}:
    print(line, file=sys.stderr, flush=True)
sys.exit({exit_code!r})
"""


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Configure console-only logging for the test session.

    Nothing is sent to logfire.dev.
    """
    setup_logger(
        log_root=Path(tempfile.gettempdir()) / "bintest-tests",
        session_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture
def artifact_message():
    """Factory for compiler-artifact JSON lines as cargo prints them."""

    def make(
        name: str,
        kind: str,
        executable: Path | str | None,
        filenames: list | None = None,
        test: bool = False,
    ) -> str:
        executable = str(executable) if executable is not None else None
        return json.dumps({
            "reason": "compiler-artifact",
            "package_id": f"path+file:///work/{name}#0.1.0",
            "manifest_path": "/work/Cargo.toml",
            "target": {
                "kind": [kind],
                "crate_types": [kind],
                "name": name,
                "src_path": f"/work/src/{name}.rs",
                "edition": "2021",
                "doc": kind == "bin",
                "doctest": False,
                "test": test,
            },
            "profile": {
                "opt_level": "0",
                "debuginfo": 2,
                "debug_assertions": True,
                "overflow_checks": True,
                "test": test,
            },
            "features": [],
            "filenames": (
                filenames if filenames is not None
                else ([executable] if executable else [])
            ),
            "executable": executable,
            "fresh": False,
        })

    return make


@pytest.fixture
def executable_file(tmp_path):
    """Factory creating an empty file to stand in for a binary."""

    def make(relative: str) -> Path:
        path = tmp_path / "target" / "debug" / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("")
        return path

    return make


@pytest.fixture
def fake_build(tmp_path):
    """Factory for a BuildConfig running a scripted fake build tool.

    The script prints the given stdout and stderr lines, then exits
    with exit_code.
    """

    def make(
        stdout: list[str] = (),
        stderr: list[str] = (),
        exit_code: int = 0,
        delay: float = 0.0,
        **options,
    ) -> BuildConfig:
        script = tmp_path / "fake_cargo.py"
        script.write_text(FAKE_TOOL.format(
            stdout=list(stdout),
            stderr=list(stderr),
            exit_code=exit_code,
            delay=delay,
        ))
        return BuildConfig(
            command=[sys.executable, str(script)],
            project_root=tmp_path,
            **options,
        )

    return make


class CountingPopen:
    """subprocess.Popen wrapper that counts spawns."""

    def __init__(self):
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, *args, **kwargs):
        with self._lock:
            self.calls += 1
        return subprocess.Popen(*args, **kwargs)


@pytest.fixture
def counting_popen():
    return CountingPopen()
