"""Process-wide build session.

All tests of one process share a single BinTest, so the project is
built at most once no matter how many tests ask for executables.
"""

from __future__ import annotations

import threading

from bintest.build.parser import ArtifactKind
from bintest.core.config import Settings
from bintest.resolver import BinTest, LaunchDescriptor

_session: BinTest | None = None
_session_lock = threading.Lock()


def session() -> BinTest:
    """Return the shared BinTest, creating it from Settings on first
    use."""
    global _session

    with _session_lock:
        if _session is None:
            _session = BinTest(Settings().build)
        return _session


def set_session(bintest: BinTest | None) -> None:
    """Replace the shared session (None resets it)."""
    global _session

    with _session_lock:
        _session = bintest


def command_for(
    name: str, kind: ArtifactKind | str | None = None
) -> LaunchDescriptor:
    """Resolve name against the shared session's build."""
    return session().command_for(name, kind)
