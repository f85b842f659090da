"""Locate and run the executables of a Cargo project from tests."""

from bintest.build.coordinator import BuildCoordinator
from bintest.build.index import ArtifactEntry, ArtifactIndex
from bintest.build.parser import ArtifactKind
from bintest.core.config import BuildConfig, Settings
from bintest.core.errors import (
    AmbiguousError,
    BinTestError,
    BuildFailedError,
    NotFoundError,
    SpawnFailedError,
)
from bintest.core.result import BuildFailed, BuildOutcome, BuildSucceeded
from bintest.resolver import BinTest, CommandResolver, LaunchDescriptor
from bintest.session import command_for, session

__all__ = [
    "AmbiguousError",
    "ArtifactEntry",
    "ArtifactIndex",
    "ArtifactKind",
    "BinTest",
    "BinTestError",
    "BuildConfig",
    "BuildCoordinator",
    "BuildFailed",
    "BuildFailedError",
    "BuildOutcome",
    "BuildSucceeded",
    "CommandResolver",
    "LaunchDescriptor",
    "NotFoundError",
    "Settings",
    "SpawnFailedError",
    "command_for",
    "session",
]
