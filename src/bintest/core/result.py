"""Terminal states of a build invocation."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from bintest.build.index import ArtifactIndex


class BuildSucceeded(BaseModel):
    """The build exited with status 0."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    index: ArtifactIndex
    stderr: list[str] = []
    log_file: Path | None = None
    timestamp: datetime


class BuildFailed(BaseModel):
    """The build exited non-zero."""

    model_config = ConfigDict(frozen=True)

    exit_code: int
    diagnostics: list[str]
    log_file: Path | None = None
    timestamp: datetime


BuildOutcome = BuildSucceeded | BuildFailed
