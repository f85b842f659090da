"""Build configuration and settings loading."""

from __future__ import annotations

import os
from pathlib import Path

import platformdirs
from pydantic import Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from bintest.core.base import BaseConfig
from bintest.core.log import Logger
from bintest.core.yaml_settings import YamlWithIncludesSettingsSource


def _default_program() -> str:
    # Cargo exports CARGO to the processes it runs, tests included
    return os.environ.get("CARGO", "cargo")


class BuildConfig(BaseConfig):
    """How to invoke the build tool and where its products run."""

    program: str = Field(
        default_factory=_default_program,
        description="Build tool executable (defaults to $CARGO, then cargo)",
    )
    subcommand: list[str] = Field(
        default_factory=lambda: ["build"],
        description="Subcommand and its fixed arguments",
    )
    project_root: Path = Field(
        default_factory=Path.cwd,
        description=(
            "Directory the build runs in; also the default working "
            "directory of launched executables"
        ),
    )
    release: bool = Field(
        default=False,
        description="Build with --release",
    )
    workspace: bool = Field(
        default=False,
        description="Build every package in the workspace",
    )
    executable: str | None = Field(
        default=None,
        description="Only build this binary (--bin)",
    )
    examples: bool = Field(
        default=False,
        description="Also build examples (--examples)",
    )
    quiet: bool = Field(
        default=False,
        description="Pass --quiet to suppress build progress output",
    )
    extra_args: list[str] = Field(
        default_factory=list,
        description="Additional arguments appended to the build command",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment overrides for the build process",
    )
    run_env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment overrides for launched executables",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Write the combined build output to a log file here",
    )
    command: list[str] | None = Field(
        default=None,
        description=(
            "Full build command, replacing everything above that "
            "shapes the argument list"
        ),
    )

    def build_command(self) -> list[str]:
        """Assemble the build tool argument vector."""
        if self.command:
            return list(self.command)

        cmd = [self.program, *self.subcommand, "--message-format", "json"]
        if self.release:
            cmd.append("--release")
        if self.workspace:
            cmd.append("--workspace")
        if self.executable:
            cmd.extend(["--bin", self.executable])
        if self.examples:
            # Any target selection flag drops the default bin targets
            if not self.executable:
                cmd.append("--bins")
            cmd.append("--examples")
        if self.quiet:
            cmd.append("--quiet")
        cmd.extend(self.extra_args)
        return cmd


class Settings(BaseSettings):
    """Settings loaded from init arguments, YAML, .env and environment.

    Environment variables use the BINTEST_ prefix with ``__`` for
    nesting, e.g. ``BINTEST_BUILD__RELEASE=1``.
    """

    build: BuildConfig = Field(
        default_factory=BuildConfig,
        description="Build tool invocation",
    )
    logger: Logger | None = Field(
        default=None,
        description="Logger configuration",
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir("bintest", appauthor=False))
        ),
        description="Root directory for log files",
    )

    model_config = SettingsConfigDict(
        yaml_file="bintest.yaml",
        env_file=".env",
        env_prefix="BINTEST_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority, highest first: init, environment, .env, YAML."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            file_secret_settings,
        )

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Settings':
        """Configure the global logger unless something already did.

        The first settings load of a process wins, so a test suite
        that set up logging itself keeps its configuration.
        """
        from bintest.core.log import is_configured, setup_logger

        if self.logger is None:
            self.logger = Logger()

        if not is_configured():
            setup_logger(
                log_root=self.log_root,
                session_name="session",
                level=self.logger.level,
                console=self.logger.console,
                file=self.logger.file,
            )
        return self

    def close(self):
        from bintest.core.log import logger
        logger.close()


__all__ = ["BuildConfig", "Settings"]
