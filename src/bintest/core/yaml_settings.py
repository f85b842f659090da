"""YAML settings source with include: directive support."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from bintest.core.log import logger


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """Reads the user and project bintest.yaml files.

    Files are deep merged, later winning:
        user config < project config

    Any file may carry an ``include:`` key (a path or list of paths,
    relative to the including file) whose contents are merged
    underneath it.
    """

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        super().__init__(
            settings_cls,
            yaml_file or settings_cls.model_config.get("yaml_file"),
        )

    def _read_files(self, files, **kwargs):  # noqa: ARG002
        if files is None:
            files = []
        elif isinstance(files, (str, os.PathLike)):
            files = [files]

        files_to_load = [
            Path(user_config_dir("bintest", appauthor=False)) / "bintest.yaml",
            *(Path(f).expanduser() for f in files),
        ]

        result = {}
        for file_path in files_to_load:
            if file_path.is_file():
                logger.debug("Loading configuration", file=str(file_path))
                data = self._load_file_recursive(file_path, set())
                result = self._deep_merge(result, data)
        return result

    def _load_file_recursive(self, filepath: Path, visited: set[Path]) -> dict:
        """Load a file, merging its includes underneath it.

        Raises:
            ValueError: If an include cycle is detected
        """
        filepath = filepath.resolve()
        if filepath in visited:
            raise ValueError(f"Circular include: {filepath}")
        visited.add(filepath)

        with open(filepath, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        includes = data.pop("include", None) or []
        if isinstance(includes, str):
            includes = [includes]

        for inc in includes:
            inc_path = Path(inc)
            if not inc_path.is_absolute():
                inc_path = filepath.parent / inc_path
            inc_data = self._load_file_recursive(inc_path, visited.copy())
            data = self._deep_merge(inc_data, data)

        return data

    def _deep_merge(self, base: dict, override: dict) -> dict:
        """Deep merge override into base (override wins)."""
        result = base.copy()
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
