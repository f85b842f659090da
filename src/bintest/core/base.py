"""Base classes for configuration models.

Configuration sections that own resources (log sinks with open
files, span processors) are closed through a cascade: closing a
parent closes every field that implements close().

Kept apart from config.py so that log.py can build on it without a
circular import.
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Protocol for objects that support close()."""

    def close(self) -> None:
        ...


class BaseCloseable(BaseModel):
    """Pydantic model that closes its Closeable children.

    Usable as a context manager. A failing child does not stop the
    remaining children from being closed.
    """

    def closeable_children(self):
        """(field name, child) pairs for every Closeable field value."""
        for name, value in self:
            if isinstance(value, Closeable):
                yield name, value

    def close(self):
        failures = []
        for name, child in self.closeable_children():
            try:
                child.close()
            except Exception as e:
                failures.append((name, e))
        # The logger may be the child that failed, so report on stderr
        for name, error in failures:
            print(f"Warning: Error closing {name}: {error}", file=sys.stderr)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Marker base for configuration sections (YAML/env/init)."""
    pass


__all__ = ["Closeable", "BaseCloseable", "BaseConfig"]
