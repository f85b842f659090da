"""CLI command modules for bintest."""

from bintest.command.list import ListCommand
from bintest.command.which import WhichCommand

__all__ = ["ListCommand", "WhichCommand"]
