#!/usr/bin/env python3
"""bintest CLI - build a Cargo project and locate its executables."""

import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from bintest.command.list import ListCommand
from bintest.command.which import WhichCommand
from bintest.core.config import Settings
from bintest.resolver import BinTest


class CliState(Settings):
    """Build a Cargo project and locate its executables.

    Configuration sources (in priority order):
    1. Command-line arguments (--build.release true)
    2. Environment variables (BINTEST_BUILD__RELEASE=1)
    3. .env file
    4. bintest.yaml in the current directory, then the user
       config directory
    """

    list: CliSubCommand[ListCommand]
    which: CliSubCommand[WhichCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help if none
        was given."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        try:
            exit_code = subcommand.run(BinTest(self.build))
        finally:
            self.close()
        raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
