"""Which command - print the path of one executable."""

import sys

from pydantic import BaseModel, Field
from pydantic_settings import CliPositionalArg

from bintest.build.parser import ArtifactKind
from bintest.core.errors import BinTestError
from bintest.core.log import logger
from bintest.resolver import CommandResolver


class WhichCommand(BaseModel):
    """Build the project and print the path of the named executable."""

    name: CliPositionalArg[str] = Field(
        description="Target name of the executable",
    )
    kind: ArtifactKind | None = Field(
        default=None,
        description="Kind to pick when the name exists under several",
    )

    def run(self, resolver: CommandResolver) -> int:
        """Resolve and print.

        Returns:
            Exit code (0=success, 1=build or lookup failed)
        """
        try:
            descriptor = resolver.command_for(self.name, self.kind)
        except BinTestError as e:
            logger.error("{error}", error=str(e))
            print(e, file=sys.stderr)
            return 1

        print(descriptor.program)
        return 0
