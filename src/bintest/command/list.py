"""List command - build and print every executable."""

import sys

from pydantic import BaseModel, Field

from bintest.build.parser import ArtifactKind
from bintest.core.errors import BinTestError
from bintest.core.log import logger
from bintest.resolver import CommandResolver


class ListCommand(BaseModel):
    """Build the project and list the executables it produced.

    Prints one line per executable: name, kind and path separated by
    tabs.
    """

    kind: ArtifactKind | None = Field(
        default=None,
        description="Only list executables of this kind",
    )

    def run(self, resolver: CommandResolver) -> int:
        """Run the listing.

        Returns:
            Exit code (0=success, 1=build failed)
        """
        try:
            index = resolver.index()
        except BinTestError as e:
            logger.error("{error}", error=str(e))
            print(e, file=sys.stderr)
            return 1

        for entry in index:
            if self.kind is None or entry.kind == self.kind:
                print(f"{entry.name}\t{entry.kind}\t{entry.path}")
        for stale in index.dropped:
            print(
                f"skipped {stale.kind} {stale.name}: {stale.reason}",
                file=sys.stderr,
            )
        return 0
