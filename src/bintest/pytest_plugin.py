"""pytest fixtures exposing the shared build session.

Registered through the ``pytest11`` entry point, so installing the
package makes the fixtures available to any test suite.
"""

import pytest

from bintest.session import command_for, session


@pytest.fixture(scope="session")
def bintest():
    """The process-wide BinTest; the build runs on first lookup."""
    return session()


@pytest.fixture
def bintest_command():
    """command_for(name, kind=None) bound to the shared session."""
    return command_for
