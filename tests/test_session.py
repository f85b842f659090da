"""Tests for the process-wide session and pytest fixtures."""

import pytest

from bintest import command_for, session
from bintest.resolver import BinTest
from bintest.session import set_session


@pytest.fixture
def clean_session():
    set_session(None)
    yield
    set_session(None)


def test_session_is_shared(clean_session, tmp_path, monkeypatch):
    """Test that session() creates one BinTest from Settings."""
    monkeypatch.setenv("BINTEST_BUILD__PROJECT_ROOT", str(tmp_path))

    first = session()

    assert first is session()
    assert first.config.project_root == tmp_path


def test_command_for_uses_session(
    clean_session, fake_build, artifact_message, executable_file
):
    """Test the module-level lookup."""
    path = executable_file("tool")
    set_session(BinTest(fake_build(stdout=[artifact_message("tool", "bin", path)])))

    assert command_for("tool").program == path
    assert command_for("tool", "bin").program == path


def test_pytest_plugin_fixtures(
    clean_session, fake_build, artifact_message, executable_file, request
):
    """Test the fixtures the installed pytest plugin registers."""
    path = executable_file("tool")
    shared = BinTest(fake_build(stdout=[artifact_message("tool", "bin", path)]))
    set_session(shared)

    assert request.getfixturevalue("bintest") is shared
    assert request.getfixturevalue("bintest_command")("tool").program == path
