"""Tests for build configuration and settings loading."""

import pytest

from bintest.core.config import BuildConfig, Settings


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """Run settings loading in an empty project with no user config."""
    project = tmp_path / "project"
    project.mkdir()
    user_dir = tmp_path / "user-config"
    user_dir.mkdir()

    monkeypatch.chdir(project)
    monkeypatch.setattr(
        "bintest.core.yaml_settings.user_config_dir",
        lambda *args, **kwargs: str(user_dir),
    )
    for name in ("CARGO", "BINTEST_BUILD__RELEASE", "BINTEST_BUILD__QUIET"):
        monkeypatch.delenv(name, raising=False)
    return project, user_dir


def test_default_command(monkeypatch, tmp_path):
    """Test the default cargo invocation."""
    monkeypatch.delenv("CARGO", raising=False)

    config = BuildConfig(project_root=tmp_path)

    assert config.build_command() == [
        "cargo", "build", "--message-format", "json",
    ]


def test_cargo_env_var_selects_program(monkeypatch):
    """Test that $CARGO picks the build tool, as under cargo test."""
    monkeypatch.setenv("CARGO", "/opt/rust/bin/cargo")

    assert BuildConfig().build_command()[0] == "/opt/rust/bin/cargo"


def test_builder_options_map_to_flags():
    """Test each option's command-line flag."""
    config = BuildConfig(
        program="cargo",
        release=True,
        workspace=True,
        executable="tool",
        examples=True,
        quiet=True,
        extra_args=["--locked"],
    )

    assert config.build_command() == [
        "cargo", "build", "--message-format", "json",
        "--release", "--workspace", "--bin", "tool", "--examples",
        "--quiet", "--locked",
    ]


def test_command_override_wins():
    """Test that command replaces the assembled argv."""
    config = BuildConfig(command=["make", "json"], release=True)

    assert config.build_command() == ["make", "json"]


def test_test_subcommand():
    """Test building test harnesses via cargo test --no-run."""
    config = BuildConfig(program="cargo", subcommand=["test", "--no-run"])

    assert config.build_command()[:3] == ["cargo", "test", "--no-run"]


def test_settings_from_environment(isolated_settings, monkeypatch):
    """Test nested environment variables."""
    monkeypatch.setenv("BINTEST_BUILD__RELEASE", "true")
    monkeypatch.setenv("BINTEST_BUILD__EXTRA_ARGS", '["--locked"]')

    settings = Settings()

    assert settings.build.release is True
    assert settings.build.extra_args == ["--locked"]


def test_settings_from_project_yaml(isolated_settings):
    """Test loading bintest.yaml from the current directory."""
    project, _ = isolated_settings
    (project / "bintest.yaml").write_text(
        "build:\n"
        "  quiet: true\n"
        "  run_env:\n"
        "    RUST_BACKTRACE: '1'\n"
    )

    settings = Settings()

    assert settings.build.quiet is True
    assert settings.build.run_env == {"RUST_BACKTRACE": "1"}


def test_project_yaml_overrides_user_yaml(isolated_settings):
    """Test deep merging of user and project configuration."""
    project, user_dir = isolated_settings
    (user_dir / "bintest.yaml").write_text(
        "build:\n"
        "  quiet: true\n"
        "  release: true\n"
    )
    (project / "bintest.yaml").write_text(
        "build:\n"
        "  release: false\n"
    )

    settings = Settings()

    assert settings.build.quiet is True
    assert settings.build.release is False


def test_yaml_include(isolated_settings):
    """Test that include: merges another file underneath."""
    project, _ = isolated_settings
    (project / "shared.yaml").write_text(
        "build:\n"
        "  examples: true\n"
        "  quiet: true\n"
    )
    (project / "bintest.yaml").write_text(
        "include: shared.yaml\n"
        "build:\n"
        "  quiet: false\n"
    )

    settings = Settings()

    assert settings.build.examples is True
    assert settings.build.quiet is False


def test_yaml_include_cycle(isolated_settings):
    """Test that circular includes are rejected."""
    project, _ = isolated_settings
    (project / "a.yaml").write_text("include: bintest.yaml\n")
    (project / "bintest.yaml").write_text("include: a.yaml\n")

    with pytest.raises(ValueError, match="Circular include"):
        Settings()


def test_environment_beats_yaml(isolated_settings, monkeypatch):
    """Test source priority: environment over YAML."""
    project, _ = isolated_settings
    (project / "bintest.yaml").write_text("build:\n  quiet: false\n")
    monkeypatch.setenv("BINTEST_BUILD__QUIET", "true")

    assert Settings().build.quiet is True
