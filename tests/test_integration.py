"""Integration test against a real cargo build.

Skipped when cargo is not installed.
"""

import shutil
from textwrap import dedent

import pytest

from bintest import AmbiguousError, ArtifactKind, BinTest, BuildFailedError

pytestmark = pytest.mark.skipif(
    shutil.which("cargo") is None, reason="cargo not installed"
)


@pytest.fixture(scope="module")
def crate(tmp_path_factory):
    """A crate with two binaries and an example sharing a bin's name."""
    root = tmp_path_factory.mktemp("crate")
    (root / "Cargo.toml").write_text(dedent("""\
        [package]
        name = "greeter"
        version = "0.1.0"
        edition = "2021"

        [[bin]]
        name = "hello"
        path = "src/hello.rs"

        [[bin]]
        name = "goodbye"
        path = "src/goodbye.rs"
    """))
    (root / "src").mkdir()
    (root / "src" / "hello.rs").write_text(
        'fn main() { println!("hello {}", std::env::args().nth(1).unwrap_or_default()); }\n'
    )
    (root / "src" / "goodbye.rs").write_text('fn main() { println!("goodbye"); }\n')
    (root / "examples").mkdir()
    (root / "examples" / "hello.rs").write_text('fn main() { println!("example"); }\n')
    return root


def test_real_build(crate):
    """Test building and running binaries of a real crate."""
    bintest = BinTest.with_(project_root=crate, examples=True, quiet=True)

    names = [name for name, _ in bintest.list_executables()]
    assert names == ["goodbye", "hello", "hello"]

    with pytest.raises(AmbiguousError):
        bintest.command("hello")

    result = bintest.command("hello", ArtifactKind.BIN).run(
        "world", capture_output=True, text=True
    )
    assert result.returncode == 0
    assert result.stdout.strip() == "hello world"

    result = bintest.command("hello", "example").run(capture_output=True, text=True)
    assert result.stdout.strip() == "example"

    goodbye = bintest.command("goodbye")
    assert goodbye.cwd == crate
    assert goodbye.program.is_file()


def test_real_build_failure(tmp_path):
    """Test that a compile error surfaces the compiler's message."""
    (tmp_path / "Cargo.toml").write_text(dedent("""\
        [package]
        name = "broken"
        version = "0.1.0"
        edition = "2021"
    """))
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.rs").write_text("fn main() { let _x: X = 1; }\n")

    bintest = BinTest.with_(project_root=tmp_path, quiet=True)

    with pytest.raises(BuildFailedError) as excinfo:
        bintest.command("broken")

    assert excinfo.value.exit_code != 0
    assert any("cannot find type `X`" in d for d in excinfo.value.diagnostics)
