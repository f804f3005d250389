"""Test main entry point."""

from pathlib import Path
import re

from typer.testing import CliRunner

import smart_router
from smart_router import main
from smart_router.cli.main import app

runner = CliRunner()
PACKAGE = Path(__file__).parent.parent.parent / "src" / "smart_router"


def test_version_exists():
    """Test that __version__ is defined and is a valid semver string."""
    assert re.match(r"^\d+\.\d+\.\d+$", smart_router.__version__)


def test_main_is_callable():
    assert callable(main)


def test_main_invokes_cli():
    """main() delegates to the Typer app."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Smart Router" in result.output


def test_main_module_imports_main():
    main_py = PACKAGE / "__main__.py"
    assert main_py.is_file()
    assert "from smart_router import main" in main_py.read_text()


def test_py_typed_exists():
    assert (PACKAGE / "py.typed").is_file()
