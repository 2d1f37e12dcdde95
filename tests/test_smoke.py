"""Tests for beliefnet package import and basic smoke tests."""

import importlib
import logging
import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent


class TestImport:
    """Test that beliefnet can be imported."""

    def test_import_beliefnet(self) -> None:
        """Test importing the beliefnet package."""
        import beliefnet

        assert hasattr(beliefnet, "__version__")

    def test_version_exists(self) -> None:
        """Test that __version__ is defined."""
        import beliefnet

        assert isinstance(beliefnet.__version__, str)
        assert len(beliefnet.__version__) > 0

    def test_reimport(self) -> None:
        """Test that beliefnet can be reimported."""
        import beliefnet

        importlib.reload(beliefnet)
        assert beliefnet.__version__

    def test_public_names(self) -> None:
        import beliefnet

        for name in beliefnet.__all__:
            assert hasattr(beliefnet, name), name

    def test_library_logger_has_null_handler(self) -> None:
        import beliefnet  # noqa: F401

        handlers = logging.getLogger("beliefnet").handlers
        assert any(isinstance(h, logging.NullHandler) for h in handlers)


class TestCLISmoke:
    """CLI smoke tests for the beliefnet package."""

    @pytest.mark.skipif(
        subprocess.run(
            [sys.executable, "-m", "pip", "show", "beliefnet"],
            capture_output=True,
        ).returncode != 0,
        reason="beliefnet not installed via pip (run 'pip install -e .')",
    )
    def test_pip_show(self) -> None:
        """Test that pip show beliefnet succeeds."""
        result = subprocess.run(
            [sys.executable, "-m", "pip", "show", "beliefnet"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "beliefnet" in result.stdout.lower()

    def test_python_c_version(self) -> None:
        """Test that version string is valid semver-like."""
        result = subprocess.run(
            [sys.executable, "-c", "import beliefnet; print(beliefnet.__version__)"],
            capture_output=True,
            text=True,
            cwd=ROOT,
        )
        assert result.returncode == 0
        version = result.stdout.strip()
        parts = version.split(".")
        assert len(parts) >= 3, f"Version {version!r} is not semver-like"

    def test_examples_script_runs(self) -> None:
        """The demo script runs end to end."""
        result = subprocess.run(
            [sys.executable, str(ROOT / "examples.py")],
            capture_output=True,
            text=True,
            cwd=ROOT,
        )
        assert result.returncode == 0, result.stderr
        assert "Examples completed successfully!" in result.stdout
        assert "Most probable: Flu" in result.stdout
