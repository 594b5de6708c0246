"""Tests for main.py CLI functionality."""

from unittest.mock import patch

import pytest

from sticker_pipeline.main import main


class TestMainCLI:
    """Tests for the main CLI functionality."""

    def test_main_with_no_args_shows_help(self):
        """Test that running main without arguments shows help."""
        with patch("argparse.ArgumentParser.print_help") as mock_help:
            with pytest.raises(SystemExit) as excinfo:
                main([])
        mock_help.assert_called_once()
        assert excinfo.value.code == 1

    def test_main_version_command(self):
        """Test version command output."""
        with patch("builtins.print") as mock_print:
            with pytest.raises(SystemExit) as excinfo:
                main(["version"])
        mock_print.assert_any_call("Sticker Pipeline CLI")
        mock_print.assert_any_call("Version 0.1.0")
        mock_print.assert_any_call("Staged images to content-addressed upload batches")
        assert excinfo.value.code == 0

    def test_optimize_forwards_arguments(self):
        with patch("sticker_pipeline.main.optimize_run", return_value=0) as mock_run:
            with pytest.raises(SystemExit) as excinfo:
                main(["optimize", "--dry-run", "--staged", "/tmp/staged"])
        mock_run.assert_called_once_with(["--dry-run", "--staged", "/tmp/staged"])
        assert excinfo.value.code == 0

    def test_manifest_forwards_arguments_and_exit_code(self):
        with patch("sticker_pipeline.main.manifest_run", return_value=2) as mock_run:
            with pytest.raises(SystemExit) as excinfo:
                main(["manifest", "--all", "--dry-run"])
        mock_run.assert_called_once_with(["--all", "--dry-run"])
        assert excinfo.value.code == 2

    def test_sys_argv_is_used_by_default(self):
        with patch("sys.argv", ["sticker-pipeline", "optimize", "--fail-fast"]):
            with patch("sticker_pipeline.main.optimize_run", return_value=0) as mock_run:
                with pytest.raises(SystemExit):
                    main()
        mock_run.assert_called_once_with(["--fail-fast"])

    def test_unknown_command(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["upload"])
        assert excinfo.value.code == 2
