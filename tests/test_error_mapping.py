"""
Test error mapping and CLI exit code functionality.

Validates that exceptions are correctly mapped to exit codes and that
the run_and_exit wrapper handles errors appropriately for CLI commands.
"""
from __future__ import annotations

import pytest
import typer

from s3_filebackend.operations import OperationFailed, PathNotFoundError, VerificationError
from s3_filebackend.operations.mappers import EXIT_CODES, exit_code_for, run_and_exit
from s3_filebackend.storage.errors import InvalidPathError


class TestExitCodeMapping:
    """Test exception to exit code mapping."""

    def test_known_exceptions_mapped_correctly(self):
        """Test that known exceptions map to correct exit codes."""
        assert exit_code_for(PathNotFoundError("store://backend/t1-public/a.png")) == 1
        assert exit_code_for(ValueError("bad input")) == 2
        assert exit_code_for(InvalidPathError("unsafe path: ..")) == 2
        assert exit_code_for(OperationFailed("Deleting failed")) == 3
        assert exit_code_for(VerificationError("stat failed")) == 4

    def test_unknown_exception_maps_to_fallback(self):
        """Test that unknown exceptions map to fallback exit code."""
        assert exit_code_for(RuntimeError("test")) == 3
        assert exit_code_for(FileNotFoundError("test")) == 3
        assert exit_code_for(PermissionError("test")) == 3

    def test_exit_code_completeness(self):
        """Test that all CLI-facing error types are mapped."""
        assert set(EXIT_CODES) == {
            "PathNotFoundError",
            "ValueError",
            "InvalidPathError",
            "OperationFailed",
            "VerificationError",
        }


class TestRunAndExit:
    """Test run_and_exit wrapper functionality."""

    def test_successful_function_returns_result(self):
        """Test that successful function execution returns result."""
        assert run_and_exit(lambda: "success result") == "success result"

    def test_function_exception_raises_typer_exit(self):
        """Test that function exceptions are converted to typer.Exit."""
        def failing_func():
            raise PathNotFoundError("No such file: store://backend/t1-public/a.png")

        with pytest.raises(typer.Exit) as exc_info:
            run_and_exit(failing_func)

        assert exc_info.value.exit_code == 1

    def test_exception_chaining_preserved(self):
        """Test that original exception is preserved as cause."""
        original_error = ValueError("original error")

        def failing_func():
            raise original_error

        with pytest.raises(typer.Exit) as exc_info:
            run_and_exit(failing_func)

        assert exc_info.value.__cause__ is original_error

    def test_error_printed_to_stderr(self, capsys):
        def failing_func():
            raise OperationFailed("Deleting store://backend/t1-public/a.png failed: internal")

        with pytest.raises(typer.Exit):
            run_and_exit(failing_func)

        captured = capsys.readouterr()
        assert "Error:" in captured.err
        assert "Deleting store://backend/t1-public/a.png failed" in captured.err

    def test_nested_exceptions_use_outer_type(self):
        """Test that nested exceptions use the outer exception type."""
        def nested_func():
            try:
                raise ValueError("inner error")
            except ValueError as e:
                raise VerificationError("create failed") from e

        with pytest.raises(typer.Exit) as exc_info:
            run_and_exit(nested_func)

        assert exc_info.value.exit_code == 4
