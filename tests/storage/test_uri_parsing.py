"""
Tests for virtual path parsing.

Tests parse_storage_path with valid and invalid paths, edge cases, and
security validation.
"""
from __future__ import annotations

import pytest

from s3_filebackend.storage.errors import InvalidPathError
from s3_filebackend.storage.uri import StoragePath, extension_from_path, parse_storage_path


class TestParseStoragePath:
    """Test parse_storage_path function."""

    def test_valid_path(self):
        """Test parsing a full virtual file path."""
        path = "mwstore://s3-backend/t1-public/a/ab/Foo.png"
        result = parse_storage_path(path)

        assert result == StoragePath(
            scheme="mwstore",
            backend="s3-backend",
            container="t1-public",
            rel_path="a/ab/Foo.png",
            original=path,
        )

    def test_minimal_valid_path(self):
        """Test parsing minimal valid path with single-char components."""
        result = parse_storage_path("m://b/c/d")

        assert result.scheme == "m"
        assert result.backend == "b"
        assert result.container == "c"
        assert result.rel_path == "d"

    def test_container_root(self):
        """Test that a container-only path is accepted for directory operations."""
        result = parse_storage_path("mwstore://s3-backend/t1-public", allow_empty=True)
        assert result.rel_path == ""

        result = parse_storage_path("mwstore://s3-backend/t1-public/", allow_empty=True)
        assert result.rel_path == ""

    def test_container_root_rejected_for_files(self):
        with pytest.raises(InvalidPathError, match="unsafe path"):
            parse_storage_path("mwstore://s3-backend/t1-public")

    def test_directory_trailing_slash(self):
        result = parse_storage_path("mwstore://s3-backend/t1-public/thumb/", allow_empty=True)
        assert result.rel_path == "thumb"

    def test_empty_path_raises(self):
        """Test that empty path raises ValueError."""
        with pytest.raises(ValueError, match="storage path cannot be empty"):
            parse_storage_path("")

    @pytest.mark.parametrize("path", [
        "s3-backend/t1-public/a.png",
        "mwstore:/s3-backend/t1-public/a.png",
        "MWSTORE://s3-backend/t1-public/a.png",
        "1store://s3-backend/t1-public/a.png",
    ])
    def test_missing_or_bad_scheme_raises(self, path):
        with pytest.raises(InvalidPathError, match="expected scheme://backend/container/path"):
            parse_storage_path(path)

    @pytest.mark.parametrize("path", [
        "mwstore://",
        "mwstore://s3-backend",
        "mwstore://s3-backend/",
        "mwstore:///t1-public/a.png",
    ])
    def test_missing_backend_or_container_raises(self, path):
        with pytest.raises(InvalidPathError, match="missing backend or container"):
            parse_storage_path(path)

    @pytest.mark.parametrize("container", ["..", ".", "t1\\public"])
    def test_bad_container_raises(self, container):
        with pytest.raises(InvalidPathError, match="Invalid container name"):
            parse_storage_path(f"mwstore://s3-backend/{container}/a.png")

    def test_traversal_in_relative_part_raises(self):
        """Test the traversal scenario from a hostile caller."""
        with pytest.raises(InvalidPathError, match="unsafe path: a/../../etc/passwd"):
            parse_storage_path("mwstore://s3-backend/t1-public/a/../../etc/passwd")

    def test_backslash_in_relative_part_raises(self):
        with pytest.raises(InvalidPathError, match="unsafe path"):
            parse_storage_path("mwstore://s3-backend/t1-public/a\\b.png")

    def test_overlong_relative_part_raises(self):
        with pytest.raises(InvalidPathError, match="path too long"):
            parse_storage_path("mwstore://s3-backend/t1-public/" + "x" * 1025)

    def test_original_preserved(self):
        path = "mwstore://s3-backend/t1-public/thumb/"
        assert parse_storage_path(path, allow_empty=True).original == path


class TestExtensionFromPath:
    """Test extension_from_path helper."""

    @pytest.mark.parametrize("path, expected", [
        ("a/ab/Foo.PNG", "png"),
        ("archive.tar.gz", "gz"),
        ("a.dir/README", ""),
        ("noext", ""),
        ("", ""),
    ])
    def test_extensions(self, path, expected):
        assert extension_from_path(path) == expected
