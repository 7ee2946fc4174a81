"""
Tests for container mapping and object key construction.
"""
from __future__ import annotations

import logging

import pytest

from s3_filebackend.storage.container_map import ContainerMap, parse_container_target
from s3_filebackend.storage.keys import dir_prefix, from_key, to_key

from ..helpers.paths import CONTAINER_PATHS


class TestParseContainerTarget:
    """Test bucket/prefix splitting of mapping values."""

    @pytest.mark.parametrize("target, expected", [
        ("bucket", ("bucket", "")),
        ("bucket/", ("bucket", "")),
        ("bucket/t1/images", ("bucket", "t1/images/")),
        ("bucket/t1/images/", ("bucket", "t1/images/")),
        ("bucket/t1//", ("bucket", "t1/")),
    ])
    def test_targets(self, target, expected):
        assert parse_container_target(target) == expected

    def test_missing_bucket_raises(self):
        with pytest.raises(ValueError, match="has no bucket"):
            parse_container_target("/prefix")


class TestContainerMap:
    """Test ContainerMap lookups."""

    def test_mapped_containers(self):
        containers = ContainerMap(CONTAINER_PATHS)

        assert containers.lookup("t1-public") == ("bucket", "t1/images/")
        assert containers.lookup("t1-thumb") == ("bucket", "t1/thumbs/")
        assert containers.lookup("t2-public") == ("other-bucket", "")
        assert len(containers) == 3

    def test_unmapped_container_falls_back_to_bucket(self, caplog):
        """Test that an unknown container is used as the bucket name."""
        containers = ContainerMap(CONTAINER_PATHS)

        with caplog.at_level(logging.INFO, logger="s3_filebackend.storage.container_map"):
            assert containers.lookup("orphan") == ("orphan", "")

        assert not containers.is_mapped("orphan")
        assert "no explicit mapping" in caplog.text

    def test_empty_map(self):
        containers = ContainerMap()
        assert len(containers) == 0
        assert containers.lookup("t1-public") == ("t1-public", "")

    def test_table_is_read_only(self):
        containers = ContainerMap(CONTAINER_PATHS)
        with pytest.raises(TypeError):
            containers.containers["new"] = ("b", "")  # type: ignore[index]


class TestKeys:
    """Test key building helpers."""

    def test_to_key_concatenates(self):
        assert to_key("t1/images/", "a/ab/Foo.png") == "t1/images/a/ab/Foo.png"
        assert to_key("", "a.txt") == "a.txt"

    def test_from_key_strips_prefix(self):
        assert from_key("t1/images/", "t1/images/a/ab/Foo.png") == "a/ab/Foo.png"
        assert from_key("", "a.txt") == "a.txt"

    def test_from_key_outside_prefix_raises(self):
        with pytest.raises(ValueError, match="outside prefix"):
            from_key("t1/images/", "t2/images/a.png")

    def test_dir_prefix(self):
        assert dir_prefix("t1/images/", "") == "t1/images/"
        assert dir_prefix("t1/images/", "thumb") == "t1/images/thumb/"
        assert dir_prefix("", "") == ""
        assert dir_prefix("", "thumb/a") == "thumb/a/"
