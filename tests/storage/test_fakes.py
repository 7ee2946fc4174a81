"""
Tests for fake storage implementations.

These tests verify that the fake S3 client implements the ObjectClient
protocol and reports failures the way the real service does, so backend
tests exercise the production error paths.
"""
from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from s3_filebackend.storage.base import ObjectClient
from s3_filebackend.storage.errors import is_not_found

from .fakes.fake_s3 import FakeS3Client


class TestFakeS3Client:
    """Test FakeS3Client implementation."""

    def test_implements_protocol(self) -> None:
        assert isinstance(FakeS3Client(), ObjectClient)

    def test_put_head_get(self) -> None:
        client = FakeS3Client()
        client.put_object(Bucket="b", Key="k", Body=b"data", ContentType="text/plain", Metadata={"Sha1Base36": "x"})

        head = client.head_object(Bucket="b", Key="k")
        assert head["ContentLength"] == 4
        assert head["Metadata"] == {"sha1base36": "x"}

        obj = client.get_object(Bucket="b", Key="k")
        assert obj["Body"].read() == b"data"
        assert obj["ContentType"] == "text/plain"

    @pytest.mark.parametrize("method", ["head_object", "get_object"])
    def test_missing_objects_are_not_found(self, method) -> None:
        client = FakeS3Client()
        with pytest.raises(ClientError) as exc_info:
            getattr(client, method)(Bucket="b", Key="missing")
        assert is_not_found(exc_info.value)

    def test_head_missing_uses_bare_status_code(self) -> None:
        with pytest.raises(ClientError) as exc_info:
            FakeS3Client().head_object(Bucket="b", Key="missing")
        assert exc_info.value.response["Error"]["Code"] == "404"

    def test_delete_missing_is_silent(self) -> None:
        FakeS3Client().delete_object(Bucket="b", Key="missing")

    def test_listing_pages_and_prefixes(self) -> None:
        client = FakeS3Client(page_size=2)
        for key in ("p/a/1", "p/a/2", "p/b/1", "p/c", "p/d", "q/x"):
            client.seed("b", key, b"")

        first = client.list_objects_v2(Bucket="b", Prefix="p/", Delimiter="/")
        assert [c["Prefix"] for c in first["CommonPrefixes"]] == ["p/a/", "p/b/"]
        assert first["IsTruncated"] is True

        second = client.list_objects_v2(
            Bucket="b", Prefix="p/", Delimiter="/", ContinuationToken=first["NextContinuationToken"],
        )
        assert [c["Key"] for c in second["Contents"]] == ["p/c", "p/d"]
        assert second["IsTruncated"] is False
        assert "NextContinuationToken" not in second

    def test_empty_listing_has_no_contents(self) -> None:
        response = FakeS3Client().list_objects_v2(Bucket="b", Prefix="nothing/", MaxKeys=1)
        assert response["KeyCount"] == 0
        assert "Contents" not in response

    def test_injected_errors_scoped_to_key(self) -> None:
        client = FakeS3Client()
        client.seed("b", "ok", b"1")
        client.seed("b", "bad", b"2")
        client.inject_error("head_object", "AccessDenied", 403, key="bad")

        client.head_object(Bucket="b", Key="ok")
        with pytest.raises(ClientError):
            client.head_object(Bucket="b", Key="bad")

        client.clear_errors()
        client.head_object(Bucket="b", Key="bad")
        assert client.call_count("head_object") == 3

    def test_download_file(self, tmp_path) -> None:
        client = FakeS3Client()
        client.seed("b", "k", b"payload")
        target = tmp_path / "out"

        client.download_file(Bucket="b", Key="k", Filename=str(target))

        assert target.read_bytes() == b"payload"
