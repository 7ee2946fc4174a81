"""Test doubles for the remote object client."""
from .fake_clock import FakeClock
from .fake_s3 import FakeObject, FakeS3Client, client_error

__all__ = ["FakeClock", "FakeObject", "FakeS3Client", "client_error"]
