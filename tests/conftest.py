"""Root pytest configuration for s3-filebackend tests."""
import pytest

from s3_filebackend.settings import Settings
from s3_filebackend.storage.s3_backend import S3FileBackend
from s3_filebackend.storage.stat_cache import InMemoryKeyValueStore
from .storage.fakes.fake_clock import FakeClock
from .storage.fakes.fake_s3 import FakeS3Client
from .helpers.paths import BACKEND, CONTAINER_PATHS


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires a live S3 endpoint)"
    )


# Keep tests independent of the developer's environment
@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Automatically set up test environment variables."""
    for name in (
        "S3FB_ENDPOINT", "S3FB_REGION", "S3FB_SERVICE_TYPE", "S3FB_ADDRESSING_STYLE",
        "S3FB_CONTAINER_PATHS", "S3FB_CONTAINER_PATHS_FILE", "S3FB_IMAGE_PROCESSING",
        "S3FB_BACKEND_NAME", "S3FB_TEMP_DIR", "S3FB_STAT_TTL", "S3FB_MISSING_TTL",
        "S3FB_HTTP_TIMEOUT", "S3FB_HTTP_RETRY", "S3FB_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("S3FB_ACCESS_KEY", "test-access")
    monkeypatch.setenv("S3FB_SECRET_KEY", "test-secret")


# Standardized test fixtures
@pytest.fixture
def settings(tmp_path):
    """Standard test settings."""
    return Settings(
        access_key="test-access",
        secret_key="test-secret",
        endpoint_url="http://minio.local:9000",
        backend_name=BACKEND,
        container_paths=CONTAINER_PATHS,
        temp_dir=str(tmp_path),
    )


@pytest.fixture
def s3_client():
    """Fake remote client shared by a test's backend(s)."""
    return FakeS3Client()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stat_store(clock):
    """Stat cache store driven by the fake clock."""
    return InMemoryKeyValueStore(timer=clock)


@pytest.fixture
def backend(settings, s3_client, stat_store):
    """Standard backend wired to the fake client."""
    return S3FileBackend(settings, stat_store=stat_store, client_factory=lambda _settings: s3_client)
