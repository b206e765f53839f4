"""Root pytest configuration for offsetwrite tests."""
import pytest

from offsetwrite.driver import StorageDriver
from offsetwrite.settings import Settings
from offsetwrite.storage.base import StaticTokenMinter
from offsetwrite.storage.cache import CacheRefresher
from offsetwrite.storage.compose import ComposeClient
from offsetwrite.storage.kodo import KodoStore
from offsetwrite.writer import OffsetWriter

from .storage.fakes import HOSTS, FakeKodoBackend

TEST_TOKEN = "test-upload-token"


# Set up test environment variables
@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Automatically set up test environment variables."""
    monkeypatch.setenv("OFFSETWRITE_BUCKET", "test-bucket")
    monkeypatch.setenv("OFFSETWRITE_UP_HOST", f"http://{HOSTS['up']}")
    monkeypatch.setenv("OFFSETWRITE_RS_HOST", f"http://{HOSTS['rs']}")
    monkeypatch.setenv("OFFSETWRITE_RSF_HOST", f"http://{HOSTS['rsf']}")
    monkeypatch.setenv("OFFSETWRITE_DOMAIN", HOSTS["cdn"])
    monkeypatch.setenv("OFFSETWRITE_INSECURE", "true")
    monkeypatch.delenv("OFFSETWRITE_UPLOAD_TOKEN", raising=False)


# Standardized test fixtures
@pytest.fixture
def settings(tmp_path):
    """Standard test settings; a small spool threshold makes large writes hit disk."""
    return Settings(
        bucket="test-bucket",
        domain=HOSTS["cdn"],
        up_host=f"http://{HOSTS['up']}",
        rs_host=f"http://{HOSTS['rs']}",
        rsf_host=f"http://{HOSTS['rsf']}",
        insecure=True,
        authorization="QBox test:signature",
        check_crc=True,
        staging_dir=str(tmp_path),
        spool_max_bytes=64,
        user_uid=1380469264,
        refresh_cache_url=f"http://{HOSTS['refresh']}",
    )


@pytest.fixture
def backend(settings):
    """In-memory Kodo backend for the test bucket."""
    return FakeKodoBackend(settings.bucket)


@pytest.fixture
def tokens():
    return StaticTokenMinter(TEST_TOKEN)


@pytest.fixture
def store(settings, tokens, backend):
    with KodoStore(settings, tokens, transport=backend.transport()) as s:
        yield s


@pytest.fixture
def composer(settings, backend):
    with ComposeClient(settings, transport=backend.transport()) as c:
        yield c


@pytest.fixture
def writer(store, composer, tokens, settings):
    return OffsetWriter(store, composer, tokens, settings)


@pytest.fixture
def refresher(settings, backend):
    r = CacheRefresher(settings, transport=backend.transport())
    yield r
    r.close()


@pytest.fixture
def driver(store, writer, settings, refresher):
    return StorageDriver(store, writer, settings, refresher=refresher)
