"""Root pytest configuration for oss-transport tests."""
import pytest

from oss_transport.http import HTTP
from oss_transport.settings import Settings

from tests.helpers.fake_oss import FIXED_TIME, FakeOSS


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take significant time)"
    )


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Isolate tests from OSS_* variables of the developer's shell."""
    for name in (
        "OSS_ENDPOINT", "OSS_ACCESS_KEY_ID", "OSS_ACCESS_KEY_SECRET", "OSS_SECURITY_TOKEN",
        "OSS_CNAME", "OSS_OPEN_TIMEOUT", "OSS_READ_TIMEOUT", "OSS_HTTP_RETRY", "OSS_USER_AGENT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    """Standard test settings with credentials."""
    return Settings(
        endpoint="http://oss.example.com",
        access_key_id="test-id",
        access_key_secret="helloworld",
        user_agent="oss-transport-tests/1.0",
    )


@pytest.fixture
def fake_oss():
    """Fake OSS server that verifies signatures made with the test credentials."""
    return FakeOSS("oss.example.com", access_key_id="test-id", secret="helloworld")


@pytest.fixture
def http(settings, fake_oss):
    """Transport wired to the fake server with a fixed clock."""
    client = HTTP(settings, transport=fake_oss.transport(), clock=lambda: FIXED_TIME)
    yield client
    client.close()
