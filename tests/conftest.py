import pytest

from captionkit.bunny.client import BunnyClient
from captionkit.models import BunnyConfig
from captionkit.retry import NO_RETRY

from fakes import FakeSession, ManualScheduler


@pytest.fixture
def bunny_config():
    return BunnyConfig(
        api_key="api-key",
        library_id="42",
        storage_zone="zone",
        storage_access_key="storage-key",
        cdn_url="cdn.example.com",
        stream_url="stream.example.com",
    )


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(bunny_config, session):
    return BunnyClient(bunny_config, session=session, transport_policy=NO_RETRY, sleep=lambda _: None)


@pytest.fixture
def scheduler():
    return ManualScheduler()
