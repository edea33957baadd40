import pytest

from relaychat.registry import Registry
from relaychat.server import ConnectionHandler

from tests.helpers import FakeConnection


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def registry() -> Registry:
    return Registry()


@pytest.fixture
def make_handler(registry):
    def factory(port=50000):
        return ConnectionHandler(FakeConnection(remote_address=("127.0.0.1", port)), registry)

    return factory
