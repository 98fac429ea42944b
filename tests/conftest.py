"""Test configuration and fixtures."""

import os

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from buildcache.core.types import EngineConfig
from tests.helpers import FakeStore, make_engine_app


@pytest.fixture
def store(tmp_path):
    """Empty synthetic image store."""
    return FakeStore(tmp_path / "docker")


@pytest_asyncio.fixture
async def engine_factory():
    """Start fake engine servers and return configs pointing at them."""
    servers: list[TestServer] = []

    async def start(
        images: dict[str, str], root_dir: str, driver: str = "overlay2"
    ) -> EngineConfig:
        server = TestServer(make_engine_app(images, root_dir, driver))
        await server.start_server()
        servers.append(server)
        return EngineConfig(url=str(server.make_url("/")), timeout=5)

    yield start

    for server in servers:
        await server.close()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest markers and settings."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring a Docker daemon"
    )
    config.addinivalue_line("markers", "unit: mark test as unit test (default)")


def pytest_collection_modifyitems(config, items):
    """Modify test collection."""
    # Skip integration tests if no daemon with readable storage
    skip_integration = pytest.mark.skip(reason="Docker daemon not available")

    for item in items:
        if (
            "integration" in item.keywords
            and os.getenv("DOCKER_AVAILABLE", "false").lower() != "true"
        ):
            item.add_marker(skip_integration)
