"""Shared fixtures for render-rebuild tests."""

import pytest

from render_rebuild.config import Settings, get_settings
from render_rebuild.polling import PollPolicy
from tests.mocks.render import MockRenderClient

# Poll without waiting
FAST_POLL = PollPolicy(interval=0, max_attempts=5)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_name="app-db",
        database_env_key="DATABASE_URL",
        region="Oregon",
        render_api_key="rnd_test_key",
        render_api_url="https://api.render.com/v1",
        database_poll_interval=0,
        database_poll_max_attempts=5,
        deploy_poll_interval=0,
        deploy_poll_max_attempts=5,
    )


@pytest.fixture
def mock_client() -> MockRenderClient:
    return MockRenderClient()


@pytest.fixture
def fast_poll() -> PollPolicy:
    return FAST_POLL
