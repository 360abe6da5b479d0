"""Pytest fixtures and configuration."""

from collections.abc import Iterator

import pytest

from marketlens.config import get_settings


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests by default unless -m integration is specified."""
    # Check if user explicitly requested integration tests
    markexpr = config.getoption("-m", default="")
    if "integration" in markexpr:
        # User wants integration tests, don't skip
        return

    # Skip integration tests by default
    skip_integration = pytest.mark.skip(reason="Integration test - run with: pytest -m integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Settings are lru_cached; start and end every test with a clean slate."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
