import pytest

import weft.config


@pytest.fixture(autouse=True)
def in_memory_settings():
    """Give every test fresh in-memory settings so nothing touches config/weft.toml."""
    weft.config.load(None)
    yield
    weft.config.reset()
