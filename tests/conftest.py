import pytest

from signspell.core.events import EventBus
from signspell.utils.config import Config


@pytest.fixture(autouse=True)
def clean_singletons():
    """Every test starts with an empty bus and unloaded config."""
    EventBus.reset()
    Config.reset()
    yield
    EventBus.reset()
    Config.reset()


@pytest.fixture
def bus():
    return EventBus()
