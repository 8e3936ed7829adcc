import pytest

from tacna_navigator.storage import InMemoryStorage
from tacna_navigator.store import RouteStore


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def store(storage):
    s = RouteStore(storage)
    s.load()
    return s
