import pytest

from config import MemoryStorage
from models import Person, PersonStatus
from store import LedgerStore


def make_person(pid, deleted=False):
    return Person(id=pid, name=pid, status=PersonStatus.DELETED if deleted else PersonStatus.ACTIVE)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return LedgerStore(storage)


@pytest.fixture
def trip(store):
    """Store with an active 'Trip' group holding Alice, Bob and Carol"""
    store.create_group("Trip", "Weekend away")
    people = {name: store.add_person(name) for name in ("Alice", "Bob", "Carol")}
    return store, people
