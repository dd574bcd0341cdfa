import copy
from datetime import date

import pytest

from models import Category, Expense


class MemoryStorage:
    """Storage double with the same save/load/merge surface as SnapshotStorage."""

    def __init__(self, fail=False):
        self.documents = {}
        self.fail = fail
        self.saves = 0

    def save(self, user_id, document):
        if self.fail:
            raise RuntimeError("storage offline")
        self.saves += 1
        self.documents[user_id] = copy.deepcopy(document)
        return True

    def load(self, user_id):
        if self.fail:
            raise RuntimeError("storage offline")
        document = self.documents.get(user_id)
        return copy.deepcopy(document) if document is not None else None

    def merge(self, user_id, section):
        document = self.load(user_id) or {}
        document.update(section)
        return self.save(user_id, document)


@pytest.fixture
def today():
    return date(2024, 11, 10)


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def make_expense():
    def _make(name="Netflix", value=50.0, due_day=15, category=Category.SUBSCRIPTIONS, **kw):
        return Expense(name=name, value=value, due_day=due_day, category=category, **kw)
    return _make


@pytest.fixture
def failing_storage():
    return MemoryStorage(fail=True)
