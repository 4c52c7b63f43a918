"""
Shared test fixtures

FakeSupabase stands in for the supabase-py client: every query builder call
is recorded and returns the builder, and execute() pops the next canned
response queued for that table.
"""
import os
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

os.environ.setdefault("ENVIRONMENT", "test")


class FakeQuery:
    def __init__(self, table: str, responses: dict):
        self.table = table
        self.calls = []
        self._responses = responses

    @property
    def not_(self):
        self.calls.append(("not_", (), {}))
        return self

    def __getattr__(self, name):
        if name.startswith("__"):
            raise AttributeError(name)

        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    def called(self, name: str) -> list:
        return [(args, kwargs) for call, args, kwargs in self.calls if call == name]

    def execute(self):
        queue = self._responses.get(self.table) or []
        response = queue.pop(0) if queue else []
        if isinstance(response, Exception):
            raise response
        if isinstance(response, SimpleNamespace):
            return response
        single = any(call in ("maybe_single", "single") for call, _, _ in self.calls)
        if single and not response:
            return None
        return SimpleNamespace(data=response, count=len(response) if isinstance(response, list) else None)


class FakeSupabase:
    def __init__(self):
        self.responses = {}
        self.queries = []
        self.storage = MagicMock()
        self.auth = MagicMock()

    def respond(self, table: str, *responses):
        """Queue execute() results for a table, in call order."""
        self.responses.setdefault(table, []).extend(responses)
        return self

    def table(self, name: str) -> FakeQuery:
        query = FakeQuery(name, self.responses)
        self.queries.append(query)
        return query

    def queries_for(self, table: str) -> list:
        return [query for query in self.queries if query.table == table]


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def user():
    return {"user_id": "user-1", "email": "bdr@example.com", "role": "member"}


@pytest.fixture
def admin_user():
    return {"user_id": "admin-1", "email": "admin@example.com", "role": "admin"}


@pytest.fixture(autouse=True)
def clear_cache():
    from investor_crm.utils.cache import cache

    cache.clear()
    yield
    cache.clear()
