"""
Pytest configuration and shared fixtures.

This module provides the record store fixtures used across the test suite:
an embedded store on a temporary SQLite file and a remote store talking to an
in-process fake PostgREST service through ``httpx.MockTransport``.
"""

import json
import re
from itertools import count
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from promptvault.core.deps import get_facade
from promptvault.main import app
from promptvault.services.postgrest_client import PostgRESTClient
from promptvault.services.remote_store import RemoteRecordStore
from promptvault.services.request_facade import RequestFacade
from promptvault.services.sqlite_store import SQLiteRecordStore


# pytest-asyncio is auto-configured via pyproject.toml asyncio_mode="auto"

REMOTE_URL = "http://remote.test"

TABLES = ("prompts", "categories", "groups", "management_prompts", "prompt_results")

# child table -> (reference column, parent table)
PARENTS = {
    "groups": ("category_uuid", "categories"),
    "management_prompts": ("group_uuid", "groups"),
    "prompt_results": ("prompt_uuid", "management_prompts"),
}

RESERVED_PARAMS = ("select", "order", "limit", "offset")


def _split_outside_quotes(text: str) -> List[str]:
    parts, current, quoted, escaped = [], "", False, False
    for char in text:
        if escaped:
            current += char
            escaped = False
        elif char == "\\":
            current += char
            escaped = True
        elif char == '"':
            current += char
            quoted = not quoted
        elif char == "," and not quoted:
            parts.append(current)
            current = ""
        else:
            current += char
    parts.append(current)
    return parts


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
        value = re.sub(r"\\(.)", r"\1", value)
    return value


def _like_regex(pattern: str) -> str:
    """Translate a PostgREST like pattern (``*``/``%`` any, ``_`` one, ``\\`` escapes) to a regex."""
    parts, i = [], 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            parts.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if char in "*%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
        i += 1
    return "".join(parts)


def _matches(row: Dict[str, Any], column: str, expression: str) -> bool:
    if column == "or":
        conditions = _split_outside_quotes(expression.strip("()"))
        for condition in conditions:
            col, operator, value = condition.split(".", 2)
            if _matches(row, col, f"{operator}.{_unquote(value)}"):
                return True
        return False

    operator, value = expression.split(".", 1)
    current = row.get(column)
    if operator == "is":
        return current is None if value == "null" else False
    if operator == "eq":
        if isinstance(current, bool):
            return ("true" if current else "false") == value
        return current is not None and str(current) == value
    if operator == "ilike":
        if current is None:
            return False
        pattern = _like_regex(value)
        return re.fullmatch(pattern, str(current), flags=re.IGNORECASE | re.DOTALL) is not None
    raise AssertionError(f"Unsupported operator in fake PostgREST: {operator}")


class FakePostgREST:
    """
    In-memory stand-in for a Supabase PostgREST endpoint.

    Supports the subset the remote store uses: ``eq``/``is.null``/``ilike``
    filters, ``or`` groups, ``order``, ``limit``/``offset``, column selection,
    unique uuids, parent references and cascading deletes.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {name: [] for name in TABLES}
        self.requests: List[httpx.Request] = []
        self.fail_when: Optional[Callable[[httpx.Request], bool]] = None
        self._ids = count(1)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def _error(self, status: int, message: str) -> httpx.Response:
        return httpx.Response(status, json={"message": message})

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_when is not None and self.fail_when(request):
            return self._error(500, "injected failure")

        table = request.url.path.rsplit("/", 1)[-1]
        if table not in self.tables:
            return self._error(404, f"relation {table} does not exist")

        params = request.url.params
        filters = [(k, v) for k, v in params.multi_items() if k not in RESERVED_PARAMS]
        rows = [row for row in self.tables[table] if all(_matches(row, k, v) for k, v in filters)]

        if request.method == "GET":
            return httpx.Response(200, json=self._read(rows, params))
        if request.method == "POST":
            return self._insert(table, json.loads(request.content))
        if request.method == "PATCH":
            values = json.loads(request.content)
            for row in rows:
                row.update(values)
            return httpx.Response(200, json=[dict(row) for row in rows])
        if request.method == "DELETE":
            for row in rows:
                self._cascade_delete(table, row)
            return httpx.Response(200, json=[dict(row) for row in rows])
        return self._error(405, f"method {request.method} not allowed")

    def _read(self, rows: List[Dict[str, Any]], params: httpx.QueryParams) -> List[Dict[str, Any]]:
        rows = list(rows)
        order = params.get("order")
        if order:
            for term in reversed(order.split(",")):
                column, direction = term.rsplit(".", 1)
                rows.sort(
                    key=lambda r: (r.get(column) is not None, r.get(column) if r.get(column) is not None else 0),
                    reverse=direction == "desc",
                )
        offset = int(params.get("offset", 0))
        rows = rows[offset:]
        if params.get("limit") is not None:
            rows = rows[: int(params["limit"])]

        columns = params.get("select", "*")
        if columns == "*":
            return [dict(row) for row in rows]
        wanted = columns.split(",")
        return [{k: row.get(k) for k in wanted} for row in rows]

    def _insert(self, table: str, row: Dict[str, Any]) -> httpx.Response:
        if any(existing["uuid"] == row.get("uuid") for existing in self.tables[table]):
            return self._error(409, f'duplicate key value violates unique constraint "{table}_uuid_key"')
        if table in PARENTS:
            column, parent = PARENTS[table]
            if not any(p["uuid"] == row.get(column) for p in self.tables[parent]):
                return self._error(409, f"insert on {table} violates foreign key constraint")

        stored = {"id": next(self._ids), **row}
        if table == "prompts":
            stored.setdefault("deleted_at", None)
            stored.setdefault("is_favorite", False)
        self.tables[table].append(stored)
        return httpx.Response(201, json=[dict(stored)])

    def _cascade_delete(self, table: str, row: Dict[str, Any]) -> None:
        if row in self.tables[table]:
            self.tables[table].remove(row)
        for child, (column, parent) in PARENTS.items():
            if parent == table:
                for child_row in [r for r in self.tables[child] if r.get(column) == row["uuid"]]:
                    self._cascade_delete(child, child_row)


@pytest_asyncio.fixture(scope="function")
async def sqlite_store(tmp_path) -> AsyncGenerator[SQLiteRecordStore, None]:
    """Embedded store on a fresh database file."""
    store = await SQLiteRecordStore.open(tmp_path / "prompts.db")
    yield store
    await store.close()


@pytest.fixture
def fake_remote() -> FakePostgREST:
    return FakePostgREST()


@pytest_asyncio.fixture(scope="function")
async def remote_store(fake_remote: FakePostgREST) -> AsyncGenerator[RemoteRecordStore, None]:
    """Remote store wired to the in-memory PostgREST fake."""
    http_client = httpx.AsyncClient(transport=fake_remote.transport())
    store = RemoteRecordStore(PostgRESTClient(REMOTE_URL, "test-anon-key", http_client=http_client))
    yield store
    await store.close()


@pytest_asyncio.fixture(scope="function", params=["sqlite", "remote"])
async def store(request, tmp_path, fake_remote):
    """Run a test once against each backend."""
    if request.param == "sqlite":
        backend = await SQLiteRecordStore.open(tmp_path / "prompts.db")
    else:
        http_client = httpx.AsyncClient(transport=fake_remote.transport())
        backend = RemoteRecordStore(PostgRESTClient(REMOTE_URL, "test-anon-key", http_client=http_client))
    yield backend
    await backend.close()


@pytest.fixture
def facade(sqlite_store: SQLiteRecordStore) -> RequestFacade:
    return RequestFacade(sqlite_store)


@pytest_asyncio.fixture(scope="function")
async def client(facade: RequestFacade) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client bound to the FastAPI app.

    The lifespan is not run; the facade dependency is overridden with one
    built on the temporary embedded store.
    """
    app.dependency_overrides[get_facade] = lambda: facade
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
