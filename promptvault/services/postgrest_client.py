"""
Minimal async PostgREST client for the remote (Supabase) backend.

Only the handful of table operations the remote record store needs:
select with filters/order/paging, insert, update and delete, all returning
the affected rows as dicts.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from ..core.exceptions import StorageError

logger = logging.getLogger(__name__)

Filter = Tuple[str, str]


def eq(column: str, value: Any) -> Filter:
    """``column = value``"""
    if isinstance(value, bool):
        value = "true" if value else "false"
    return column, f"eq.{value}"


def is_null(column: str) -> Filter:
    return column, "is.null"


def escape_like(fragment: str) -> str:
    """Escape LIKE wildcards (and PostgREST's ``*``) so ``fragment`` matches literally."""
    for char in ("\\", "%", "_", "*"):
        fragment = fragment.replace(char, "\\" + char)
    return fragment


def ilike(column: str, fragment: str) -> Filter:
    """Case-insensitive substring match on ``column``."""
    return column, f"ilike.*{escape_like(fragment)}*"


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def any_ilike(columns: Sequence[str], fragment: str) -> Filter:
    """Substring match on any of ``columns`` (PostgREST ``or`` filter)."""
    pattern = _quote(f"*{escape_like(fragment)}*")
    conditions = ",".join(f"{column}.ilike.{pattern}" for column in columns)
    return "or", f"({conditions})"


class PostgRESTClient:
    """
    Thin wrapper over ``httpx.AsyncClient`` speaking the PostgREST dialect.

    The client owns its ``httpx.AsyncClient`` unless one is passed in and
    must be closed with ``aclose()``.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize the client.

        Args:
            url: Service base URL, e.g. ``https://xyz.supabase.co``
            anon_key: Public API key sent as ``apikey`` and bearer token
            http_client: Pre-built client (tests pass one with a mock transport)
            timeout: Request timeout in seconds for the owned client
        """
        self.base_url = url.rstrip("/")
        self._headers = {
            "apikey": anon_key,
            "Authorization": f"Bearer {anon_key}",
            "Content-Type": "application/json",
        }
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[List[Filter]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer

        try:
            response = await self._http_client.request(
                method,
                self._table_url(table),
                params=params or [],
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"Remote request {method} {table} failed: {e}")
            raise StorageError(f"Remote request failed: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("message") or response.text
            except ValueError:
                message = response.text
            logger.error(f"Remote {method} {table} returned {response.status_code}: {message}")
            raise StorageError(f"{message} (HTTP {response.status_code})")

        if not response.content:
            return []
        body = response.json()
        return body if isinstance(body, list) else [body]

    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order: Sequence[Tuple[str, bool]] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        columns: str = "*",
    ) -> List[Dict[str, Any]]:
        """
        Read rows.

        Args:
            table: Table name
            filters: ``(column, operator.value)`` pairs
            order: ``(column, ascending)`` pairs, applied in sequence
            limit: Maximum number of rows
            offset: Rows to skip
            columns: PostgREST ``select`` expression
        """
        params: List[Filter] = [("select", columns), *filters]
        if order:
            params.append(("order", ",".join(f"{col}.{'asc' if asc else 'desc'}" for col, asc in order)))
        if limit is not None:
            params.append(("limit", str(limit)))
        if offset:
            params.append(("offset", str(offset)))
        return await self._request("GET", table, params=params)

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self._request("POST", table, json=row, prefer="return=representation")
        if not rows:
            raise StorageError(f"Insert into {table} returned no row")
        return rows[0]

    async def update(self, table: str, values: Dict[str, Any], filters: Sequence[Filter]) -> List[Dict[str, Any]]:
        """Patch matching rows and return them (empty when nothing matched)."""
        return await self._request(
            "PATCH", table, params=list(filters), json=values, prefer="return=representation"
        )

    async def delete(self, table: str, filters: Sequence[Filter]) -> List[Dict[str, Any]]:
        return await self._request("DELETE", table, params=list(filters), prefer="return=representation")

    async def aclose(self) -> None:
        await self._http_client.aclose()
