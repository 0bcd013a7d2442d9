"""Async client for the remote table-storage API (Baserow-compatible)."""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter

from .config import Settings, require_configured
from .errors import BulkDeleteError, DashboardError, FetchError, NetworkError
from .models import Row, RowPage, TableField

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FIELD_LIST = TypeAdapter(List[TableField])


class _PagePayload(BaseModel):
    count: int = 0
    next: Optional[str] = None
    previous: Optional[str] = None
    results: List[Dict[str, Any]]


class TableClient:
    """List fields and rows of one table and delete rows from it."""

    def __init__(
        self,
        base_url: str,
        table_id: str,
        token: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.table_id = str(table_id)
        self._token = token
        self._transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "TableClient":
        """Build a client, refusing to run without explicit configuration."""
        return cls(
            require_configured(settings.baserow_api_url, "Table API URL"),
            require_configured(settings.baserow_table_id, "Table ID"),
            require_configured(settings.baserow_api_token, "Table API token"),
            transport=transport,
        )

    # --- HTTP plumbing ------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        # No timeout: a request runs until it answers or the network fails.
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Token {self._token}",
                "Content-Type": "application/json",
            },
            timeout=None,
            transport=self._transport,
        )

    @property
    def _fields_path(self) -> str:
        return f"/api/database/fields/table/{self.table_id}/"

    @property
    def _rows_path(self) -> str:
        return f"/api/database/rows/table/{self.table_id}/"

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        *,
        action: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            response = await client.request(method, url, params=params)
        except httpx.TransportError as exc:
            logger.warning("Network error while trying to %s: %s", action, exc)
            raise NetworkError(f"Failed to {action}: {exc}") from exc
        if not response.is_success:
            logger.warning(
                "Table API refused to %s: %s %s",
                action,
                response.status_code,
                response.reason_phrase,
            )
            raise FetchError(
                f"Failed to {action}: {response.status_code} {response.reason_phrase}",
                status=response.status_code,
                reason=response.reason_phrase,
            )
        return response

    # --- Operations ---------------------------------------------------------

    async def list_fields(self) -> List[TableField]:
        async with self._client() as client:
            response = await self._send(client, "GET", self._fields_path, action="fetch fields")
        return _decode(response, "fetch fields", _FIELD_LIST.validate_python)

    async def list_rows(
        self,
        page: int = 1,
        size: Optional[int] = None,
        fields: Iterable[TableField] = (),
    ) -> RowPage:
        params: Dict[str, Any] = {"user_field_names": "true"}
        if page != 1:
            params["page"] = page
        if size is not None:
            params["size"] = size
        async with self._client() as client:
            response = await self._send(
                client, "GET", self._rows_path, action="fetch rows", params=params
            )
        return _decode(response, "fetch rows", partial(_parse_page, fields=list(fields)))

    async def list_all_rows(self, fields: Iterable[TableField] = ()) -> List[Row]:
        """
        Every row of the table, following the ``next`` links.

        A link to another origin is refused so the token never leaves the
        configured API. A link already fetched ends the walk.
        """
        field_list = list(fields)
        parse = partial(_parse_page, fields=field_list)
        base = httpx.URL(self.base_url)
        rows: List[Row] = []
        seen: Set[str] = set()
        async with self._client() as client:
            response = await self._send(
                client,
                "GET",
                self._rows_path,
                action="fetch rows",
                params={"user_field_names": "true"},
            )
            page = _decode(response, "fetch rows", parse)
            rows.extend(page.results)
            while page.next:
                next_url = base.join(page.next)
                if (next_url.scheme, next_url.host, next_url.port) != (
                    base.scheme,
                    base.host,
                    base.port,
                ):
                    logger.warning("Refusing next-page link to another origin: %s", next_url)
                    raise FetchError(
                        f"Failed to fetch rows: next page points outside {self.base_url}",
                        status=response.status_code,
                        reason="foreign next link",
                    )
                if str(next_url) in seen:
                    logger.warning("Next-page link %s already fetched; stopping", next_url)
                    break
                seen.add(str(next_url))
                response = await self._send(client, "GET", str(next_url), action="fetch rows")
                page = _decode(response, "fetch rows", parse)
                rows.extend(page.results)
        return rows

    async def delete_row(self, row_id: int) -> None:
        async with self._client() as client:
            await self._send(
                client, "DELETE", f"{self._rows_path}{row_id}/", action="delete row"
            )
        logger.info("Deleted row %s from table %s", row_id, self.table_id)

    async def _delete_missing_ok(self, client: httpx.AsyncClient, row_id: int) -> None:
        try:
            await self._send(
                client, "DELETE", f"{self._rows_path}{row_id}/", action="delete row"
            )
        except FetchError as exc:
            if exc.status != 404:
                raise
            logger.info("Row %s already gone; counting as deleted", row_id)

    async def delete_all(self, row_ids: Iterable[int]) -> None:
        """
        Delete every id concurrently and wait for all of them to settle.

        Rows the API reports as missing count as deleted, so repeating a
        partially failed clear is safe. Not atomic: when some deletes fail,
        BulkDeleteError lists both the deleted ids and the failures.
        """
        ids = list(dict.fromkeys(row_ids))
        if not ids:
            return
        async with self._client() as client:
            outcomes = await asyncio.gather(
                *(self._delete_missing_ok(client, row_id) for row_id in ids),
                return_exceptions=True,
            )
        deleted: List[int] = []
        failures: Dict[int, DashboardError] = {}
        for row_id, outcome in zip(ids, outcomes):
            if isinstance(outcome, DashboardError):
                failures[row_id] = outcome
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                deleted.append(row_id)
        logger.info("Bulk delete: %d deleted, %d failed", len(deleted), len(failures))
        if failures:
            raise BulkDeleteError(deleted, failures)


def _decode(response: httpx.Response, action: str, parse: Callable[[Any], T]) -> T:
    """Parse a 2xx body; undecodable or mis-shaped bodies become FetchError."""
    try:
        return parse(response.json())
    except ValueError as exc:
        logger.warning("Table API sent an invalid body while trying to %s: %s", action, exc)
        raise FetchError(
            f"Failed to {action}: invalid response body",
            status=response.status_code,
            reason="invalid response body",
        ) from exc


def _parse_page(payload: Any, fields: List[TableField]) -> RowPage:
    raw = _PagePayload.model_validate(payload)
    return RowPage(
        count=raw.count,
        next=raw.next,
        previous=raw.previous,
        results=[Row.from_api(item, fields) for item in raw.results],
    )
