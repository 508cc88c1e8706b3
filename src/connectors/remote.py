"""PostgREST (Supabase REST) connector for the bets/profiles tables."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.config import settings
from src.store.models import ALL

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    """Remote call failed: transport error or non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class OfflineError(RemoteError):
    """Remote is configured but currently marked offline."""


def _eq_params(filters: dict[str, Any] | None) -> dict[str, str]:
    """Equality filters as PostgREST query params; None / "all" are skipped."""
    params: dict[str, str] = {}
    for field, value in (filters or {}).items():
        if value is None or value == ALL:
            continue
        params[field] = f"eq.{value}"
    return params


def _error_message(resp: httpx.Response, table: str) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "hint"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {resp.status_code} from {table}"


def _first(data: Any) -> dict[str, Any] | None:
    if isinstance(data, list):
        return data[0] if data else None
    return data


class RemoteClient:
    """Thin async wrapper over the REST endpoint of a single project.

    Every request carries the api-key / bearer header pair and asks for the
    mutated row back (Prefer: return=representation).
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        base = (base_url or settings.remote_url).rstrip("/")
        key = api_key or settings.remote_api_key
        self.base_url = base + settings.remote_rest_path
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            },
            timeout=timeout or settings.remote_timeout_sec,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> Any:
        try:
            resp = await self._client.request(method, f"/{table}", params=params, json=json)
        except httpx.HTTPError as e:
            logger.warning("%s /%s failed: %s", method, table, e)
            raise RemoteError(f"{type(e).__name__}: {e}") from e

        if resp.is_error:
            message = _error_message(resp, table)
            logger.warning("%s /%s -> %d: %s", method, table, resp.status_code, message)
            raise RemoteError(message, status_code=resp.status_code)

        # 空ボディは正常 (None 扱い)
        if not resp.content or not resp.content.strip():
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteError(f"Invalid JSON from {table}", status_code=resp.status_code) from e

    async def list(self, table: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Filtered list, newest first by created_at."""
        params = {"select": "*", **_eq_params(filters), "order": "created_at.desc"}
        data = await self._request("GET", table, params=params)
        if data is None:
            return []
        return data if isinstance(data, list) else [data]

    async def get_by_id(self, table: str, record_id: int) -> dict[str, Any] | None:
        data = await self._request(
            "GET", table, params={"select": "*", "id": f"eq.{record_id}"}
        )
        return _first(data)

    async def create(self, table: str, record: dict[str, Any]) -> dict[str, Any] | None:
        data = await self._request("POST", table, json=record)
        return _first(data)

    async def update(
        self, table: str, record_id: int, partial: dict[str, Any]
    ) -> dict[str, Any] | None:
        data = await self._request(
            "PATCH", table, params={"id": f"eq.{record_id}"}, json=partial
        )
        return _first(data)

    async def delete(self, table: str, record_id: int) -> None:
        await self._request("DELETE", table, params={"id": f"eq.{record_id}"})

    async def delete_where(self, table: str, filters: dict[str, Any]) -> None:
        params = _eq_params(filters)
        if not params:
            # PostgREST は条件なし DELETE を拒否する。ここでも全削除は許可しない
            raise ValueError("delete_where requires at least one filter")
        await self._request("DELETE", table, params=params)

    async def ping(self) -> bool:
        """Connectivity probe: True when the REST root answers at all."""
        try:
            resp = await self._client.get("/")
        except httpx.HTTPError as e:
            logger.info("Remote ping failed: %s", e)
            return False
        return resp.status_code < 500
