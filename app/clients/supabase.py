from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from app.services.exceptions import DownstreamServiceError

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Async HTTP client for the hosted row database and object storage."""

    def __init__(
        self,
        base_url: str | None,
        *,
        api_key: str | None = None,
        timeout: float = 10.0,
        use_mock_data: bool = True,
    ) -> None:
        self._base_url = str(base_url).rstrip("/") if base_url else None
        self._timeout = timeout
        self.use_mock_data = use_mock_data or not self._base_url
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers.update({
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
            })
        self._client: Optional[httpx.AsyncClient] = None
        if not self.use_mock_data and self._base_url:
            self._client = self._build_client()

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self.use_mock_data or not self._base_url:
            raise RuntimeError("HTTP client requested while running in mock mode")
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = await self._ensure_client()
        try:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            logger.exception(
                "Backend returned error %s for %s %s",
                exc.response.status_code,
                method,
                path,
            )
            raise DownstreamServiceError(
                "Backend returned an error response",
                status_code=exc.response.status_code,
                cause=exc,
            ) from exc
        except httpx.RequestError as exc:
            logger.exception("Unable to reach backend: %s", exc)
            raise DownstreamServiceError(
                "Unable to reach backend", status_code=None, cause=exc
            ) from exc

    @staticmethod
    def _filters(filters: Mapping[str, Any] | None) -> Dict[str, str]:
        return {column: f"eq.{value}" for column, value in (filters or {}).items()}

    # rows

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Mapping[str, Any] | None = None,
    ) -> List[Dict[str, Any]]:
        params = {"select": columns, **self._filters(filters)}
        response = await self._request("GET", f"/rest/v1/{table}", params=params)
        return response.json()

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=rows,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    async def update(
        self,
        table: str,
        values: Dict[str, Any],
        filters: Mapping[str, Any],
    ) -> List[Dict[str, Any]]:
        response = await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=self._filters(filters),
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    async def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        await self._request("DELETE", f"/rest/v1/{table}", params=self._filters(filters))

    # storage

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        await self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{path}",
            content=content,
            headers={"Content-Type": content_type},
        )
        return {"path": path}

    async def move(self, bucket: str, source: str, destination: str) -> None:
        await self._request(
            "POST",
            "/storage/v1/object/move",
            json={"bucketId": bucket, "sourceKey": source, "destinationKey": destination},
        )

    async def remove(self, bucket: str, paths: List[str]) -> None:
        await self._request(
            "DELETE",
            f"/storage/v1/object/{bucket}",
            json={"prefixes": list(paths)},
        )

    async def simulate_latency(self) -> None:
        """Allow services to await for latency even when mocking responses."""

        await asyncio.sleep(0)
