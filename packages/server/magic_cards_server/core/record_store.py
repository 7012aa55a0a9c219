"""
Async client for the remote record store (Airtable-compatible REST API).

Handles:
- Bearer-token auth against ``{base_url}/{base_id}/{table}``
- List with ``filterByFormula`` / ``sort`` and offset pagination
- Get / create / update / delete of single records

No retries: every failure surfaces to the caller as ``RecordStoreError``.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from .metrics import MetricsCollector

log = structlog.get_logger()


class RecordStoreError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class RecordNotFound(RecordStoreError):
    pass


class RecordStoreClient:
    """
    Thin async wrapper over the record store's REST endpoints.

    Records are plain dicts shaped ``{"id", "createdTime", "fields"}``.
    """

    def __init__(
        self,
        base_url: str,
        base_id: str,
        api_key: str,
        request_timeout: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._base_id = base_id
        self._api_key = api_key
        self._request_timeout = request_timeout
        self._transport = transport
        self._metrics = metrics
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._request_timeout),
            headers={"Authorization": f"Bearer {self._api_key}"},
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RecordStoreClient":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _url(self, table: str, record_id: str | None = None) -> str:
        url = f"{self._base_url}/{self._base_id}/{quote(table, safe='')}"
        if record_id:
            url = f"{url}/{quote(record_id, safe='')}"
        return url

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict:
        assert self._client, "RecordStoreClient.open() has not been called"
        if self._metrics:
            self._metrics.inc("record_store_requests_total")
        try:
            resp = await self._client.request(method, url, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if self._metrics:
                self._metrics.inc("record_store_errors_total")
            log.error("record_store.http_error", method=method, url=url, status=status)
            if status == 404:
                raise RecordNotFound("Record not found", status_code=404) from exc
            raise RecordStoreError(
                f"Record store returned {status}", status_code=status
            ) from exc
        except httpx.TimeoutException as exc:
            if self._metrics:
                self._metrics.inc("record_store_errors_total")
            log.error("record_store.timeout", method=method, url=url)
            raise RecordStoreError("Record store request timed out") from exc
        except httpx.TransportError as exc:
            if self._metrics:
                self._metrics.inc("record_store_errors_total")
            log.error("record_store.unreachable", method=method, url=url, error=str(exc))
            raise RecordStoreError("Record store unreachable") from exc
        try:
            body = resp.json()
        except ValueError as exc:
            if self._metrics:
                self._metrics.inc("record_store_errors_total")
            log.error("record_store.invalid_body", method=method, url=url)
            raise RecordStoreError("Record store returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise RecordStoreError("Record store returned an unexpected body")
        return body

    async def list_records(
        self,
        table: str,
        formula: str | None = None,
        sort: list[tuple[str, str]] | None = None,
    ) -> list[dict]:
        """Fetch every record matching ``formula``, following offset pages."""
        params: dict[str, str] = {}
        if formula:
            params["filterByFormula"] = formula
        for i, (field, direction) in enumerate(sort or []):
            params[f"sort[{i}][field]"] = field
            params[f"sort[{i}][direction]"] = direction

        records: list[dict] = []
        while True:
            body = await self._request("GET", self._url(table), params=params)
            records.extend(body.get("records", []))
            offset = body.get("offset")
            if not offset:
                return records
            params = {**params, "offset": offset}

    async def get_record(self, table: str, record_id: str) -> dict:
        return await self._request("GET", self._url(table, record_id))

    async def create_record(self, table: str, fields: dict[str, Any]) -> dict:
        return await self._request(
            "POST", self._url(table), json={"fields": fields, "typecast": True}
        )

    async def update_record(self, table: str, record_id: str, fields: dict[str, Any]) -> dict:
        return await self._request(
            "PATCH", self._url(table, record_id), json={"fields": fields, "typecast": True}
        )

    async def delete_record(self, table: str, record_id: str) -> None:
        await self._request("DELETE", self._url(table, record_id))
