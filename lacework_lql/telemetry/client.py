"""HTTP collaborator for the Lacework platform API (v2).

Implements both QueryExecutor and DataSourceLister:
- POST /api/v2/Queries/execute runs an LQL query over a time range
- GET  /api/v2/Datasources lists the queryable data sources

Credentials are taken as given (bearer token from Settings). When URL or
token are missing the client is disabled: listing returns [] and execution
raises NotConfiguredError. Failures are reported, never retried.
"""

import logging
import time
from datetime import datetime
from typing import Any, Optional

import httpx

from lacework_lql.clock import to_iso
from lacework_lql.telemetry.errors import NotConfiguredError, QueryExecutionError
from lacework_lql.telemetry.schemas import QueryMetadata, QueryResult

logger = logging.getLogger(__name__)


class LaceworkClient:
    """Executes LQL and lists data sources over the platform REST API."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: float = 60.0,
        max_results: int = 1000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/") if api_url else None
        self.max_results = max_results
        self.enabled = bool(api_url and api_token)

        if self.enabled:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                headers={
                    "Authorization": f"Bearer {api_token}",
                    "Content-Type": "application/json",
                },
                timeout=timeout,
                transport=transport,
            )
            logger.info(f"Lacework API client enabled for {self.api_url}")
        else:
            self._client = None
            if not api_url:
                logger.warning("LACEWORK_API_URL not set - queries cannot be executed")
            if not api_token:
                logger.warning("LACEWORK_API_TOKEN not set - queries cannot be executed")

    async def execute(
        self,
        query: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> QueryResult:
        """Run a query and return at most max_results rows.

        Raises:
            NotConfiguredError: client has no URL/token
            QueryExecutionError: transport failure or non-2xx response
        """
        if not self.enabled:
            raise NotConfiguredError(
                "Lacework API not configured. Set LACEWORK_API_URL and "
                "LACEWORK_API_TOKEN first.",
                query=query,
            )

        arguments = []
        if start_time is not None:
            arguments.append({"name": "StartTimeRange", "value": to_iso(start_time)})
        if end_time is not None:
            arguments.append({"name": "EndTimeRange", "value": to_iso(end_time)})

        started = time.time()
        try:
            response = await self._client.post(
                "/api/v2/Queries/execute",
                json={"query": {"queryText": query}, "arguments": arguments},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:500]
            raise QueryExecutionError(
                f"Query execution failed ({e.response.status_code}): {detail}",
                query=query,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise QueryExecutionError(
                f"Query execution failed: {e}", query=query
            ) from e

        rows = self._rows_from_payload(payload)
        if len(rows) > self.max_results:
            logger.debug(f"Truncating {len(rows)} rows to {self.max_results}")
            rows = rows[: self.max_results]

        elapsed = int((time.time() - started) * 1000)
        return QueryResult(
            data=rows,
            metadata=QueryMetadata(
                execution_time_ms=elapsed,
                row_count=len(rows),
                query=query,
            ),
        )

    async def list_data_source_names(self) -> list[str]:
        """List data source names; returns [] when unavailable."""
        if not self.enabled:
            return []

        try:
            response = await self._client.get("/api/v2/Datasources")
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to list data sources: {e}")
            return []

        entries = payload.get("data", []) if isinstance(payload, dict) else payload
        names = []
        for entry in entries or []:
            name = entry.get("name") if isinstance(entry, dict) else entry
            if isinstance(name, str) and name:
                names.append(name)
        return names

    @staticmethod
    def _rows_from_payload(payload: Any) -> list[dict[str, Any]]:
        data = payload.get("data", []) if isinstance(payload, dict) else payload
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            return []
        return [row if isinstance(row, dict) else {"value": row} for row in data]

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
