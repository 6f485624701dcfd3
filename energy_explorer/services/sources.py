"""
Fetcher for the upstream measurement dumps.

Each dump is a JSON document ``{"data": [raw record, ...]}``. All dumps are
fetched concurrently; any unreachable or malformed dump fails the whole
fetch. Numbers are parsed as Decimal so readings keep their exact text.

CHANGELOG:
- 2026-10-04: Initial creation (STORY-004)
- 2026-10-20: Map every httpx failure to UpstreamFetchError (STORY-012)
"""

import asyncio
import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Any

import httpx

from energy_explorer.errors import UpstreamFetchError

logger = logging.getLogger(__name__)


class DumpFetcher:
    """Downloads and unwraps the configured measurement dumps.

    Args:
        urls: Dump URLs, fetched once each.
        timeout_s: Per-request timeout in seconds.
        transport: Optional httpx transport (used by tests).

    Raises:
        ValueError: If *urls* is empty.
    """

    def __init__(
        self,
        urls: Sequence[str],
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not urls:
            raise ValueError("At least one dump URL is required")
        self._urls = list(urls)
        self._timeout_s = timeout_s
        self._transport = transport

    async def fetch_records(self) -> list[Any]:
        """Fetch every dump and concatenate their ``data`` arrays.

        Returns:
            Raw records in dump order, unvalidated.

        Raises:
            UpstreamFetchError: For the first dump that failed.
        """
        async with httpx.AsyncClient(
            timeout=self._timeout_s, transport=self._transport,
        ) as client:
            results = await asyncio.gather(
                *(self._fetch_dump(client, url) for url in self._urls),
                return_exceptions=True,
            )

        records: list[Any] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            records.extend(result)
        return records

    async def _fetch_dump(self, client: httpx.AsyncClient, url: str) -> list[Any]:
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Fetching dump %s failed: %s", url, exc)
            raise UpstreamFetchError(url, str(exc)) from exc

        try:
            body = response.json(parse_float=Decimal)
        except ValueError as exc:
            raise UpstreamFetchError(url, "response is not valid JSON") from exc

        if not isinstance(body, dict) or not isinstance(body.get("data"), list):
            raise UpstreamFetchError(url, "expected a JSON object with a 'data' array")

        logger.info("Fetched %d records from %s", len(body["data"]), url)
        return body["data"]
