"""Bounded-retry download of binary resources (covers, auxiliary files)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import httpx

logger = logging.getLogger(__name__)

RETRY_MAX = 5


class DecodeMode(str, Enum):
    BYTES = "bytes"
    BLOB = "blob"


@dataclass(frozen=True)
class Blob:
    """Opaque handle for a downloaded resource, passed on to delivery."""

    content: bytes
    content_type: str | None
    source_url: str

    @property
    def size(self) -> int:
        return len(self.content)


class RetryingFetcher:
    """Fetch a resource, retrying up to ``retry_max`` times on any failure.

    A non-2xx status counts as a failure just like a transport error. When
    the retries are used up the failure is logged and ``None`` is returned;
    callers skip the resource and carry on. A malformed URL gives ``None``
    straight away. There is no delay between
    attempts: callers space out independent downloads themselves.
    """

    def __init__(self, client: httpx.AsyncClient, *, retry_max: int = RETRY_MAX) -> None:
        self._client = client
        self.retry_max = retry_max

    async def fetch(self, url: str, mode: DecodeMode, attempt: int = 0) -> bytes | Blob | None:
        while True:
            try:
                response = await self._client.get(url)
                response.raise_for_status()
            except httpx.InvalidURL as exc:
                logger.error("Cannot fetch malformed URL %s: %s", url, exc)
                return None
            except httpx.HTTPError as exc:
                attempt += 1
                logger.debug("Fetch attempt %d failed for %s: %s", attempt, url, exc)
                if attempt > self.retry_max:
                    logger.error("Giving up on %s after %d retries", url, self.retry_max)
                    return None
                continue

            if mode == DecodeMode.BLOB:
                return Blob(
                    content=response.content,
                    content_type=response.headers.get("content-type"),
                    source_url=url,
                )
            return response.content
