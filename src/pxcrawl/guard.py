"""Mutual exclusion for crawl and export runs."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class ConcurrentRunRejected(RuntimeError):
    """Raised when a run is requested while another one is in flight."""


class RunGuard:
    """Single-slot token owned by the caller that starts runs.

    Runs are rejected up front, never queued.
    """

    def __init__(self) -> None:
        self._current: str | None = None

    @property
    def busy(self) -> bool:
        return self._current is not None

    @contextmanager
    def claim(self, name: str) -> Iterator[None]:
        if self._current is not None:
            logger.warning("Rejected %s: %s is still running", name, self._current)
            raise ConcurrentRunRejected(f"Cannot start {name}: {self._current} is still running")
        self._current = name
        try:
            yield
        finally:
            self._current = None
