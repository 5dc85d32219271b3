"""In-memory result store shared by discovery and normalization."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pxcrawl.models import IdEntry, Record

logger = logging.getLogger(__name__)


class ResultStore:
    """Ordered, append-only collection of accepted ids and records.

    Duplicate appends are ignored, so an id discovered on several pages is
    kept once, at the position where it was first seen.
    """

    def __init__(self) -> None:
        self._id_list: list[IdEntry] = []
        self._seen_ids: set[IdEntry] = set()
        self._records: list[Record] = []
        self._record_ids: set[IdEntry] = set()
        self._rankings: dict[str, int] = {}

    @property
    def id_list(self) -> Sequence[IdEntry]:
        return tuple(self._id_list)

    @property
    def records(self) -> Sequence[Record]:
        return tuple(self._records)

    def append_identifier(self, entry: IdEntry) -> bool:
        if entry in self._seen_ids:
            logger.debug("Ignoring duplicate id %s", entry.id)
            return False
        self._seen_ids.add(entry)
        self._id_list.append(entry)
        return True

    def append_record(self, record: Record) -> bool:
        key = IdEntry(kind=record.kind, id=record.id)
        if key in self._record_ids:
            logger.debug("Ignoring duplicate record %s", record.id)
            return False
        self._record_ids.add(key)
        self._records.append(record)
        return True

    def set_ranking(self, work_id: str, rank: int) -> None:
        self._rankings[work_id] = rank

    def lookup_ranking(self, work_id: str) -> int | None:
        return self._rankings.get(work_id)
