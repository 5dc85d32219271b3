"""Main crawl orchestration for pxcrawl."""

from __future__ import annotations

import logging
from typing import Protocol

from pxcrawl.api import UpstreamApiError
from pxcrawl.config import ContestOrder, ContestScope, CrawlConfig
from pxcrawl.discovery import PageDiscoveryLoop, UpstreamPageError, UpstreamPageSource
from pxcrawl.filters import FilterEngine, build_admission_attributes
from pxcrawl.guard import RunGuard
from pxcrawl.models import CollectionElement, CrawlReport, DiscoveryReport, IdEntry, Record, WorkKind, WorkMetadata, WorkThumbnail
from pxcrawl.normalizer import NormalizationError, WorkNormalizer, derive_work_tags
from pxcrawl.store import ResultStore

logger = logging.getLogger(__name__)


class WorkSource(UpstreamPageSource, Protocol):
    async def get_work_metadata(self, entry: IdEntry) -> WorkMetadata: ...

    async def get_thumbnails(self, user_id: str, ids: list[str], kind: WorkKind) -> dict[str, WorkThumbnail]: ...


async def save_work(
    entry: IdEntry,
    *,
    source: WorkSource,
    normalizer: WorkNormalizer,
    filter_engine: FilterEngine,
    store: ResultStore,
) -> Record | None:
    """Fetch, filter and normalize one accepted id.

    Returns None when the work has no thumbnail view or the filter rejects it.
    """

    metadata = await source.get_work_metadata(entry)
    thumbnails = await source.get_thumbnails(metadata.user_id, [entry.id], entry.kind)
    thumbnail = thumbnails.get(entry.id)
    if thumbnail is None:
        logger.info("No thumbnail view for %s, skipping", entry.id)
        return None

    tag_set, ai_type = derive_work_tags(metadata, thumbnail, normalizer.config)
    attributes = build_admission_attributes(metadata, tag_set.with_transl, ai_type)
    if not await filter_engine.check(attributes):
        return None

    record = await normalizer.normalize(metadata, thumbnail)
    store.append_record(record)
    return record


async def _save_all(
    report: CrawlReport,
    *,
    source: WorkSource,
    normalizer: WorkNormalizer,
    filter_engine: FilterEngine,
    store: ResultStore,
    continue_on_error: bool,
) -> None:
    entries = list(store.id_list)
    report.total = len(entries)
    for entry in entries:
        try:
            record = await save_work(
                entry,
                source=source,
                normalizer=normalizer,
                filter_engine=filter_engine,
                store=store,
            )
        except (NormalizationError, UpstreamApiError) as exc:
            message = f"{entry.id}: {exc}" if isinstance(exc, UpstreamApiError) else str(exc)
            logger.error("Could not save work %s", message)
            missing_url = isinstance(exc, NormalizationError) and exc.missing_url
            if continue_on_error or missing_url:
                report.failed += 1
                report.failures.append(message)
                continue
            raise RuntimeError(message) from exc

        if record is None:
            report.rejected += 1
        else:
            report.succeeded += 1


async def crawl_contest(
    *,
    source: WorkSource,
    normalizer: WorkNormalizer,
    filter_engine: FilterEngine,
    store: ResultStore,
    guard: RunGuard,
    config: CrawlConfig,
    kind: WorkKind,
    name: str,
    scope: ContestScope = ContestScope.APPLICATIONS,
    order: ContestOrder = ContestOrder.NEWEST,
    winner_elements: list[CollectionElement] | None = None,
) -> CrawlReport:
    """Discover the works of a contest and store a record for each admitted one.

    Winning works are read from ``winner_elements`` (scraped from the rendered
    contest page) instead of the paginated listing.
    """

    if scope == ContestScope.WINNING and winner_elements is None:
        raise ValueError("winner_elements are required to crawl winning works")

    with guard.claim(f"contest {name}"):
        loop = PageDiscoveryLoop(source, filter_engine, store, page_budget=config.page_budget)
        failures: list[str] = []
        known = len(store.id_list)
        if scope == ContestScope.APPLICATIONS:
            try:
                discovery = await loop.discover(kind, name, order)
            except UpstreamPageError as exc:
                discovery = DiscoveryReport(kind=kind, pages=exc.pages_processed, accepted=len(store.id_list) - known)
                failures.append(str(exc))
        else:
            discovery = await loop.scan_collection(kind, winner_elements or [])

        report = CrawlReport(discovery=discovery, failed=len(failures), failures=failures)
        await _save_all(
            report,
            source=source,
            normalizer=normalizer,
            filter_engine=filter_engine,
            store=store,
            continue_on_error=config.continue_on_error,
        )

    logger.info(
        "Processed %d work(s): %d saved, %d rejected, %d failed",
        report.total,
        report.succeeded,
        report.rejected,
        report.failed,
    )
    return report
