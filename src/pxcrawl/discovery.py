"""Discovery of work ids from paginated contest listings and rendered pages."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Protocol

from pxcrawl.config import UNLIMITED_PAGES, ContestOrder
from pxcrawl.filters import FilterEngine
from pxcrawl.input import parse_novel_id
from pxcrawl.models import AdmissionAttributes, CollectionElement, ContestPage, DiscoveryReport, IdEntry, WorkKind
from pxcrawl.store import ResultStore

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

_CANDIDATE_ID_RES = {
    WorkKind.ILLUSTS: re.compile(r'id="illust:(\d+)"'),
    WorkKind.NOVELS: re.compile(r'id="novel:(\d+)"'),
}

_WINNER_SELECTORS = {
    WorkKind.ILLUSTS: ".winner .thumbnail-container a",
    WorkKind.NOVELS: ".winner a.novel-title",
}


class UpstreamPageSource(Protocol):
    async def get_contest_page(
        self,
        kind: WorkKind,
        name: str,
        page: int,
        order: ContestOrder,
    ) -> ContestPage: ...


class UpstreamPageError(RuntimeError):
    """Raised when the upstream source reports an error for a listing page.

    Ids accepted from earlier pages stay in the store.
    """

    def __init__(self, page: int, message: str, pages_processed: int) -> None:
        super().__init__(f"Upstream error on page {page}: {message}")
        self.page = page
        self.pages_processed = pages_processed


def extract_candidate_ids(kind: WorkKind, markup: str) -> Iterator[str]:
    """Yield the work ids embedded in listing markup, in page order."""

    for match in _CANDIDATE_ID_RES[kind].finditer(markup):
        yield match.group(1)


def element_work_id(kind: WorkKind, element: CollectionElement) -> str | None:
    if kind == WorkKind.ILLUSTS:
        return element.work_id or None
    if element.href:
        return parse_novel_id(element.href)
    return None


async def collect_winner_elements(page: "Page", kind: WorkKind) -> list[CollectionElement]:
    """Read the winner links from an already-rendered contest page."""

    raw = await page.locator(_WINNER_SELECTORS[kind]).evaluate_all(
        "els => els.map(el => ({work_id: el.dataset.workId || null, href: el.href || null}))"
    )
    return [CollectionElement.model_validate(item) for item in raw]


class PageDiscoveryLoop:
    """Walk a paginated listing and admit candidate ids into the store.

    Candidates are checked one by one, in page order, because filters may
    keep state between calls.
    """

    def __init__(
        self,
        source: UpstreamPageSource,
        filter_engine: FilterEngine,
        store: ResultStore,
        *,
        page_budget: int = UNLIMITED_PAGES,
    ) -> None:
        self._source = source
        self._filter = filter_engine
        self._store = store
        self.page_budget = page_budget

    async def _admit_all(self, kind: WorkKind, work_ids: Iterable[str]) -> int:
        accepted = 0
        for work_id in work_ids:
            if not await self._filter.check(AdmissionAttributes(id=work_id, kind=kind)):
                continue
            if self._store.append_identifier(IdEntry(kind=kind, id=work_id)):
                accepted += 1
        return accepted

    def _budget_exhausted(self, next_page: int) -> bool:
        return self.page_budget != UNLIMITED_PAGES and next_page > self.page_budget

    async def discover(self, kind: WorkKind, collection: str, order: ContestOrder) -> DiscoveryReport:
        """Collect ids from every page until the budget or the listing runs out."""

        if self.page_budget == UNLIMITED_PAGES:
            logger.info("Crawling all pages of %s", collection)
        else:
            logger.info("Crawling up to %d page(s) of %s", self.page_budget, collection)

        report = DiscoveryReport(kind=kind)
        page = 1
        while True:
            result = await self._source.get_contest_page(kind, collection, page, order)
            if result.error:
                logger.error("Upstream error on page %d of %s: %s", page, collection, result.error)
                raise UpstreamPageError(page, result.error, report.pages)

            report.accepted += await self._admit_all(kind, extract_candidate_ids(kind, result.body.html))
            report.pages += 1
            logger.info("Crawled page %d of %s", page, collection)

            page += 1
            if self._budget_exhausted(page) or result.body.next_url is None:
                break

        logger.info("Discovered %d work(s) in %d page(s)", report.accepted, report.pages)
        return report

    async def scan_collection(self, kind: WorkKind, elements: list[CollectionElement]) -> DiscoveryReport:
        """Admit ids from a collection that is rendered in full on one page."""

        report = DiscoveryReport(kind=kind)
        if not elements:
            logger.warning("No works found in the collection; it may not be published yet")
            report.empty = True
            return report

        work_ids = [work_id for work_id in (element_work_id(kind, el) for el in elements) if work_id]
        report.accepted = await self._admit_all(kind, work_ids)
        logger.info("Discovered %d work(s) from %d element(s)", report.accepted, len(elements))
        return report
