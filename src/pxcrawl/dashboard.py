"""Export of the analytics shown on the account's own works dashboard."""

from __future__ import annotations

import logging
from typing import Protocol

from pxcrawl.config import DashboardScope
from pxcrawl.guard import RunGuard
from pxcrawl.models import DashboardPayload, ExportRow, IllustType

logger = logging.getLogger(__name__)


class DashboardSource(Protocol):
    async def get_dashboard_data(self, work_type: str) -> DashboardPayload: ...


def scope_from_path(path: str) -> DashboardScope:
    """Pick the export scope from a dashboard URL path."""

    if "/works/illustrations" in path:
        return DashboardScope.ILLUST
    if "/works/manga" in path:
        return DashboardScope.MANGA
    if "/works/novels" in path:
        return DashboardScope.NOVEL
    return DashboardScope.ALL


def work_types_for(scope: DashboardScope) -> list[str]:
    """Return the dashboard API categories needed for a scope.

    Ugoira have no category of their own; they are listed with illustrations.
    """

    if scope == DashboardScope.ALL:
        return ["illust", "novel"]
    if scope == DashboardScope.NOVEL:
        return ["novel"]
    return ["illust"]


def _in_scope(row: ExportRow, scope: DashboardScope) -> bool:
    if scope == DashboardScope.ALL:
        return True
    if scope == DashboardScope.ILLUST:
        return row.illust_type in (IllustType.ILLUST, IllustType.UGOIRA)
    if scope == DashboardScope.MANGA:
        return row.illust_type == IllustType.MANGA
    return row.work_type == "novel"


def merge_dashboard(payload: DashboardPayload, work_type: str) -> list[ExportRow]:
    """Join dashboard works with their thumbnails; works without one are skipped."""

    thumbnails = {thumb.id: thumb for thumb in payload.thumbnails.get(work_type, [])}
    rows: list[ExportRow] = []
    for work in payload.works:
        thumb = thumbnails.get(work.work_id)
        if thumb is None:
            logger.debug("No thumbnail for dashboard work %s", work.work_id)
            continue

        rows.append(
            ExportRow(
                work_id=work.work_id,
                work_type=work.work_type,
                illust_type=thumb.illust_type,
                ai_type=thumb.ai_type,
                title=thumb.title,
                tags=thumb.tags,
                rating_count=work.rating_count,
                bookmark_count=work.bookmark_count,
                view_count=work.view_count,
                comment_count=work.comment_count,
                create_date=work.create_date.split(" ")[0],
                content_rating=work.content_rating,
                page_count=thumb.page_count,
                text_count=thumb.text_count,
                word_count=thumb.word_count,
                daily_ranking_best_rank=work.daily_ranking_best_rank,
                image_response_count=work.image_response_count,
                quoted_illust_count=work.quoted_illust_count,
            )
        )
    return rows


async def export_dashboard(
    source: DashboardSource,
    scope: DashboardScope,
    guard: RunGuard,
) -> list[ExportRow]:
    """Collect export rows for the works in ``scope``.

    Raises ConcurrentRunRejected if another run holds the guard.
    """

    with guard.claim("dashboard export"):
        rows: list[ExportRow] = []
        for work_type in work_types_for(scope):
            payload = await source.get_dashboard_data(work_type)
            rows.extend(merge_dashboard(payload, work_type))

        selected = [row for row in rows if _in_scope(row, scope)]

    if not selected:
        logger.warning("No dashboard data to export for scope %s", scope.value)
    else:
        logger.info("Exported %d dashboard row(s) for scope %s", len(selected), scope.value)
    return selected
