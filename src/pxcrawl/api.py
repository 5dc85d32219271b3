"""Async client for the upstream ajax API."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError

from pxcrawl.config import ContestOrder, CrawlConfig
from pxcrawl.models import (
    ContestPage,
    ContestPageBody,
    DashboardPayload,
    DashboardWork,
    IdEntry,
    UgoiraMeta,
    WorkKind,
    WorkMetadata,
    WorkThumbnail,
)

logger = logging.getLogger(__name__)


class UpstreamApiError(RuntimeError):
    """Raised when the upstream API reports an error or returns bad data."""


def create_client(config: CrawlConfig) -> httpx.AsyncClient:
    """Create an HTTP client carrying the session cookie for the upstream origin."""

    cookies = httpx.Cookies()
    if config.session_cookie:
        # Only sent to the upstream host.
        cookies.set("PHPSESSID", config.session_cookie, domain=urlparse(config.base_url).hostname or "")
    return httpx.AsyncClient(
        base_url=config.base_url,
        cookies=cookies,
        headers={"User-Agent": config.user_agent, "Referer": f"{config.base_url}/"},
        timeout=config.timeout_seconds,
        follow_redirects=True,
    )


def _api_type(kind: WorkKind) -> str:
    return "illust" if kind == WorkKind.ILLUSTS else "novel"


class PixivApi:
    """Thin wrapper over the ajax endpoints used by the crawlers."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _get_body(self, path: str, params: Any = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamApiError(f"Request to {path} failed: {exc}") from exc

        if not isinstance(payload, dict):
            raise UpstreamApiError(f"{path}: expected a JSON object")
        if payload.get("error"):
            raise UpstreamApiError(f"{path}: {payload.get('message') or 'upstream error'}")
        return payload.get("body")

    async def get_contest_page(
        self,
        kind: WorkKind,
        name: str,
        page: int,
        order: ContestOrder,
    ) -> ContestPage:
        """Fetch one page of contest entries. Failures are reported in ``error``."""

        path = f"/ajax/contest/{name}/works"
        params = {"type": _api_type(kind), "p": page, "order": order.value}
        try:
            body = await self._get_body(path, params)
            return ContestPage(body=ContestPageBody.model_validate(body or {}))
        except (UpstreamApiError, ValidationError) as exc:
            return ContestPage(error=str(exc))

    async def get_work_metadata(self, entry: IdEntry) -> WorkMetadata:
        body = await self._get_body(f"/ajax/{_api_type(entry.kind)}/{entry.id}")
        try:
            return WorkMetadata.model_validate(body)
        except ValidationError as exc:
            raise UpstreamApiError(f"Unexpected metadata for {entry.id}: {exc}") from exc

    async def get_thumbnails(
        self,
        user_id: str,
        ids: list[str],
        kind: WorkKind,
    ) -> dict[str, WorkThumbnail]:
        """Fetch thumbnail views for works owned by one user, keyed by id."""

        if kind == WorkKind.ILLUSTS:
            path = f"/ajax/user/{user_id}/profile/illusts"
            params = [("ids[]", work_id) for work_id in ids]
            params += [("work_category", "illustManga"), ("is_first_page", "0")]
        else:
            path = f"/ajax/user/{user_id}/profile/novels"
            params = [("ids[]", work_id) for work_id in ids]

        body = await self._get_body(path, params)
        works = (body or {}).get("works") or {}
        try:
            return {work_id: WorkThumbnail.model_validate(raw) for work_id, raw in works.items()}
        except ValidationError as exc:
            raise UpstreamApiError(f"Unexpected thumbnails for user {user_id}: {exc}") from exc

    async def get_ugoira_meta(self, work_id: str) -> UgoiraMeta:
        body = await self._get_body(f"/ajax/illust/{work_id}/ugoira_meta")
        try:
            return UgoiraMeta.model_validate(body)
        except ValidationError as exc:
            raise UpstreamApiError(f"Unexpected ugoira metadata for {work_id}: {exc}") from exc

    async def get_dashboard_data(self, work_type: str) -> DashboardPayload:
        body = await self._get_body(f"/ajax/dashboard/works/{work_type}/request_strategy") or {}
        try:
            works = [DashboardWork.model_validate(raw) for raw in (body.get("data") or {}).get("works", [])]
            thumbnails = {
                key: [WorkThumbnail.model_validate(raw) for raw in values]
                for key, values in (body.get("thumbnails") or {}).items()
            }
        except ValidationError as exc:
            raise UpstreamApiError(f"Unexpected dashboard data for {work_type}: {exc}") from exc
        return DashboardPayload(works=works, thumbnails=thumbnails)
