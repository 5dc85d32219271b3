"""Normalization of upstream work views into canonical records."""

from __future__ import annotations

import html
import logging
import re
from pathlib import PurePosixPath
from typing import Protocol
from urllib.parse import urlparse

from dateutil.parser import isoparse

from pxcrawl.api import UpstreamApiError
from pxcrawl.config import CrawlConfig, ImageSize
from pxcrawl.models import (
    AIType,
    IllustType,
    ImagePayload,
    NovelPayload,
    Record,
    TagSet,
    UgoiraInfo,
    UgoiraMeta,
    WorkKind,
    WorkMetadata,
    WorkThumbnail,
)
from pxcrawl.store import ResultStore

logger = logging.getLogger(__name__)

_PAGE_INDEX_RE = re.compile(r"_p\d+(?=[_.])")

AI_INDICATOR_TAGS = frozenset(
    {
        "ai",
        "ai生成",
        "aiイラスト",
        "ai绘画",
        "ai-generated",
        "ai generated",
        "aiart",
        "ai art",
        "aigc",
        "novelai",
        "novelaidiffusion",
        "stablediffusion",
        "stable diffusion",
        "midjourney",
        "nijijourney",
        "dall-e",
    }
)


class NormalizationError(RuntimeError):
    """Raised when a record cannot be built for a work."""

    def __init__(self, work_id: str, message: str, *, missing_url: bool = False) -> None:
        super().__init__(f"{work_id}: {message}")
        self.work_id = work_id
        self.missing_url = missing_url


class AnimationMetaSource(Protocol):
    async def get_ugoira_meta(self, work_id: str) -> UgoiraMeta: ...


def url_suffix(url: str) -> str:
    return PurePosixPath(urlparse(url).path).suffix.lstrip(".")


def convert_thumb_url(url: str, index: int) -> str:
    """Point a thumbnail URL at the given page of a multi-page work."""

    return _PAGE_INDEX_RE.sub(f"_p{index}", url, count=1)


def extract_tags(metadata: WorkMetadata, language: str) -> TagSet:
    tag_set = TagSet()
    for item in metadata.tags.tags:
        translated = (item.translation or {}).get(language)
        tag_set.tags.append(item.tag)
        tag_set.with_transl.append(item.tag)
        if translated and translated != item.tag:
            tag_set.with_transl.append(translated)
        tag_set.transl_only.append(translated or item.tag)
    return tag_set


def has_ai_tag(tags: list[str]) -> bool:
    return any(tag.strip().lower() in AI_INDICATOR_TAGS for tag in tags)


def _prepend(markers: list[str], tags: list[str]) -> list[str]:
    return markers + [tag for tag in tags if tag not in markers]


def derive_tags(tag_set: TagSet, *, is_original: bool, ai_type: AIType, config: CrawlConfig) -> tuple[TagSet, AIType]:
    """Add the synthetic markers to freshly extracted tags.

    Markers go in front, original mark first, then the AI mark. Must only
    be given tags straight from ``extract_tags``.
    """

    if ai_type != AIType.YES and has_ai_tag(tag_set.with_transl):
        ai_type = AIType.YES

    markers: list[str] = []
    if is_original:
        markers.append(config.original_mark)
    if ai_type == AIType.YES:
        markers.append(config.ai_mark)

    derived = TagSet(
        tags=_prepend(markers, tag_set.tags),
        with_transl=_prepend(markers, tag_set.with_transl),
        transl_only=_prepend(markers, tag_set.transl_only),
    )
    return derived, ai_type


def derive_work_tags(metadata: WorkMetadata, thumbnail: WorkThumbnail | None, config: CrawlConfig) -> tuple[TagSet, AIType]:
    ai_type = metadata.ai_type
    if ai_type == AIType.UNKNOWN and thumbnail is not None:
        ai_type = thumbnail.ai_type
    return derive_tags(
        extract_tags(metadata, config.tag_language),
        is_original=metadata.is_original,
        ai_type=ai_type,
        config=config,
    )


class WorkNormalizer:
    """Build one Record from the metadata and thumbnail views of a work.

    Ugoira works need an extra metadata request for frame delays; any failure
    is raised as NormalizationError and nothing is stored for that work.
    """

    def __init__(self, config: CrawlConfig, store: ResultStore, animation_source: AnimationMetaSource) -> None:
        self.config = config
        self._store = store
        self._animation_source = animation_source

    async def normalize(self, metadata: WorkMetadata, thumbnail: WorkThumbnail) -> Record:
        work_id = metadata.id
        if thumbnail.id != work_id:
            raise NormalizationError(work_id, f"thumbnail belongs to work {thumbnail.id}")

        try:
            id_num = int(work_id)
            date = isoparse(metadata.create_date)
            upload_date = isoparse(metadata.upload_date) if metadata.upload_date else None
        except ValueError as exc:
            raise NormalizationError(work_id, f"invalid field: {exc}") from exc

        tag_set, ai_type = derive_work_tags(metadata, thumbnail, self.config)

        if metadata.kind == WorkKind.ILLUSTS:
            payload = await self._image_payload(metadata, thumbnail)
        else:
            payload = NovelPayload(
                cover_url=metadata.cover_url or thumbnail.url,
                text_count=metadata.text_count if metadata.text_count is not None else thumbnail.text_count,
                word_count=metadata.word_count if metadata.word_count is not None else thumbnail.word_count,
            )

        series = metadata.series_nav_data
        return Record(
            kind=metadata.kind,
            id=work_id,
            id_num=id_num,
            ai_type=ai_type,
            title=metadata.title,
            description=html.unescape(metadata.description),
            tags=tag_set.tags,
            tags_with_transl=tag_set.with_transl,
            tags_transl_only=tag_set.transl_only,
            user_id=metadata.user_id,
            user=metadata.user_name,
            date=date,
            upload_date=upload_date,
            x_restrict=metadata.x_restrict,
            bmk=metadata.bookmark_count,
            bookmarked=metadata.bookmark_data is not None,
            bmk_id=metadata.bookmark_data.id if metadata.bookmark_data else "",
            view_count=metadata.view_count,
            like_count=metadata.like_count,
            comment_count=metadata.comment_count,
            rank=self._store.lookup_ranking(work_id),
            series_title=series.title if series else "",
            series_order=series.order if series else None,
            series_id=str(series.series_id) if series else None,
            sl=metadata.sl,
            payload=payload,
        )

    async def _image_payload(self, metadata: WorkMetadata, thumbnail: WorkThumbnail) -> ImagePayload:
        work_id = metadata.id
        thumb = thumbnail.url or metadata.urls.thumb
        thumb_only = self.config.image_size == ImageSize.THUMB
        if thumb_only and not thumb:
            raise NormalizationError(work_id, "thumbnail URL is missing", missing_url=True)

        if metadata.illust_type == IllustType.UGOIRA:
            try:
                meta = await self._animation_source.get_ugoira_meta(work_id)
            except UpstreamApiError as exc:
                raise NormalizationError(work_id, f"ugoira metadata unavailable: {exc}") from exc

            # Thumbnails can't be converted to an animation, keep their own suffix.
            ext = url_suffix(thumb) if thumb_only else self.config.ugoira_save_as.value
            return ImagePayload(
                type=IllustType.UGOIRA,
                page_count=metadata.page_count,
                original=meta.original_src,
                regular=meta.src,
                small=meta.src,
                thumb=thumb,
                full_width=metadata.width,
                full_height=metadata.height,
                ext=ext,
                ugoira_info=UgoiraInfo(frames=meta.frames, mime_type=meta.mime_type),
            )

        original = metadata.urls.original
        if original is None:
            raise NormalizationError(work_id, "original image URL is null", missing_url=True)

        if thumb and metadata.page_count > 1:
            thumb = convert_thumb_url(thumb, 0)

        return ImagePayload(
            type=metadata.illust_type,
            page_count=metadata.page_count,
            original=original,
            regular=metadata.urls.regular,
            small=metadata.urls.small,
            thumb=thumb,
            full_width=metadata.width,
            full_height=metadata.height,
            ext=url_suffix(thumb) if thumb_only else url_suffix(original),
        )
