"""Domain models used by pxcrawl."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class WorkKind(str, Enum):
    ILLUSTS = "illusts"
    NOVELS = "novels"


class IllustType(int, Enum):
    ILLUST = 0
    MANGA = 1
    UGOIRA = 2


class AIType(int, Enum):
    UNKNOWN = 0
    NO = 1
    YES = 2


class XRestrict(int, Enum):
    GENERAL = 0
    R18 = 1
    R18G = 2


class ContentRating(int, Enum):
    UNRATED = 0
    GENERAL = 1
    RESTRICTED = 2


class _Upstream(BaseModel):
    """Base for payloads decoded from upstream JSON (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# Discovery


class IdEntry(BaseModel):
    """A discovered work identifier, tagged with its kind."""

    model_config = ConfigDict(frozen=True)

    kind: WorkKind
    id: str


class BookmarkData(_Upstream):
    id: str
    private: bool = False


class AdmissionAttributes(BaseModel):
    """Everything a filter may look at before a work is admitted.

    Only ``id`` is guaranteed. For multi-page works ``width``, ``height`` and
    ``mini`` stay empty because the first page does not describe the rest.
    """

    id: str
    kind: WorkKind | None = None
    ai_type: AIType | None = None
    create_date: datetime | None = None
    tags: list[str] | None = None
    page_count: int | None = None
    bookmark_count: int | None = None
    bookmark_data: BookmarkData | None = None
    width: int = 0
    height: int = 0
    mini: str | None = None
    user_id: str | None = None
    x_restrict: XRestrict | None = None


class ContestPageBody(BaseModel):
    html: str = ""
    next_url: str | None = None


class ContestPage(BaseModel):
    """One page of contest entries as returned by the upstream source."""

    body: ContestPageBody = Field(default_factory=ContestPageBody)
    error: str | None = None


class CollectionElement(BaseModel):
    """An element of an already-rendered collection (e.g. a winner link)."""

    work_id: str | None = None
    href: str | None = None


# Upstream work views


class WorkTag(_Upstream):
    tag: str
    translation: dict[str, str] | None = None


class WorkTags(_Upstream):
    tags: list[WorkTag] = Field(default_factory=list)


class WorkUrls(_Upstream):
    mini: str | None = None
    thumb: str | None = None
    small: str | None = None
    regular: str | None = None
    original: str | None = None


class SeriesNavData(_Upstream):
    series_id: str | int
    title: str = ""
    order: int | None = None


class WorkMetadata(_Upstream):
    """Detail view of one work (illustration, manga, ugoira or novel)."""

    id: str
    title: str
    description: str = ""
    illust_type: IllustType | None = None
    create_date: str
    upload_date: str | None = None
    user_id: str
    user_name: str
    page_count: int = 1
    width: int = 0
    height: int = 0
    urls: WorkUrls = Field(default_factory=WorkUrls)
    tags: WorkTags = Field(default_factory=WorkTags)
    is_original: bool = False
    ai_type: AIType = AIType.UNKNOWN
    x_restrict: XRestrict = XRestrict.GENERAL
    bookmark_count: int = 0
    bookmark_data: BookmarkData | None = None
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    series_nav_data: SeriesNavData | None = None
    sl: int | None = None
    cover_url: str | None = None
    text_count: int | None = None
    word_count: int | None = None

    @property
    def kind(self) -> WorkKind:
        return WorkKind.NOVELS if self.illust_type is None else WorkKind.ILLUSTS


class WorkThumbnail(_Upstream):
    """Thumbnail view of one work, as listed on profile and dashboard pages."""

    id: str
    title: str = ""
    illust_type: IllustType | None = None
    url: str | None = None
    tags: list[str] = Field(default_factory=list)
    ai_type: AIType = AIType.UNKNOWN
    page_count: int | None = None
    text_count: int | None = None
    word_count: int | None = None


class UgoiraFrame(BaseModel):
    file: str
    delay: int


class UgoiraMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    src: str
    original_src: str = Field(alias="originalSrc")
    mime_type: str
    frames: list[UgoiraFrame]


# Canonical record


class TagSet(BaseModel):
    """The three tag projections stored on every record."""

    tags: list[str] = Field(default_factory=list)
    with_transl: list[str] = Field(default_factory=list)
    transl_only: list[str] = Field(default_factory=list)


class UgoiraInfo(BaseModel):
    frames: list[UgoiraFrame]
    mime_type: str


class ImagePayload(BaseModel):
    kind: Literal[WorkKind.ILLUSTS] = WorkKind.ILLUSTS
    type: IllustType
    page_count: int
    original: str
    regular: str | None = None
    small: str | None = None
    thumb: str | None = None
    full_width: int = 0
    full_height: int = 0
    ext: str
    ugoira_info: UgoiraInfo | None = None

    @model_validator(mode="after")
    def validate_ugoira_info(self) -> "ImagePayload":
        if (self.type == IllustType.UGOIRA) != (self.ugoira_info is not None):
            raise ValueError("ugoira_info is required for ugoira works and only for them")
        return self


class NovelPayload(BaseModel):
    kind: Literal[WorkKind.NOVELS] = WorkKind.NOVELS
    cover_url: str | None = None
    text_count: int | None = None
    word_count: int | None = None


WorkPayload = Annotated[Union[ImagePayload, NovelPayload], Field(discriminator="kind")]


class Record(BaseModel):
    """Normalized work data, ready to be persisted or downloaded."""

    kind: WorkKind
    id: str
    id_num: int
    ai_type: AIType
    title: str
    description: str = ""
    tags: list[str]
    tags_with_transl: list[str]
    tags_transl_only: list[str]
    user_id: str
    user: str
    date: datetime
    upload_date: datetime | None = None
    x_restrict: XRestrict
    bmk: int
    bookmarked: bool
    bmk_id: str = ""
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    rank: int | None = None
    series_title: str = ""
    series_order: int | None = None
    series_id: str | None = None
    sl: int | None = None
    payload: WorkPayload

    @model_validator(mode="after")
    def validate_payload_kind(self) -> "Record":
        if self.payload.kind != self.kind:
            raise ValueError(f"payload kind {self.payload.kind.value} does not match record kind {self.kind.value}")
        return self


# Dashboard


class DashboardWork(_Upstream):
    work_id: str
    work_type: Literal["illust", "novel"]
    rating_count: int = 0
    bookmark_count: int = 0
    view_count: int = 0
    comment_count: int = 0
    create_date: str
    content_rating: ContentRating = ContentRating.UNRATED
    daily_ranking_best_rank: int = 0
    image_response_count: int = 0
    quoted_illust_count: int = 0


class DashboardPayload(BaseModel):
    works: list[DashboardWork] = Field(default_factory=list)
    thumbnails: dict[str, list[WorkThumbnail]] = Field(default_factory=dict)


class ExportRow(BaseModel):
    """Analytics for one of the account's own works."""

    work_id: str
    work_type: Literal["illust", "novel"]
    illust_type: IllustType | None = None
    ai_type: AIType
    title: str
    tags: list[str]
    rating_count: int
    bookmark_count: int
    view_count: int
    comment_count: int
    create_date: str
    content_rating: ContentRating
    page_count: int | None = None
    text_count: int | None = None
    word_count: int | None = None
    daily_ranking_best_rank: int
    image_response_count: int
    quoted_illust_count: int

    @property
    def url(self) -> str:
        prefix = "i" if self.work_type == "illust" else "n"
        return f"https://www.pixiv.net/{prefix}/{self.work_id}"


# Reports


class DiscoveryReport(BaseModel):
    kind: WorkKind
    pages: int = 0
    accepted: int = 0
    empty: bool = False


class CrawlReport(BaseModel):
    """Final crawl summary returned by crawl_contest."""

    discovery: DiscoveryReport
    total: int = 0
    succeeded: int = 0
    rejected: int = 0
    failed: int = 0
    failures: list[str] = Field(default_factory=list)
