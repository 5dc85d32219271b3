"""Configuration models and enums for pxcrawl."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class ImageSize(str, Enum):
    ORIGINAL = "original"
    REGULAR = "regular"
    SMALL = "small"
    THUMB = "thumb"


class UgoiraFormat(str, Enum):
    ZIP = "zip"
    GIF = "gif"
    PNG = "png"
    WEBM = "webm"


class ContestOrder(str, Enum):
    NEWEST = "date_d"
    OLDEST = "date"
    POPULAR = "popular_d"


class ContestScope(str, Enum):
    APPLICATIONS = "applications"
    WINNING = "winning"


class DashboardScope(str, Enum):
    ALL = "all"
    ILLUST = "illust"
    MANGA = "manga"
    NOVEL = "novel"


class ConflictAction(str, Enum):
    UNIQUIFY = "uniquify"
    OVERWRITE = "overwrite"


UNLIMITED_PAGES = -1


class CrawlConfig(BaseModel):
    """User-adjustable settings for a crawl run."""

    page_budget: int = Field(default=UNLIMITED_PAGES, ge=UNLIMITED_PAGES)
    image_size: ImageSize = ImageSize.ORIGINAL
    ugoira_save_as: UgoiraFormat = UgoiraFormat.ZIP
    tag_language: str = "en"
    original_mark: str = "original"
    ai_mark: str = "AI-generated"
    base_url: str = "https://www.pixiv.net"
    session_cookie: str | None = None
    user_agent: str = "pxcrawl"
    timeout_seconds: float = Field(default=20.0, gt=0)
    retry_max: int = Field(default=5, ge=0)
    continue_on_error: bool = True

    @model_validator(mode="after")
    def validate_page_budget(self) -> "CrawlConfig":
        if self.page_budget == 0:
            raise ValueError("page_budget must be -1 (unlimited) or a positive number of pages")
        return self


def resolve_order(raw: str | None) -> ContestOrder:
    """Map a raw sort-order value to a usable order.

    Accounts without the premium sort see ``redirect_premium`` instead of
    ``popular_d``; that and any unknown value fall back to newest-first.
    """

    if not raw or raw == "redirect_premium":
        return ContestOrder.NEWEST
    try:
        return ContestOrder(raw)
    except ValueError:
        return ContestOrder.NEWEST
