"""Novel cover downloads and file naming helpers."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from pxcrawl.delivery import Delivery
from pxcrawl.fetcher import DecodeMode, RetryingFetcher
from pxcrawl.normalizer import url_suffix

logger = logging.getLogger(__name__)


def replace_suffix(name: str, url: str) -> str:
    """Give ``name`` the file extension found in ``url``."""

    suffix = url_suffix(url)
    if not suffix:
        return name
    path = PurePosixPath(name)
    return str(path.with_suffix(f".{suffix}")) if path.suffix else f"{name}.{suffix}"


async def download_novel_cover(
    fetcher: RetryingFetcher,
    delivery: Delivery,
    cover_url: str,
    novel_name: str,
) -> Path | None:
    """Download a novel cover and save it next to the novel.

    No delay is added here; callers downloading many covers space them out.
    Returns None when the cover could not be fetched.
    """

    blob = await fetcher.fetch(cover_url, DecodeMode.BLOB)
    if blob is None:
        logger.warning("Skipping cover for %s", novel_name)
        return None

    return delivery.deliver(blob, replace_suffix(novel_name, cover_url))
