"""URL parsing utilities for contest pages and work links."""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

from pxcrawl.models import WorkKind

_ALLOWED_HOSTS = {"pixiv.net", "www.pixiv.net"}
_NOVEL_PATH_ID_RE = re.compile(r"/n/(\d+)")


def parse_contest_url(url: str) -> tuple[WorkKind, str]:
    """Extract the work kind and contest name from a contest page URL.

    ``/contest/<name>`` lists illustrations, ``/novel/contest/<name>`` novels.
    """

    parsed = urlparse(url.strip())
    if parsed.scheme not in {"http", "https"}:
        raise ValueError(f"Unsupported URL scheme in '{url}'")
    if parsed.netloc.lower() not in _ALLOWED_HOSTS:
        raise ValueError(f"Unsupported host in '{url}'. Expected pixiv.net")

    parts = [part for part in parsed.path.split("/") if part]
    kind = WorkKind.NOVELS if "novel" in parts else WorkKind.ILLUSTS
    for index, part in enumerate(parts):
        if part == "contest" and index + 1 < len(parts):
            return kind, parts[index + 1]

    raise ValueError(f"Could not find '/contest/<name>' in '{url}'")


def parse_novel_id(href: str) -> str | None:
    """Return the novel id embedded in a novel link, if any."""

    parsed = urlparse(href)
    values = parse_qs(parsed.query).get("id")
    if values and values[0].isdigit():
        return values[0]

    match = _NOVEL_PATH_ID_RE.search(parsed.path)
    return match.group(1) if match else None
