"""Hand-off of finished files to their destination."""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath
from typing import Protocol

from pxcrawl.config import ConflictAction
from pxcrawl.fetcher import Blob

logger = logging.getLogger(__name__)

_UNSAFE_CHARS_RE = re.compile(r'[<>:"\\|?*\x00-\x1f]+')


class Delivery(Protocol):
    def deliver(self, blob: Blob, name: str) -> Path: ...


def _safe_parts(name: str) -> list[str]:
    parts = [_UNSAFE_CHARS_RE.sub("_", part).strip() for part in PurePosixPath(name).parts]
    return [part for part in parts if part and part not in {".", "..", "/"}]


class DirectoryDelivery:
    """Write files below a root directory.

    With ``flatten`` the folders in a name are dropped and only the file name
    is kept. Existing files are renamed around (``uniquify``) or replaced.
    """

    def __init__(
        self,
        root: Path,
        *,
        flatten: bool = False,
        conflict_action: ConflictAction = ConflictAction.UNIQUIFY,
    ) -> None:
        self.root = root
        self.flatten = flatten
        self.conflict_action = conflict_action

    def _target(self, name: str) -> Path:
        parts = _safe_parts(name)
        if not parts:
            raise ValueError(f"Invalid file name: {name!r}")
        if self.flatten:
            parts = parts[-1:]
        return self.root.joinpath(*parts)

    def _uniquify(self, path: Path) -> Path:
        counter = 1
        candidate = path
        while candidate.exists():
            candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
            counter += 1
        return candidate

    def deliver(self, blob: Blob, name: str) -> Path:
        path = self._target(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists() and self.conflict_action == ConflictAction.UNIQUIFY:
            path = self._uniquify(path)

        path.write_bytes(blob.content)
        logger.info("Saved %s (%d bytes)", path, blob.size)
        return path
