from pathlib import Path

import pytest

from pxcrawl.config import ConflictAction
from pxcrawl.delivery import DirectoryDelivery
from pxcrawl.fetcher import Blob, DecodeMode
from pxcrawl.media import download_novel_cover, replace_suffix

COVER_URL = "https://i.pximg.net/c/600x600/novel-cover-master/img/2024/05/01/10/00/00/ci1001_cover_master1200.jpg"


class _FakeFetcher:
    def __init__(self, result) -> None:
        self.result = result
        self.calls: list[tuple[str, DecodeMode]] = []

    async def fetch(self, url: str, mode: DecodeMode, attempt: int = 0):
        self.calls.append((url, mode))
        return self.result


def _blob(content: bytes = b"jpeg") -> Blob:
    return Blob(content=content, content_type="image/jpeg", source_url=COVER_URL)


def test_replace_suffix() -> None:
    assert replace_suffix("series/My Novel.txt", COVER_URL) == "series/My Novel.jpg"
    assert replace_suffix("My Novel", COVER_URL) == "My Novel.jpg"
    assert replace_suffix("My Novel.txt", "https://example.com/cover") == "My Novel.txt"


@pytest.mark.asyncio
async def test_download_novel_cover_saves_blob(tmp_path: Path) -> None:
    fetcher = _FakeFetcher(_blob())
    path = await download_novel_cover(fetcher, DirectoryDelivery(tmp_path), COVER_URL, "series/My Novel.txt")

    assert fetcher.calls == [(COVER_URL, DecodeMode.BLOB)]
    assert path == tmp_path / "series" / "My Novel.jpg"
    assert path.read_bytes() == b"jpeg"


@pytest.mark.asyncio
async def test_download_novel_cover_skips_unavailable_cover(tmp_path: Path) -> None:
    path = await download_novel_cover(_FakeFetcher(None), DirectoryDelivery(tmp_path), COVER_URL, "My Novel.txt")

    assert path is None
    assert list(tmp_path.iterdir()) == []


def test_directory_delivery_flatten_drops_folders(tmp_path: Path) -> None:
    path = DirectoryDelivery(tmp_path, flatten=True).deliver(_blob(), "a/b/cover.jpg")

    assert path == tmp_path / "cover.jpg"


def test_directory_delivery_uniquifies_existing_names(tmp_path: Path) -> None:
    delivery = DirectoryDelivery(tmp_path)

    first = delivery.deliver(_blob(b"1"), "cover.jpg")
    second = delivery.deliver(_blob(b"2"), "cover.jpg")

    assert first == tmp_path / "cover.jpg"
    assert second == tmp_path / "cover (1).jpg"
    assert first.read_bytes() == b"1"
    assert second.read_bytes() == b"2"


def test_directory_delivery_overwrite(tmp_path: Path) -> None:
    delivery = DirectoryDelivery(tmp_path, conflict_action=ConflictAction.OVERWRITE)

    delivery.deliver(_blob(b"1"), "cover.jpg")
    path = delivery.deliver(_blob(b"2"), "cover.jpg")

    assert path.read_bytes() == b"2"
    assert len(list(tmp_path.iterdir())) == 1


def test_directory_delivery_keeps_names_inside_root(tmp_path: Path) -> None:
    path = DirectoryDelivery(tmp_path).deliver(_blob(), "../../etc/cover?.jpg")

    assert path == tmp_path / "etc" / "cover_.jpg"

    with pytest.raises(ValueError):
        DirectoryDelivery(tmp_path).deliver(_blob(), "../")
