import pytest

from pxcrawl.api import UpstreamApiError
from pxcrawl.models import UgoiraMeta, WorkMetadata, WorkThumbnail

WORK_DATE = "2024/05/01/10/00/00"
ORIGINAL_URL = f"https://i.pximg.net/img-original/img/{WORK_DATE}/1001_p0.png"
THUMB_URL = f"https://i.pximg.net/c/250x250_80_a2/img-master/img/{WORK_DATE}/1001_p2_square1200.jpg"


def _metadata_data(**overrides) -> dict:
    data = {
        "id": "1001",
        "title": "Sunset",
        "description": "Tom &amp; Jerry<br />",
        "illustType": 0,
        "createDate": "2024-05-01T10:00:00+00:00",
        "uploadDate": "2024-05-02T08:30:00+00:00",
        "userId": "42",
        "userName": "alice",
        "pageCount": 1,
        "width": 1200,
        "height": 800,
        "urls": {
            "mini": f"https://i.pximg.net/c/48x48/img-master/img/{WORK_DATE}/1001_p0_square1200.jpg",
            "thumb": THUMB_URL,
            "small": f"https://i.pximg.net/c/540x540_70/img-master/img/{WORK_DATE}/1001_p0_master1200.jpg",
            "regular": f"https://i.pximg.net/img-master/img/{WORK_DATE}/1001_p0_master1200.jpg",
            "original": ORIGINAL_URL,
        },
        "tags": {
            "tags": [
                {"tag": "風景", "translation": {"en": "landscape"}},
                {"tag": "夕焼け"},
            ]
        },
        "isOriginal": False,
        "aiType": 1,
        "xRestrict": 0,
        "bookmarkCount": 10,
        "bookmarkData": None,
        "viewCount": 300,
        "likeCount": 20,
        "commentCount": 2,
        "seriesNavData": None,
        "sl": 2,
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_metadata():
    def factory(**overrides) -> WorkMetadata:
        return WorkMetadata.model_validate(_metadata_data(**overrides))

    return factory


@pytest.fixture
def make_thumbnail():
    def factory(**overrides) -> WorkThumbnail:
        data = {"id": "1001", "title": "Sunset", "illustType": 0, "url": THUMB_URL, "tags": ["風景", "夕焼け"], "aiType": 1}
        data.update(overrides)
        return WorkThumbnail.model_validate(data)

    return factory


@pytest.fixture
def ugoira_meta() -> UgoiraMeta:
    return UgoiraMeta.model_validate(
        {
            "src": f"https://i.pximg.net/img-zip-ugoira/img/{WORK_DATE}/1001_ugoira600x600.zip",
            "originalSrc": f"https://i.pximg.net/img-zip-ugoira/img/{WORK_DATE}/1001_ugoira1920x1080.zip",
            "mime_type": "image/jpeg",
            "frames": [{"file": "000000.jpg", "delay": 100}, {"file": "000001.jpg", "delay": 120}],
        }
    )


class FakeAnimationSource:
    def __init__(self, meta: UgoiraMeta | None = None) -> None:
        self.meta = meta
        self.requested: list[str] = []

    async def get_ugoira_meta(self, work_id: str) -> UgoiraMeta:
        self.requested.append(work_id)
        if self.meta is None:
            raise UpstreamApiError(f"/ajax/illust/{work_id}/ugoira_meta: 503 Service Unavailable")
        return self.meta


@pytest.fixture
def animation_source_factory():
    return FakeAnimationSource
