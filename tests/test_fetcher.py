import httpx
import pytest
import respx

from pxcrawl.fetcher import Blob, DecodeMode, RetryingFetcher

COVER_URL = "https://i.pximg.net/c/600x600/novel-cover-master/img/2024/05/01/cover_master1200.jpg"


def _flaky(failures: int):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] <= failures:
            return httpx.Response(503)
        return httpx.Response(200, content=b"cover", headers={"content-type": "image/jpeg"})

    return handler


@pytest.mark.asyncio
async def test_fetch_returns_payload_after_four_failures() -> None:
    with respx.mock(assert_all_called=True) as router:
        route = router.get(COVER_URL).mock(side_effect=_flaky(4))
        async with httpx.AsyncClient() as client:
            result = await RetryingFetcher(client).fetch(COVER_URL, DecodeMode.BYTES)

    assert result == b"cover"
    assert route.call_count == 5


@pytest.mark.asyncio
async def test_fetch_gives_up_after_five_retries_without_raising() -> None:
    with respx.mock(assert_all_called=True) as router:
        route = router.get(COVER_URL).respond(404)
        async with httpx.AsyncClient() as client:
            result = await RetryingFetcher(client).fetch(COVER_URL, DecodeMode.BYTES)

    assert result is None
    assert route.call_count == 6


@pytest.mark.asyncio
async def test_transport_errors_use_the_same_retry_budget() -> None:
    with respx.mock(assert_all_called=True) as router:
        route = router.get(COVER_URL).mock(side_effect=httpx.ConnectError)
        async with httpx.AsyncClient() as client:
            result = await RetryingFetcher(client).fetch(COVER_URL, DecodeMode.BLOB)

    assert result is None
    assert route.call_count == 6


@pytest.mark.asyncio
async def test_fetch_continues_from_given_attempt() -> None:
    with respx.mock(assert_all_called=True) as router:
        route = router.get(COVER_URL).respond(500)
        async with httpx.AsyncClient() as client:
            result = await RetryingFetcher(client).fetch(COVER_URL, DecodeMode.BYTES, attempt=3)

    assert result is None
    assert route.call_count == 3


@pytest.mark.asyncio
async def test_blob_mode_keeps_mode_across_retries() -> None:
    with respx.mock(assert_all_called=True) as router:
        router.get(COVER_URL).mock(side_effect=_flaky(2))
        async with httpx.AsyncClient() as client:
            result = await RetryingFetcher(client).fetch(COVER_URL, DecodeMode.BLOB)

    assert isinstance(result, Blob)
    assert result.content == b"cover"
    assert result.content_type == "image/jpeg"
    assert result.source_url == COVER_URL
    assert result.size == 5


@pytest.mark.asyncio
async def test_terminal_failure_is_logged_with_url(caplog) -> None:
    with respx.mock(assert_all_called=True) as router:
        router.get(COVER_URL).respond(503)
        async with httpx.AsyncClient() as client:
            await RetryingFetcher(client, retry_max=1).fetch(COVER_URL, DecodeMode.BYTES)

    assert COVER_URL in caplog.text


@pytest.mark.asyncio
async def test_malformed_url_returns_none_without_raising(caplog) -> None:
    async with httpx.AsyncClient() as client:
        result = await RetryingFetcher(client).fetch("http://[::1", DecodeMode.BYTES)

    assert result is None
    assert "http://[::1" in caplog.text
