"""Typer CLI entrypoint for pxcrawl."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer
from playwright.async_api import async_playwright
from pydantic import ValidationError

from pxcrawl.api import PixivApi, UpstreamApiError, create_client
from pxcrawl.config import ConflictAction, ContestScope, CrawlConfig, DashboardScope, ImageSize, UgoiraFormat, resolve_order
from pxcrawl.dashboard import export_dashboard
from pxcrawl.delivery import DirectoryDelivery
from pxcrawl.discovery import collect_winner_elements
from pxcrawl.fetcher import RetryingFetcher
from pxcrawl.filters import AcceptAll
from pxcrawl.guard import RunGuard
from pxcrawl.input import parse_contest_url
from pxcrawl.media import download_novel_cover
from pxcrawl.models import CollectionElement, CrawlReport, WorkKind
from pxcrawl.normalizer import WorkNormalizer
from pxcrawl.pipeline import crawl_contest
from pxcrawl.store import ResultStore

app = typer.Typer(help="Collect and normalize works from contest pages and the works dashboard.", no_args_is_help=True)

SessionOption = typer.Option(None, envvar="PXCRAWL_SESSION", help="PHPSESSID cookie value.")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    """pxcrawl command group."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _write_json(path: Path, data: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


async def _winner_elements(url: str, kind: WorkKind, headless: bool, timeout_seconds: float) -> list[CollectionElement]:
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=headless)
        page = await browser.new_page()
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout_seconds * 1000)
        elements = await collect_winner_elements(page, kind)
        await browser.close()
    return elements


async def _run_contest(
    url: str, config: CrawlConfig, scope: ContestScope, order: str | None, headless: bool, guard: RunGuard
) -> tuple[CrawlReport, ResultStore]:
    kind, name = parse_contest_url(url)
    winner_elements = None
    if scope == ContestScope.WINNING:
        winner_elements = await _winner_elements(url, kind, headless, config.timeout_seconds)

    store = ResultStore()
    async with create_client(config) as client:
        api = PixivApi(client)
        report = await crawl_contest(
            source=api,
            normalizer=WorkNormalizer(config, store, api),
            filter_engine=AcceptAll(),
            store=store,
            guard=guard,
            config=config,
            kind=kind,
            name=name,
            scope=scope,
            order=resolve_order(order),
            winner_elements=winner_elements,
        )
    return report, store


@app.command()
def contest(
    url: str = typer.Argument(..., help="Contest page URL."),
    output: Path = typer.Option(..., dir_okay=False),
    scope: ContestScope = typer.Option(ContestScope.APPLICATIONS),
    order: str | None = typer.Option(None, help="date_d, date or popular_d."),
    pages: int = typer.Option(-1, min=-1, help="Number of pages to crawl, -1 for all."),
    image_size: ImageSize = typer.Option(ImageSize.ORIGINAL),
    ugoira_save_as: UgoiraFormat = typer.Option(UgoiraFormat.ZIP),
    session_cookie: str | None = SessionOption,
    headless: bool = typer.Option(True, "--headless/--no-headless"),
    continue_on_error: bool = typer.Option(True, "--continue-on-error/--stop-on-error"),
) -> None:
    """Crawl the entries or winners of a contest into a JSON file."""

    try:
        config = CrawlConfig(
            page_budget=pages,
            image_size=image_size,
            ugoira_save_as=ugoira_save_as,
            session_cookie=session_cookie,
            continue_on_error=continue_on_error,
        )
    except ValidationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc

    try:
        report, store = asyncio.run(_run_contest(url, config, scope, order, headless, RunGuard()))
    except Exception as exc:
        typer.echo(f"Crawl failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    _write_json(output, [record.model_dump(mode="json") for record in store.records])

    if report.discovery.empty:
        typer.echo("No works found; the contest may not have finished yet.", err=True)
    typer.echo(
        f"Processed {report.total} work(s): {report.succeeded} saved, "
        f"{report.rejected} rejected, {report.failed} failed."
    )
    typer.echo(f"Output: {output}")

    if report.failures:
        typer.echo("Failures:", err=True)
        for failure in report.failures:
            typer.echo(f"- {failure}", err=True)


@app.command()
def dashboard(
    output: Path = typer.Option(..., dir_okay=False),
    scope: DashboardScope = typer.Option(DashboardScope.ALL),
    session_cookie: str | None = SessionOption,
) -> None:
    """Export the analytics of your own works into a JSON file."""

    config = CrawlConfig(session_cookie=session_cookie)

    async def run():
        async with create_client(config) as client:
            return await export_dashboard(PixivApi(client), scope, RunGuard())

    try:
        rows = asyncio.run(run())
    except UpstreamApiError as exc:
        typer.echo(f"Export failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if not rows:
        typer.echo("No data to export.", err=True)
        return

    _write_json(output, [dict(row.model_dump(mode="json"), url=row.url) for row in rows])
    typer.echo(f"Exported {len(rows)} work(s) to {output}")


@app.command()
def cover(
    url: str = typer.Argument(..., help="Cover image URL."),
    name: str = typer.Argument(..., help="Novel file name; its extension is replaced."),
    output_dir: Path = typer.Option(Path("."), file_okay=False),
    flatten: bool = typer.Option(False, help="Drop folders from the name."),
    overwrite: bool = typer.Option(False),
    session_cookie: str | None = SessionOption,
) -> None:
    """Download a novel cover image."""

    config = CrawlConfig(session_cookie=session_cookie)
    delivery = DirectoryDelivery(
        output_dir,
        flatten=flatten,
        conflict_action=ConflictAction.OVERWRITE if overwrite else ConflictAction.UNIQUIFY,
    )

    async def run():
        async with create_client(config) as client:
            fetcher = RetryingFetcher(client, retry_max=config.retry_max)
            return await download_novel_cover(fetcher, delivery, url, name)

    path = asyncio.run(run())
    if path is None:
        typer.echo(f"Could not download cover: {url}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Output: {path}")
