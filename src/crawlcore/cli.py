"""CLI interface using typer."""

import asyncio
import importlib
import json
import os
import sys

import typer

from .config import CrawlerSettings, load_settings
from .core import Downloader
from .exceptions import ConfigurationError, DownloadError
from .http import Request
from .log import setup_logging

app = typer.Typer(
    name="crawlcore",
    help="Async crawling engine with item pipelines",
    no_args_is_help=True,
)


def load_spider(path: str):
    """Import ``module:ClassName`` and return a spider instance."""
    module_name, sep, class_name = path.partition(":")
    if not sep or not module_name or not class_name:
        raise typer.BadParameter(f"expected 'module:ClassName', got {path!r}")

    # Console scripts do not put the working directory on sys.path.
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"cannot import {module_name!r}: {e}") from e

    spider_cls = getattr(module, class_name, None)
    if spider_cls is None:
        raise typer.BadParameter(f"{module_name!r} has no attribute {class_name!r}")
    return spider_cls()


def build_pipelines(output: str | None, output_format: str) -> list:
    if not output:
        return []
    if output_format == "jsonl":
        from .output import JsonLinesWriterPipeline
        return [JsonLinesWriterPipeline(output)]
    if output_format == "csv":
        from .output import CsvWriterPipeline
        return [CsvWriterPipeline(output)]
    raise typer.BadParameter(f"unknown output format {output_format!r} (use jsonl or csv)")


def _settings_or_exit(**overrides) -> CrawlerSettings:
    try:
        return load_settings(**{k: v for k, v in overrides.items() if v is not None})
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)


async def _fetch(url: str, settings: CrawlerSettings) -> dict:
    """Fetch a URL and return result as dict."""
    async with Downloader.from_settings(settings) as downloader:
        response = await downloader.fetch(Request(url))

    return {
        "url": response.url,
        "status": response.status,
        "content_length": len(response.body),
        "headers": dict(response.headers),
        "content": response.text,
    }


@app.command()
def fetch(
    url: str = typer.Argument(..., help="URL to fetch"),
    output: str = typer.Option(None, "-o", "--output", help="Output file (JSON)"),
    timeout: float = typer.Option(None, "--timeout", help="Request timeout (seconds)"),
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Only output content"),
):
    """Fetch a single URL through the downloader."""
    settings = _settings_or_exit(timeout=timeout)
    try:
        result = asyncio.run(_fetch(url, settings))
    except DownloadError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if output:
        with open(output, "w") as f:
            json.dump(result, f, indent=2, ensure_ascii=False)
        typer.echo(f"Saved to {output}")
    elif quiet:
        sys.stdout.write(result["content"])
    else:
        typer.echo(f"URL: {result['url']}")
        typer.echo(f"Status: {result['status']}")
        typer.echo(f"Content-Length: {result['content_length']}")
        for name, value in result["headers"].items():
            typer.echo(f"{name}: {value}")
        typer.echo("---")
        typer.echo(result["content"][:2000])
        if len(result["content"]) > 2000:
            typer.echo(f"\n... (truncated, {len(result['content'])} chars total)")


@app.command()
def crawl(
    spider: str = typer.Argument(..., help="Spider class as module:ClassName"),
    concurrency: int = typer.Option(None, "--concurrency", "-c", help="Concurrent requests"),
    delay: float = typer.Option(None, "--delay", help="Minimum delay between requests to one host (seconds)"),
    timeout: float = typer.Option(None, "--timeout", help="Request timeout (seconds)"),
    output: str = typer.Option(None, "-o", "--output", help="Write items to this file"),
    output_format: str = typer.Option("jsonl", "--format", "-f", help="Output format: jsonl, csv"),
    log_level: str = typer.Option(None, "--log-level", help="Logging level"),
):
    """Run a spider until there is nothing left to fetch."""
    from .engine import run_crawl

    settings = _settings_or_exit(
        concurrent_requests=concurrency,
        download_delay=delay,
        timeout=timeout,
        log_level=log_level,
    )
    setup_logging(settings.log_level.upper())

    spider_instance = load_spider(spider)
    pipelines = build_pipelines(output, output_format)

    typer.echo(f"Starting crawl {spider_instance.name!r}")
    typer.echo(f"Concurrency: {settings.concurrent_requests}, Delay: {settings.download_delay}")

    try:
        stats = asyncio.run(run_crawl(spider_instance, settings, pipelines))
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)

    typer.echo(
        f"\nCrawl complete: {stats.responses_received} pages, "
        f"{stats.items_scraped} items in {stats.elapsed:.1f}s"
    )
    typer.echo(
        f"Dropped items: {stats.items_dropped}, "
        f"Download errors: {stats.download_errors}, "
        f"Handler errors: {stats.handler_errors}"
    )
    if output:
        typer.echo(f"Items saved to {output}")


@app.command()
def version():
    """Show version."""
    from . import __version__

    typer.echo(f"crawlcore {__version__}")


if __name__ == "__main__":
    app()
