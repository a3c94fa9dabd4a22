"""Command line interface for image-provider.

Inspect, resolve and fetch image references from the shell:

    image-provider key avatars/42.png
    image-provider resolve avatars/42.png
    image-provider resolve avatars/42.png --check
    image-provider fetch https://cdn.example.com/a/b.png -o b.png
"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from image_provider import __version__
from image_provider.config import Settings, get_settings
from image_provider.downloader import HttpImageDownloader
from image_provider.logging_config import get_logger, setup_logging
from image_provider.provider import ImageProvider
from image_provider.reference import (
    DirectReference,
    Reference,
    StoredReference,
    cache_identity,
    parse_reference,
    resolve_url,
)
from image_provider.storage.path import BucketFilePath
from image_provider.storage.r2 import R2Client, StorageClient

console = Console()
logger = get_logger("cli")

app = typer.Typer(
    name="image-provider",
    help="Resolve and fetch images referenced by URL or bucket path",
    rich_markup_mode="rich",
)


class _NoStorage:
    """Storage stand-in for direct URLs, which never need signing."""

    async def signed_url(self, path: BucketFilePath) -> str:
        raise RuntimeError(f"No storage backend configured to sign {path.key}")


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"image-provider version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """image-provider: resolve and fetch images from URLs or R2 buckets."""
    settings = get_settings()
    if settings.LOG_DIR is not None:
        setup_logging(settings.LOG_DIR)


def _parse_or_exit(raw: str) -> Reference:
    reference = parse_reference(raw)
    if reference is None:
        console.print(f"[red]Not a URL or bucket path: {raw}[/red]")
        raise typer.Exit(1)
    return reference


def _open_storage(reference: Reference, settings: Settings) -> StorageClient:
    if isinstance(reference, DirectReference):
        return _NoStorage()
    try:
        return R2Client.from_settings(settings)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def key(raw: str = typer.Argument(..., help="URL or <bucket>/<path>")) -> None:
    """Show the reference kind and its cache key."""
    reference = _parse_or_exit(raw)
    kind = "url" if isinstance(reference, DirectReference) else "bucket"
    console.print(
        Panel.fit(
            f"[cyan]Kind:[/cyan] {kind}\n[cyan]Cache key:[/cyan] {cache_identity(reference)}",
            title=raw,
            border_style="green",
        )
    )


@app.command()
def resolve(
    raw: str = typer.Argument(..., help="URL or <bucket>/<path>"),
    check: bool = typer.Option(
        False, "--check", help="Fail if the bucket object does not exist"
    ),
) -> None:
    """Print a directly fetchable URL, signing bucket paths."""
    settings = get_settings()
    reference = _parse_or_exit(raw)
    storage = _open_storage(reference, settings)

    try:
        if check and isinstance(reference, StoredReference):
            if not asyncio.run(storage.object_exists(reference.path)):
                console.print(f"[red]Object not found: {reference.path.key}[/red]")
                raise typer.Exit(1)
        url = asyncio.run(resolve_url(reference, storage))
    except typer.Exit:
        raise
    except Exception as e:
        logger.error(f"Resolving {raw} failed: {e}")
        console.print(f"[red]Failed to resolve {raw}: {e}[/red]")
        raise typer.Exit(1)

    console.print(url, soft_wrap=True)


@app.command()
def fetch(
    raw: str = typer.Argument(..., help="URL or <bucket>/<path>"),
    output: Path = typer.Option(..., "--output", "-o", help="File to write the image bytes to"),
) -> None:
    """Download an image and save its original bytes."""
    settings = get_settings()
    reference = _parse_or_exit(raw)
    storage = _open_storage(reference, settings)
    downloader = HttpImageDownloader(max_workers=1)
    provider = ImageProvider(reference, storage, downloader=downloader)

    try:
        result = asyncio.run(provider.fetch_result())
    except Exception as e:
        logger.error(f"Fetching {raw} failed: {e}")
        console.print(f"[red]Failed to fetch {raw}: {e}[/red]")
        raise typer.Exit(1)
    finally:
        downloader.shutdown()

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.original_data)
    width, height = result.image.size
    console.print(
        f"[green]Saved {len(result.original_data)} bytes "
        f"({result.image.format} {width}x{height}) to {output}[/green]"
    )


if __name__ == "__main__":
    app()
