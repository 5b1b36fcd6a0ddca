from __future__ import annotations
import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich import print
from rich.table import Table

from mediacache import config
from mediacache.errors import MediaQueryError
from mediacache.extractor import MediaIndex
from mediacache.media_cache import MediaCache
from mediacache.mediastore import MediaStore
from mediacache.models import AssetKind
from mediacache.native import NativeMediaService
from mediacache.provider import LocalAssetProvider
from mediacache.transport import HttpTransport, LocalTransport

app = typer.Typer(add_completion=False, help="mediacache: browse a media folder through the media cache")


@app.callback()
def main(
    log_level: str = typer.Option(config.LOG_LEVEL, "--log-level", help="Logging level"),
):
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_cache(path: str, native: bool = False, native_url: Optional[str] = None) -> MediaCache:
    """Wire a MediaCache for a folder, optionally with the native fast path."""
    provider = LocalAssetProvider(path)
    service = None
    if native_url:
        service = NativeMediaService(HttpTransport(native_url))
    elif native:
        service = NativeMediaService(LocalTransport(MediaStore(path, index=provider.index)))
    return MediaCache(provider, native=service)


async def _close(cache: MediaCache):
    if cache.native is not None:
        await cache.native.transport.close()


def _stats_table(stats: dict) -> Table:
    table = Table(title="Media cache")
    table.add_column("key", justify="left")
    table.add_column("value", justify="right")
    for key, value in stats.items():
        table.add_row(key, str(value))
    return table


# ---------------------------------------------------------------------------
# SCAN
# ---------------------------------------------------------------------------
@app.command()
def scan(path: str = typer.Argument(..., help="Root folder to scan")):
    """Count the images, videos and albums under a folder."""
    index = MediaIndex(path)
    try:
        entries = index.scan()
    except FileNotFoundError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    images = sum(1 for e in entries if e.kind is AssetKind.IMAGE)
    videos = len(entries) - images
    print(f"[cyan]{images} photos, {videos} videos in {len(index.albums())} albums[/cyan]")


# ---------------------------------------------------------------------------
# PRELOAD
# ---------------------------------------------------------------------------
@app.command()
def preload(
    path: str = typer.Argument(..., help="Root folder"),
    native: bool = typer.Option(False, "--native/--no-native", help="Use the in-process native fast path"),
    native_url: Optional[str] = typer.Option(config.NATIVE_URL or None, "--native-url",
                                             help="Base URL of a running native media service"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for background loading and warm-up"),
):
    """Run a full preload and print the cache statistics."""

    async def run() -> dict:
        cache = build_cache(path, native=native, native_url=native_url)
        try:
            await cache.preload_all_data()
            if cache.has_permission is False:
                print(f"[red]No read access to {path}[/red]")
            if wait:
                await cache.wait_until_idle()
            return cache.get_cache_stats()
        finally:
            await _close(cache)

    print(_stats_table(asyncio.run(run())))


# ---------------------------------------------------------------------------
# ALBUMS
# ---------------------------------------------------------------------------
@app.command()
def albums(path: str = typer.Argument(..., help="Root folder")):
    """List albums with their item counts."""

    async def run():
        cache = build_cache(path)
        handles = await cache.load_all_albums()
        return [(a, await a.count()) for a in handles]

    try:
        rows = asyncio.run(run())
    except MediaQueryError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Albums")
    table.add_column("id", justify="left")
    table.add_column("name", justify="left")
    table.add_column("items", justify="right")
    for album, count in rows:
        table.add_row(album.id or "/", album.name, str(count))
    print(table)


# ---------------------------------------------------------------------------
# THUMB
# ---------------------------------------------------------------------------
@app.command()
def thumb(
    path: str = typer.Argument(..., help="Root folder"),
    asset_id: str = typer.Argument(..., help="Asset ID (see `preload`, ids are 1..n in path order)"),
    out: Path = typer.Argument(..., help="Where to write the JPEG"),
    size: int = typer.Option(config.THUMBNAIL_SIZE, help="Thumbnail edge length (px)"),
    native: bool = typer.Option(False, "--native/--no-native", help="Render through the native fast path"),
):
    """Write one thumbnail to disk."""

    async def run() -> Optional[bytes]:
        cache = build_cache(path, native=native)
        try:
            if native and await cache.native.is_available():
                async for page in cache.native.iter_photos_metadata():
                    for photo in page.photos:
                        if str(photo.id) == asset_id:
                            return await cache.get_thumbnail(cache.native.to_asset(photo), size=size)

            for asset in await cache.load_all_photos():
                if asset.id == asset_id:
                    return await cache.get_thumbnail(asset, size=size)
            return None
        finally:
            await _close(cache)

    data = asyncio.run(run())
    if data is None:
        print(f"[yellow]No thumbnail for asset {asset_id}[/yellow]")
        raise typer.Exit(code=1)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(data)
    print(f"[green]Wrote[/green] {out} ({len(data)} bytes)")


# ---------------------------------------------------------------------------
# MAIN
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
