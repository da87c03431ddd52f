"""Media commands: video inventory, Mux migration, compression and bulk upload."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from gallery.config import settings
from gallery.media import (
    CompressionMapping,
    DirectoryUploader,
    MigrationProgress,
    MuxClient,
    compress_videos,
    list_video_assets,
    migrate_videos,
    purge_mux_assets,
    rollback,
    video_usage,
)
from gallery.media.compression import CompressionResult
from gallery.media.inventory import inventory_summary
from gallery.models import Document
from gallery_cli.context import handle_errors, open_active_store

media_app = typer.Typer(help="Video and image tooling.")


@media_app.command("list-videos")
@handle_errors
def media_list_videos() -> None:
    """List every video file (largest first) and the artworks using them."""
    store = open_active_store()
    try:
        assets = list_video_assets(store)
        usages = video_usage(store, assets)
    finally:
        store.close()

    if not assets:
        typer.echo("No videos found!")
        return

    typer.echo(f"📋 {len(assets)} videos (largest first):")
    typer.echo("=" * 60)
    for i, asset in enumerate(assets, start=1):
        typer.echo(f"{i:>2}. {asset.filename or 'No filename'}")
        typer.echo(f"    💾 Size: {asset.size_mb:.1f}MB")
        typer.echo(f"    🆔 ID: {asset.id}")

    typer.echo("\n🎨 Artworks that use these videos:")
    typer.echo("=" * 60)
    if not usages:
        typer.echo("No artworks found that use video mediaType")
    for i, usage in enumerate(usages, start=1):
        size = f"{usage.asset.size_mb:.1f}MB" if usage.asset else "Unknown"
        typer.echo(f'{i:>2}. "{usage.title}"')
        typer.echo(f"    📁 Portfolio: {usage.portfolio_title}")
        typer.echo(f"    🎬 Video: {usage.asset.filename if usage.asset else 'No filename'}")
        typer.echo(f"    💾 Size: {size}")

    summary = inventory_summary(assets)
    typer.echo("\n📊 Summary:")
    typer.echo(f"Total videos: {summary['count']}")
    typer.echo(f"Total size: {summary['total_mb']}MB")
    typer.echo(f"Average size: {summary['average_mb']}MB")
    typer.echo(f"Videos over 100MB: {summary['over_100mb']}")


@media_app.command("mux-migrate")
@handle_errors
def media_mux_migrate(
    folder: Optional[Path] = typer.Option(None, "--folder", help="Local video folder."),
    retry_failed: bool = typer.Option(False, "--retry-failed", help="Retry previously failed items."),
) -> None:
    """Upload video artworks to Mux and store the playback ids."""
    folder = folder or settings.videos_folder
    progress = MigrationProgress.load()
    mux = MuxClient()
    store = open_active_store()

    def _on_item(artwork: Document, outcome: str) -> None:
        name = artwork.title or artwork.id
        icons = {"completed": "✅", "failed": "❌", "missing": "❌", "skipped": "⏭️ "}
        detail = " (no local file)" if outcome == "missing" else ""
        typer.echo(f"{icons[outcome]} {outcome.capitalize()}: {name}{detail}")

    typer.echo(f"Starting Mux migration from {folder} …")
    try:
        summary = migrate_videos(
            store, mux, progress=progress, folder=folder,
            retry_failed=retry_failed, on_item=_on_item,
        )
    finally:
        store.close()
        mux.close()

    typer.echo("\nMigration Summary:")
    typer.echo(f"✅ Completed: {len(progress.completed)}")
    typer.echo(f"❌ Failed: {len(progress.failed)}")
    typer.echo(f"📄 Progress saved to: {progress.path}")
    if summary.failed:
        raise typer.Exit(code=1)


@media_app.command("mux-purge")
@handle_errors
def media_mux_purge(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete ALL assets in the Mux environment."""
    mux = MuxClient()
    try:
        assets = mux.list_assets()
        if not assets:
            typer.echo("No assets found to delete.")
            return
        typer.echo(f"Found {len(assets)} assets:")
        for asset in assets:
            typer.echo(f"- {asset['id']} (status: {asset.get('status')})")
        if not yes and not typer.confirm("⚠️ This will delete ALL assets in your Mux account. Continue?"):
            typer.echo("Aborted.")
            raise typer.Exit(code=1)
        deleted, failed = purge_mux_assets(mux)
    finally:
        mux.close()

    typer.echo(f"✅ Deleted: {len(deleted)}")
    if failed:
        typer.echo(f"❌ Failed: {len(failed)}")
        raise typer.Exit(code=1)


def _echo_compression(result: CompressionResult) -> None:
    icons = {"compressed": "✅", "restored": "✅", "skipped": "⏭️ ", "failed": "❌"}
    detail = f" ({result.detail})" if result.detail else ""
    typer.echo(f"{icons[result.status]} {result.filename or result.asset_id}{detail}")


@media_app.command("compress")
@handle_errors
def media_compress(
    target_mb: Optional[float] = typer.Option(None, "--target-mb", help="Target size per video."),
    max_source_mb: Optional[float] = typer.Option(None, "--max-source-mb", help="Skip larger originals."),
) -> None:
    """Re-encode video assets to a smaller size (originals are backed up)."""
    store = open_active_store()
    try:
        results = compress_videos(
            store,
            mapping=CompressionMapping.load(),
            target_mb=target_mb,
            max_source_mb=max_source_mb,
            on_item=_echo_compression,
        )
    finally:
        store.close()
    done = sum(1 for r in results if r.status == "compressed")
    typer.echo(f"\n📊 Processed: {done}/{len(results)} videos")
    typer.echo(f"💾 Mapping saved to: {settings.mapping_path}")
    typer.echo(f"📁 Originals backed up to: {settings.backup_dir}")
    if any(r.status == "failed" for r in results):
        raise typer.Exit(code=1)


@media_app.command("rollback")
@handle_errors
def media_rollback() -> None:
    """Point documents back at their original (uncompressed) videos."""
    mapping = CompressionMapping.load()
    if not mapping.videos:
        typer.echo("No mapping found. Nothing to roll back.")
        return
    store = open_active_store()
    try:
        results = rollback(store, mapping)
    finally:
        store.close()
    for result in results:
        _echo_compression(result)
    if any(r.status == "failed" for r in results):
        raise typer.Exit(code=1)


@media_app.command("upload")
@handle_errors
def media_upload(
    base: Path = typer.Argument(..., exists=True, file_okay=False, help="Folder holding hq/ and lq/."),
    originals: bool = typer.Option(
        False, "--originals", help="BASE holds unprocessed originals; build hq/lq versions first."
    ),
    work_dir: Optional[Path] = typer.Option(
        None, "--work-dir", file_okay=False, help="Where --originals writes hq/ and lq/."
    ),
) -> None:
    """Create portfolios plus image and video artworks from a directory tree."""
    store = open_active_store()
    try:
        uploader = DirectoryUploader(store, on_event=typer.echo)
        try:
            if originals:
                result = uploader.upload_source(base, work_dir)
            else:
                result = uploader.upload_tree(base)
        except FileNotFoundError as exc:
            typer.echo(f"❌ {exc}")
            raise typer.Exit(code=1)
    finally:
        store.close()
    typer.echo("\n--- Upload Summary ---")
    typer.echo(result.summary())
    if result.failed:
        raise typer.Exit(code=1)
