"""Move artwork videos from CMS file assets to Mux.

For every video artwork the original file is looked up by its
``originalFilename`` in ``settings.videos_folder``, uploaded to Mux, and the
artwork is patched with ``muxAssetId``, ``muxPlaybackId`` and ``muxStatus``.
Progress is checkpointed after every item.
"""

from __future__ import annotations

import logging
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from gallery.config import settings
from gallery.errors import GalleryError, MediaProcessingError
from gallery.media.compression import download_asset
from gallery.media.mux import MuxAsset, MuxClient
from gallery.media.progress import MigrationProgress
from gallery.models import Document, MediaType
from gallery.store.base import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class MigrationSummary:
    completed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    missing_files: list[str] = field(default_factory=list)


def video_artworks(store: DocumentStore) -> list[Document]:
    """Artworks with ``mediaType == "video"`` and an uploaded video file."""
    return [
        a
        for a in store.list_documents("artwork")
        if a.body.get("mediaType") == MediaType.VIDEO.value and a.body.get("video")
    ]


def video_asset_ref(artwork: Document) -> str | None:
    return ((artwork.body.get("video") or {}).get("asset") or {}).get("_ref")


def video_filename(store: DocumentStore, artwork: Document) -> str | None:
    """``originalFilename`` of the artwork's video asset, if it can be resolved."""
    ref = video_asset_ref(artwork)
    if not ref:
        return None
    asset = store.get_document(ref)
    return asset.body.get("originalFilename") if asset else None


def record_mux_asset(store: DocumentStore, artwork_id: str, asset: MuxAsset) -> None:
    """Store a ready Mux asset's ids on the artwork."""
    store.patch(
        artwork_id,
        set_fields={
            "muxAssetId": asset.asset_id,
            "muxPlaybackId": asset.playback_id,
            "muxStatus": asset.status,
        },
    )


def upload_artwork_video(store: DocumentStore, mux: MuxClient, artwork: Document) -> MuxAsset:
    """Send one artwork's CMS video file to Mux and record the result.

    The file is fetched from the asset URL into a temporary directory, so no
    local copy is needed.

    Raises:
        MediaProcessingError: The artwork has no video asset or it has no URL.
        MuxError: The upload or processing failed.
    """
    ref = video_asset_ref(artwork)
    video = store.get_document(ref) if ref else None
    url = video.body.get("url") if video else None
    if not url:
        raise MediaProcessingError(f"Video asset of {artwork.id!r} has no URL")
    filename = video.body.get("originalFilename") or "video.mp4"

    with tempfile.TemporaryDirectory() as tmp:
        local = download_asset(url, Path(tmp) / Path(filename).name)
        logger.info("Uploading %s to Mux", filename)
        asset = mux.upload_file(local)
    record_mux_asset(store, artwork.id, asset)
    return asset


def find_local_file(filename: str | None, folder: Path | None = None) -> Path | None:
    if not filename:
        return None
    candidate = (folder or settings.videos_folder) / filename
    return candidate if candidate.is_file() else None


def migrate_videos(
    store: DocumentStore,
    mux: MuxClient,
    progress: MigrationProgress | None = None,
    folder: Path | None = None,
    retry_failed: bool = False,
    on_item: Callable[[Document, str], None] | None = None,
    delay: float | None = None,
) -> MigrationSummary:
    """Upload every pending video artwork to Mux.

    Args:
        store: Dataset holding the artworks.
        mux: Authenticated Mux client.
        progress: Checkpoint; loaded from ``settings.progress_path`` if omitted.
        folder: Where local video files live.
        retry_failed: Retry items a previous run recorded as failed.
        on_item: Called with ``(artwork, outcome)`` after each item, for
            progress output.
        delay: Pause between uploads; ``settings.mux_rate_limit_delay`` by default.
    """
    progress = progress or MigrationProgress.load()
    if retry_failed:
        progress.retry_failed()
    pause = settings.mux_rate_limit_delay if delay is None else delay
    summary = MigrationSummary()

    artworks = video_artworks(store)
    logger.info("Found %d video artworks", len(artworks))

    for artwork in artworks:
        if progress.is_done(artwork.id):
            summary.skipped.append(artwork.id)
            if on_item:
                on_item(artwork, "skipped")
            continue

        local = find_local_file(video_filename(store, artwork), folder)
        if local is None:
            logger.warning("No local file for %s", artwork.title or artwork.id)
            progress.fail(artwork.id)
            summary.missing_files.append(artwork.id)
            summary.failed.append(artwork.id)
            if on_item:
                on_item(artwork, "missing")
            continue

        progress.start(artwork.id)
        try:
            record_mux_asset(store, artwork.id, mux.upload_file(local))
        except GalleryError as exc:
            logger.error("Mux migration failed for %s: %s", artwork.id, exc)
            progress.fail(artwork.id)
            summary.failed.append(artwork.id)
            if on_item:
                on_item(artwork, "failed")
            continue

        progress.complete(artwork.id)
        summary.completed.append(artwork.id)
        if on_item:
            on_item(artwork, "completed")
        if pause:
            time.sleep(pause)

    return summary


def purge_mux_assets(mux: MuxClient, delay: float = 0.5) -> tuple[list[str], list[str]]:
    """Delete every asset in the Mux environment.

    Returns ``(deleted, failed)`` asset ids.
    """
    deleted: list[str] = []
    failed: list[str] = []
    for asset in mux.list_assets():
        try:
            mux.delete_asset(asset["id"])
        except GalleryError as exc:
            logger.error("Failed to delete Mux asset %s: %s", asset["id"], exc)
            failed.append(asset["id"])
            continue
        deleted.append(asset["id"])
        if delay:
            time.sleep(delay)
    return deleted, failed
