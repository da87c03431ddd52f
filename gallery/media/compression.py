"""Shrink CMS video assets with ffmpeg, with a mapping file for rollback.

For every ``video/*`` file asset under ``settings.compression_max_source_mb``:

1. download the original into ``settings.backup_dir``;
2. re-encode it towards ``settings.compression_target_mb`` (H.264/AAC,
   at most 1280 px wide, even dimensions, ``+faststart``);
3. upload the result as a new asset and point every referencing document
   at it.

The original asset is left in place, and each step is recorded in
``settings.mapping_path`` so :func:`rollback` can point the documents back.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable
from urllib.parse import unquote, urlparse

import httpx

from gallery.config import settings
from gallery.errors import GalleryError, MediaProcessingError
from gallery.media.inventory import MB, VideoAsset, list_video_assets
from gallery.store.base import DocumentStore

logger = logging.getLogger(__name__)

MAX_WIDTH = 1280
AUDIO_BITRATE = "128k"
VIDEO_SHARE = 0.8  # of the size budget; the rest is left for audio and container


# ---------------------------------------------------------------------------
# Encoding plan
# ---------------------------------------------------------------------------

@dataclass
class EncodingPlan:
    width: int
    height: int
    video_kbps: int


def plan_encoding(
    width: int,
    height: int,
    duration: float,
    target_mb: float,
    max_width: int = MAX_WIDTH,
) -> EncodingPlan:
    """Output size and bitrate for a *duration*-second clip.

    Aspect ratio is kept, width is capped at *max_width* and both dimensions
    are rounded down to even numbers as libx264 requires.
    """
    if duration <= 0:
        raise MediaProcessingError(f"Cannot plan an encode for duration {duration!r}")
    out_w, out_h = width, height
    if width > max_width:
        out_w = max_width
        out_h = round(height * max_width / width)
    out_w -= out_w % 2
    out_h -= out_h % 2
    kbps = int(target_mb * MB * VIDEO_SHARE * 8 / duration / 1000)
    return EncodingPlan(width=out_w, height=out_h, video_kbps=max(kbps, 1))


def ffmpeg_command(source: Path, dest: Path, plan: EncodingPlan) -> list[str]:
    return [
        "ffmpeg",
        "-i", str(source),
        "-vcodec", "libx264",
        "-acodec", "aac",
        "-vf", f"scale={plan.width}:{plan.height}",
        "-b:v", f"{plan.video_kbps}k",
        "-b:a", AUDIO_BITRATE,
        "-preset", "medium",
        "-movflags", "+faststart",
        "-y",
        str(dest),
    ]


# ---------------------------------------------------------------------------
# External tools
# ---------------------------------------------------------------------------

def _run_tool(args: list[str]) -> str:
    try:
        completed = subprocess.run(args, capture_output=True, text=True, check=True)
    except FileNotFoundError as exc:
        raise MediaProcessingError(f"{args[0]} is not installed or not on PATH") from exc
    except subprocess.CalledProcessError as exc:
        raise MediaProcessingError(
            f"{args[0]} exited with {exc.returncode}: {exc.stderr.strip()[-500:]}"
        ) from exc
    return completed.stdout


def video_info(path: Path) -> tuple[int, int, float]:
    """``(width, height, duration)`` of the first video stream in *path*."""
    out = _run_tool([
        "ffprobe", "-v", "quiet", "-print_format", "json",
        "-show_format", "-show_streams", str(path),
    ])
    info = json.loads(out or "{}")
    stream = next((s for s in info.get("streams", []) if s.get("codec_type") == "video"), None)
    if stream is None:
        raise MediaProcessingError(f"No video stream found in {path.name}")
    return int(stream["width"]), int(stream["height"]), float(info["format"]["duration"])


def compress_file(source: Path, dest: Path, target_mb: float | None = None) -> EncodingPlan:
    width, height, duration = video_info(source)
    plan = plan_encoding(width, height, duration, target_mb or settings.compression_target_mb)
    logger.info(
        "Encoding %s: %dx%d -> %dx%d at %dkbps",
        source.name, width, height, plan.width, plan.height, plan.video_kbps,
    )
    dest.parent.mkdir(parents=True, exist_ok=True)
    _run_tool(ffmpeg_command(source, dest, plan))
    return plan


def download_asset(url: str, dest: Path) -> Path:
    """Fetch an asset URL (``https://`` or ``file://``) to *dest*."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    parsed = urlparse(url)
    if parsed.scheme == "file":
        try:
            shutil.copyfile(unquote(parsed.path), dest)
        except OSError as exc:
            raise MediaProcessingError(f"Copy of {url} failed: {exc}") from exc
        return dest
    try:
        with httpx.stream("GET", url, timeout=settings.request_timeout, follow_redirects=True) as response:
            response.raise_for_status()
            with dest.open("wb") as fh:
                for chunk in response.iter_bytes():
                    fh.write(chunk)
    except httpx.HTTPError as exc:
        dest.unlink(missing_ok=True)
        raise MediaProcessingError(f"Download of {url} failed: {exc}") from exc
    return dest


# ---------------------------------------------------------------------------
# Reference re-pointing
# ---------------------------------------------------------------------------

def repoint_references(store: DocumentStore, old_asset_id: str, new_asset_id: str) -> list[str]:
    """Point every ``<field>.asset`` reference at *old_asset_id* to *new_asset_id*.

    Returns the ids of the documents that were patched.
    """
    patched: list[str] = []
    for doc_id in store.referencing_ids(old_asset_id):
        doc = store.get_document(doc_id)
        if doc is None:
            continue
        updates = {
            f"{key}.asset._ref": new_asset_id
            for key, value in doc.body.items()
            if isinstance(value, dict)
            and (value.get("asset") or {}).get("_ref") == old_asset_id
        }
        if updates:
            store.patch(doc.id, set_fields=updates)
            patched.append(doc.id)
    return patched


# ---------------------------------------------------------------------------
# Mapping file
# ---------------------------------------------------------------------------

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CompressionMapping:
    videos: list[dict[str, Any]] = field(default_factory=list)
    processed_at: str | None = None
    path: Path | None = field(default=None, repr=False, compare=False)

    @classmethod
    def load(cls, path: Path | None = None) -> "CompressionMapping":
        path = path or settings.mapping_path
        if not path.exists():
            return cls(path=path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable mapping file %s", path)
            return cls(path=path)
        return cls(
            videos=list(raw.get("videos", [])),
            processed_at=raw.get("processedAt"),
            path=path,
        )

    def save(self, path: Path | None = None) -> None:
        path = path or self.path or settings.mapping_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps({"videos": self.videos, "processedAt": self.processed_at}, indent=2),
            encoding="utf-8",
        )

    def entry_for(self, asset_id: str) -> dict[str, Any] | None:
        for entry in self.videos:
            if entry.get("assetId") == asset_id and not entry.get("rolledBackAt"):
                return entry
        return None


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

@dataclass
class CompressionResult:
    asset_id: str
    filename: str
    status: str  # "compressed" | "restored" | "skipped" | "failed"
    detail: str = ""


def _backup_name(asset: VideoAsset) -> str:
    suffix = Path(asset.filename or ".mov").suffix or ".mov"
    base = asset.id.removeprefix("file-").rsplit("-", 1)[0]
    return f"{base}_original{suffix}"


def compress_videos(
    store: DocumentStore,
    mapping: CompressionMapping | None = None,
    target_mb: float | None = None,
    max_source_mb: float | None = None,
    backup_dir: Path | None = None,
    on_item: Callable[[CompressionResult], None] | None = None,
) -> list[CompressionResult]:
    mapping = mapping or CompressionMapping.load()
    limit = (max_source_mb or settings.compression_max_source_mb) * MB
    backups = backup_dir or settings.backup_dir
    work_dir = backups / "tmp"
    results: list[CompressionResult] = []
    outputs = {e.get("newAssetId") for e in mapping.videos}

    def _record(result: CompressionResult) -> None:
        results.append(result)
        if on_item:
            on_item(result)

    for asset in list_video_assets(store):
        if asset.size > limit:
            _record(CompressionResult(asset.id, asset.filename, "skipped", "over size limit"))
            continue
        if asset.id in outputs or mapping.entry_for(asset.id):
            _record(CompressionResult(asset.id, asset.filename, "skipped", "already compressed"))
            continue
        if not asset.url:
            _record(CompressionResult(asset.id, asset.filename, "failed", "asset has no url"))
            continue

        original = backups / _backup_name(asset)
        compressed = work_dir / f"{original.stem.removesuffix('_original')}_compressed.mp4"
        try:
            download_asset(asset.url, original)
            compress_file(original, compressed, target_mb)
            new_asset = store.upload_asset("file", compressed, filename=asset.filename)
            documents = repoint_references(store, asset.id, new_asset["_id"])
        except GalleryError as exc:
            logger.error("Compression of %s failed: %s", asset.filename, exc)
            _record(CompressionResult(asset.id, asset.filename, "failed", str(exc)))
            continue
        finally:
            compressed.unlink(missing_ok=True)

        mapping.videos.append({
            "assetId": asset.id,
            "originalFilename": asset.filename,
            "originalSize": asset.size,
            "originalPath": str(original),
            "newAssetId": new_asset["_id"],
            "documents": documents,
            "processedAt": _now(),
        })
        mapping.save()
        _record(CompressionResult(asset.id, asset.filename, "compressed", new_asset["_id"]))

    mapping.processed_at = _now()
    mapping.save()
    shutil.rmtree(work_dir, ignore_errors=True)
    return results


def rollback(
    store: DocumentStore,
    mapping: CompressionMapping | None = None,
) -> list[CompressionResult]:
    """Point documents back at the original assets.

    If an original asset has since been deleted (for instance by orphan
    cleanup) it is re-uploaded from the backup copy first.
    """
    mapping = mapping or CompressionMapping.load()
    results: list[CompressionResult] = []
    for entry in mapping.videos:
        if entry.get("rolledBackAt"):
            continue
        original_id = entry["assetId"]
        filename = entry.get("originalFilename", "")
        try:
            if store.get_document(original_id) is None:
                backup = Path(entry["originalPath"])
                if not backup.is_file():
                    raise MediaProcessingError(f"Backup {backup} is missing")
                original_id = store.upload_asset("file", backup, filename=filename)["_id"]
            repoint_references(store, entry["newAssetId"], original_id)
        except GalleryError as exc:
            logger.error("Rollback of %s failed: %s", filename, exc)
            results.append(CompressionResult(entry["assetId"], filename, "failed", str(exc)))
            continue
        entry["rolledBackAt"] = _now()
        results.append(CompressionResult(entry["assetId"], filename, "restored", original_id))
    mapping.save()
    return results
