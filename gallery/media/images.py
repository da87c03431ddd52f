"""High/low-res image derivatives for the bulk uploader.

:func:`prepare_tree` turns a folder of source images and videos into the
``hq``/``lq`` layout :class:`~gallery.media.uploader.DirectoryUploader`
imports.  Every image is written twice as JPEG, once per preset, shrunk to
fit a square of the preset's size (images are never enlarged).  HEIC
photos are read through pillow-heif.  Video files are copied into ``hq``
unchanged.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener

from gallery.errors import MediaProcessingError

logger = logging.getLogger(__name__)

register_heif_opener()

SOURCE_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".heic"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".webm", ".mkv"}


@dataclass(frozen=True)
class ImagePreset:
    name: str
    max_width: int
    quality: int


HIGH_RES = ImagePreset("hq", max_width=1500, quality=85)
LOW_RES = ImagePreset("lq", max_width=400, quality=60)


def is_video_file(path: Path) -> bool:
    return path.suffix.lower() in VIDEO_EXTENSIONS


def _to_rgb(image: Image.Image) -> Image.Image:
    if image.mode in ("RGBA", "LA", "P"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[3])
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def render_derivative(source: Path, dest: Path, preset: ImagePreset) -> Path:
    """Write *source* to *dest* as a JPEG sized and compressed per *preset*.

    Raises:
        MediaProcessingError: *source* is not a readable image.
    """
    try:
        with Image.open(source) as opened:
            image = _to_rgb(ImageOps.exif_transpose(opened))
            image.thumbnail((preset.max_width, preset.max_width), Image.Resampling.LANCZOS)
            dest.parent.mkdir(parents=True, exist_ok=True)
            image.save(dest, "JPEG", quality=preset.quality, optimize=True)
    except (UnidentifiedImageError, OSError) as exc:
        raise MediaProcessingError(f"Could not process image {source.name}: {exc}") from exc
    return dest


@dataclass
class PreparedTree:
    images: list[str] = field(default_factory=list)
    videos: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def prepare_tree(source: Path, out: Path) -> PreparedTree:
    """Mirror *source* into ``out/hq`` and ``out/lq``.

    Relative paths are kept, so ``source/Prints/owl.heic`` becomes
    ``out/hq/Prints/owl.jpg`` and ``out/lq/Prints/owl.jpg``.  Other files
    are ignored.
    """
    result = PreparedTree()
    hq_root, lq_root = out / HIGH_RES.name, out / LOW_RES.name
    hq_root.mkdir(parents=True, exist_ok=True)
    lq_root.mkdir(parents=True, exist_ok=True)

    for path in sorted(source.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(source)
        suffix = path.suffix.lower()
        if suffix in SOURCE_IMAGE_EXTENSIONS:
            target = relative.with_suffix(".jpg")
            try:
                render_derivative(path, hq_root / target, HIGH_RES)
                render_derivative(path, lq_root / target, LOW_RES)
            except MediaProcessingError as exc:
                logger.error("%s", exc)
                result.failed.append(str(relative))
                continue
            result.images.append(str(relative))
        elif suffix in VIDEO_EXTENSIONS:
            dest = hq_root / relative
            dest.parent.mkdir(parents=True, exist_ok=True)
            (lq_root / relative.parent).mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, dest)
            result.videos.append(str(relative))
    logger.info(
        "Prepared %d images and %d videos (%d failed)",
        len(result.images), len(result.videos), len(result.failed),
    )
    return result
