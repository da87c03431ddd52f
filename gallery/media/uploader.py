"""Bulk import of a processed image tree.

Expected layout::

    <base>/hq/<Portfolio>/<Sub-portfolio>/image.jpg
    <base>/lq/<Portfolio>/<Sub-portfolio>/image.webp

Every directory below ``hq`` with a matching directory below ``lq`` becomes
a portfolio (nested directories get ``parentPortfolio``), and every image
with a low-res partner of the same stem becomes an ``image`` artwork with
``image`` and ``lowResImage`` set.  Video files below ``hq`` are uploaded
as file assets and become ``video`` artworks, ready for the Mux migration.
Portfolios are matched by slug, so re-running the import does not
duplicate them.

:meth:`DirectoryUploader.upload_source` starts from unprocessed originals
instead and builds the layout first with :func:`~gallery.media.images.prepare_tree`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from gallery.config import settings
from gallery.documents import slugify
from gallery.errors import GalleryError
from gallery.media.images import is_video_file, prepare_tree
from gallery.models import Document, MediaType
from gallery.schemas import validate_document
from gallery.store.base import DocumentStore

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg"}


def is_image_file(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTENSIONS


def _ref(doc_id: str) -> dict[str, str]:
    return {"_type": "reference", "_ref": doc_id}


def _image(asset_id: str) -> dict[str, Any]:
    return {"_type": "image", "asset": _ref(asset_id)}


def _file(asset_id: str) -> dict[str, Any]:
    return {"_type": "file", "asset": _ref(asset_id)}


@dataclass
class UploadResult:
    portfolios: list[str] = field(default_factory=list)
    artworks: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"Portfolios created or found: {len(self.portfolios)}\n"
            f"Artworks created: {len(self.artworks)}\n"
            f"Failed items: {len(self.failed)}"
        )


class DirectoryUploader:
    def __init__(
        self,
        store: DocumentStore,
        on_event: Callable[[str], None] | None = None,
    ) -> None:
        self.store = store
        self.on_event = on_event or (lambda message: None)
        self._by_slug: dict[str, Document] | None = None

    # ------------------------------------------------------------------
    # Portfolios
    # ------------------------------------------------------------------
    def _slug_index(self) -> dict[str, Document]:
        if self._by_slug is None:
            self._by_slug = {}
            for portfolio in self.store.list_documents("portfolio"):
                slug = (portfolio.body.get("slug") or {}).get("current")
                if slug:
                    self._by_slug.setdefault(slug, portfolio)
        return self._by_slug

    def ensure_portfolio(self, name: str, parent_id: str | None = None) -> Document:
        """Return the portfolio with *name*'s slug, creating it if needed."""
        slug = slugify(name)
        index = self._slug_index()
        if slug in index:
            return index[slug]

        body: dict[str, Any] = {
            "_type": "portfolio",
            "title": name,
            "slug": {"_type": "slug", "current": slug},
            "description": f"Portfolio: {name}",
        }
        if parent_id:
            body["parentPortfolio"] = _ref(parent_id)
        validate_document(body)
        portfolio = self.store.create(body)
        index[slug] = portfolio
        self.on_event(f"Created portfolio: {name} ({portfolio.id})")
        return portfolio

    # ------------------------------------------------------------------
    # Artworks
    # ------------------------------------------------------------------
    def upload_image(self, hq_path: Path, lq_dir: Path, portfolio_id: str) -> Document | None:
        """Create one artwork from *hq_path* and its partner in *lq_dir*.

        Returns ``None`` when there is no low-res partner.
        """
        lq_path = next(
            (p for p in sorted(lq_dir.iterdir()) if p.is_file() and p.stem == hq_path.stem),
            None,
        )
        if lq_path is None:
            logger.warning("No LQ image found for %s", hq_path.name)
            return None

        hq_asset = self.store.upload_asset(
            "image", hq_path, filename=f"{hq_path.stem}-hq{hq_path.suffix}"
        )
        lq_asset = self.store.upload_asset(
            "image", lq_path, filename=f"{lq_path.stem}-lq{lq_path.suffix}"
        )
        body = {
            "_type": "artwork",
            "displayTitle": True,
            "title": hq_path.stem,
            "slug": {"_type": "slug", "current": slugify(hq_path.stem)},
            "portfolio": _ref(portfolio_id),
            "mediaType": MediaType.IMAGE.value,
            "image": _image(hq_asset["_id"]),
            "lowResImage": _image(lq_asset["_id"]),
        }
        validate_document(body)
        artwork = self.store.create(body)
        self.on_event(f"Created artwork: {hq_path.stem} in portfolio {portfolio_id}")
        return artwork

    def upload_video(self, path: Path, portfolio_id: str) -> Document:
        """Create a ``video`` artwork whose ``video`` field holds *path*."""
        asset = self.store.upload_asset("file", path)
        body = {
            "_type": "artwork",
            "displayTitle": True,
            "title": path.stem,
            "slug": {"_type": "slug", "current": slugify(path.stem)},
            "portfolio": _ref(portfolio_id),
            "mediaType": MediaType.VIDEO.value,
            "video": _file(asset["_id"]),
        }
        validate_document(body)
        artwork = self.store.create(body)
        self.on_event(f"Created video artwork: {path.stem} in portfolio {portfolio_id}")
        return artwork

    # ------------------------------------------------------------------
    # Tree walk
    # ------------------------------------------------------------------
    def upload_tree(self, base: Path) -> UploadResult:
        """Import ``base/hq`` and ``base/lq``.

        Raises:
            FileNotFoundError: Either directory is missing.
        """
        hq, lq = base / "hq", base / "lq"
        if not hq.is_dir() or not lq.is_dir():
            raise FileNotFoundError(f"HQ or LQ directory not found in {base}")
        result = UploadResult()
        self._process(hq, lq, None, "", result)
        logger.info("Upload finished: %s", result.summary().replace("\n", "; "))
        return result

    def upload_source(self, source: Path, work_dir: Path | None = None) -> UploadResult:
        """Build hq/lq derivatives of *source* in *work_dir* and import them.

        *work_dir* defaults to ``processed`` in the workspace and is kept:
        a local mirror's assets point at the files in it.  Images that could
        not be processed are reported as failed.
        """
        if not source.is_dir():
            raise FileNotFoundError(f"Source directory not found: {source}")
        work_dir = work_dir or settings.workspace_dir / "processed"
        prepared = prepare_tree(source, work_dir)
        self.on_event(
            f"Prepared {len(prepared.images)} images and {len(prepared.videos)} videos"
        )
        result = self.upload_tree(work_dir)
        result.failed[:0] = prepared.failed
        return result

    def _process(
        self,
        hq_dir: Path,
        lq_dir: Path,
        parent_id: str | None,
        relative: str,
        result: UploadResult,
    ) -> None:
        portfolio_id = parent_id
        if relative:
            try:
                portfolio = self.ensure_portfolio(hq_dir.name, parent_id)
            except (GalleryError, ValidationError) as exc:
                logger.error("Could not create portfolio %s: %s", relative, exc)
                result.failed.append(relative)
                return
            portfolio_id = portfolio.id
            result.portfolios.append(portfolio.id)

        for item in sorted(hq_dir.iterdir()):
            item_relative = f"{relative}/{item.name}" if relative else item.name
            if item.is_dir():
                partner = lq_dir / item.name
                if partner.is_dir():
                    self._process(item, partner, portfolio_id, item_relative, result)
                else:
                    logger.warning("Skipping directory %s: no matching LQ directory", item_relative)
            elif is_video_file(item):
                if portfolio_id is None:
                    logger.warning("Skipping %s: videos need a portfolio directory", item_relative)
                    continue
                try:
                    artwork = self.upload_video(item, portfolio_id)
                except (GalleryError, ValidationError, OSError) as exc:
                    logger.error("Error processing video %s: %s", item_relative, exc)
                    result.failed.append(item_relative)
                    continue
                result.artworks.append(artwork.id)
            elif is_image_file(item):
                if portfolio_id is None:
                    logger.warning("Skipping %s: images need a portfolio directory", item_relative)
                    continue
                try:
                    artwork = self.upload_image(item, lq_dir, portfolio_id)
                except (GalleryError, ValidationError, OSError) as exc:
                    logger.error("Error processing image %s: %s", item_relative, exc)
                    result.failed.append(item_relative)
                    continue
                if artwork is not None:
                    result.artworks.append(artwork.id)
