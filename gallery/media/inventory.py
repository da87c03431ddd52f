"""Inventory of video files stored in the CMS and the artworks using them."""

from __future__ import annotations

from dataclasses import dataclass

from gallery.models import MediaType
from gallery.store.base import DocumentStore

MB = 1024 * 1024
LARGE_VIDEO_BYTES = 100 * MB


@dataclass
class VideoAsset:
    id: str
    filename: str
    size: int
    mime_type: str
    url: str | None

    @property
    def size_mb(self) -> float:
        return self.size / MB


@dataclass
class VideoUsage:
    artwork_id: str
    title: str
    portfolio_title: str
    asset: VideoAsset | None


def list_video_assets(store: DocumentStore) -> list[VideoAsset]:
    """Every ``video/*`` file asset, largest first."""
    videos = [
        VideoAsset(
            id=doc.id,
            filename=doc.body.get("originalFilename") or "",
            size=int(doc.body.get("size") or 0),
            mime_type=doc.body.get("mimeType", ""),
            url=doc.body.get("url"),
        )
        for doc in store.list_documents("sanity.fileAsset")
        if str(doc.body.get("mimeType", "")).startswith("video/")
    ]
    return sorted(videos, key=lambda v: v.size, reverse=True)


def video_usage(store: DocumentStore, assets: list[VideoAsset] | None = None) -> list[VideoUsage]:
    """Video artworks with their portfolio and file, largest file first."""
    by_id = {a.id: a for a in (assets if assets is not None else list_video_assets(store))}
    portfolio_titles: dict[str, str] = {}
    usages: list[VideoUsage] = []
    for artwork in store.list_documents("artwork"):
        if artwork.body.get("mediaType") != MediaType.VIDEO.value:
            continue
        portfolio_ref = (artwork.body.get("portfolio") or {}).get("_ref", "")
        if portfolio_ref and portfolio_ref not in portfolio_titles:
            portfolio = store.get_document(portfolio_ref)
            portfolio_titles[portfolio_ref] = portfolio.title if portfolio else ""
        asset_ref = ((artwork.body.get("video") or {}).get("asset") or {}).get("_ref", "")
        usages.append(
            VideoUsage(
                artwork_id=artwork.id,
                title=artwork.title or "Untitled",
                portfolio_title=portfolio_titles.get(portfolio_ref) or "No portfolio",
                asset=by_id.get(asset_ref),
            )
        )
    return sorted(usages, key=lambda u: u.asset.size if u.asset else 0, reverse=True)


def inventory_summary(assets: list[VideoAsset]) -> dict[str, float]:
    total_mb = sum(a.size_mb for a in assets)
    return {
        "count": len(assets),
        "total_mb": round(total_mb, 1),
        "average_mb": round(total_mb / len(assets), 1) if assets else 0.0,
        "over_100mb": sum(1 for a in assets if a.size > LARGE_VIDEO_BYTES),
    }
