"""One-off maintenance jobs over a dataset.

Every job works on any :class:`~gallery.store.base.DocumentStore`, runs item
by item, records failures instead of aborting, and supports ``dry_run`` so
the CLI can show what would change before changing it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from gallery.documents import (
    has_unpublished_suffix,
    mark_unpublished_title,
    published_id,
)
from gallery.errors import GalleryError
from gallery.models import Document, ItemResult, ListingStatus
from gallery.store.base import DocumentStore

logger = logging.getLogger(__name__)

ASSET_TYPES = ("sanity.imageAsset", "sanity.fileAsset")
CORRUPTED_PREFIX = "drafts.drafts."


@dataclass
class JobReport:
    job: str
    dry_run: bool = False
    results: list[ItemResult] = field(default_factory=list)

    @property
    def changed(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == "ok"]

    @property
    def failed(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == "failed"]

    def summary(self) -> str:
        if self.dry_run:
            return f"{self.job}: {len(self.results)} would change (dry run)"
        return f"{self.job}: {len(self.changed)} changed, {len(self.failed)} failed"


def _run(
    job: str,
    items: Iterable[tuple[str, str]],
    action: Callable[[str], None],
    dry_run: bool,
) -> JobReport:
    """Apply *action* to each ``(id, type)`` in *items*, recording the outcome."""
    report = JobReport(job=job, dry_run=dry_run)
    for doc_id, doc_type in items:
        if dry_run:
            report.results.append(ItemResult(doc_id, doc_type, "skipped", "dry run"))
            continue
        try:
            action(doc_id)
        except GalleryError as exc:
            logger.warning("%s failed for %s: %s", job, doc_id, exc)
            report.results.append(ItemResult(doc_id, doc_type, "failed", str(exc)))
        else:
            report.results.append(ItemResult(doc_id, doc_type, "ok"))
    logger.info("%s", report.summary())
    return report


# ---------------------------------------------------------------------------
# Orphans
# ---------------------------------------------------------------------------

def find_orphan_assets(store: DocumentStore) -> list[Document]:
    """Image and file assets no document references."""
    orphans: list[Document] = []
    for asset_type in ASSET_TYPES:
        for asset in store.list_documents(asset_type):
            if not store.referencing_ids(asset.id):
                orphans.append(asset)
    return orphans


def delete_orphan_assets(store: DocumentStore, dry_run: bool = False) -> JobReport:
    orphans = find_orphan_assets(store)
    return _run(
        "orphan-assets",
        [(a.id, a.doc_type) for a in orphans],
        lambda doc_id: store.delete_many([doc_id]),
        dry_run,
    )


def find_unassigned_artworks(store: DocumentStore) -> list[Document]:
    """Artworks whose ``portfolio`` reference is missing or dangling."""
    portfolio_ids = {p.id for p in store.list_documents("portfolio")}
    unassigned: list[Document] = []
    for artwork in store.list_documents("artwork"):
        ref = (artwork.body.get("portfolio") or {}).get("_ref")
        if not ref or published_id(ref) not in portfolio_ids:
            unassigned.append(artwork)
    return unassigned


def delete_unassigned_artworks(store: DocumentStore, dry_run: bool = False) -> JobReport:
    return _run(
        "unassigned-artworks",
        [(a.id, a.doc_type) for a in find_unassigned_artworks(store)],
        lambda doc_id: store.delete_many([doc_id]),
        dry_run,
    )


# ---------------------------------------------------------------------------
# Corrupted drafts
# ---------------------------------------------------------------------------

def find_corrupted_drafts(store: DocumentStore) -> list[str]:
    """Raw ids with a doubled ``drafts.`` prefix."""
    return store.raw_ids_with_prefix(CORRUPTED_PREFIX)


def repair_corrupted_drafts(store: DocumentStore, dry_run: bool = False) -> JobReport:
    """Delete every ``drafts.drafts.*`` document.

    The published document and its regular draft are left untouched.
    """
    return _run(
        "corrupted-drafts",
        [(raw, "") for raw in find_corrupted_drafts(store)],
        store.delete_raw,
        dry_run,
    )


# ---------------------------------------------------------------------------
# Field migrations
# ---------------------------------------------------------------------------

def backfill_display_titles(store: DocumentStore, dry_run: bool = False) -> JobReport:
    """Set ``displayTitle: true`` on artworks that predate the field."""
    pending = [
        (a.id, a.doc_type)
        for a in store.list_documents("artwork")
        if "displayTitle" not in a.body
    ]
    return _run(
        "display-titles",
        pending,
        lambda doc_id: store.patch(doc_id, set_fields={"displayTitle": True}),
        dry_run,
    )


def _listing_fix(doc: Document) -> dict[str, Any]:
    """Fields that bring *doc*'s title suffix and ``listingStatus`` into step."""
    unpublished = (
        has_unpublished_suffix(doc.title)
        or doc.listing_status == ListingStatus.UNPUBLISHED.value
    )
    updates: dict[str, Any] = {}
    if unpublished:
        if doc.listing_status != ListingStatus.UNPUBLISHED.value:
            updates["listingStatus"] = ListingStatus.UNPUBLISHED.value
        if doc.title and mark_unpublished_title(doc.title) != doc.title:
            updates["title"] = mark_unpublished_title(doc.title)
    elif doc.listing_status is None:
        updates["listingStatus"] = ListingStatus.LISTED.value
    return updates


def normalize_titles(store: DocumentStore, dry_run: bool = False) -> JobReport:
    """Convert legacy ``"... unpublished"`` titles to ``listingStatus``.

    After the job every portfolio and artwork has a ``listingStatus``; a
    document is ``unpublished`` if it had either the suffix or the status,
    and its title is rewritten to the canonical ``"<title> unpublished"``
    form (``"Nocturne  UNPUBLISHED"`` becomes ``"Nocturne unpublished"``).
    """
    fixes: dict[str, dict[str, Any]] = {}
    items: list[tuple[str, str]] = []
    for doc_type in ("portfolio", "artwork"):
        for doc in store.list_documents(doc_type):
            updates = _listing_fix(doc)
            if updates:
                fixes[doc.id] = updates
                items.append((doc.id, doc_type))
    return _run(
        "normalize-titles",
        items,
        lambda doc_id: store.patch(doc_id, set_fields=fixes[doc_id]),
        dry_run,
    )


def sync_sub_portfolios(store: DocumentStore, dry_run: bool = False) -> JobReport:
    """Rewrite each portfolio's ``subPortfolios`` array from ``parentPortfolio``.

    ``subPortfolios`` is a display-order copy; only portfolios whose array
    disagrees with their actual children (as a set) are patched.
    """
    wanted: dict[str, list[dict[str, str]]] = {}
    items: list[tuple[str, str]] = []
    for portfolio in store.list_documents("portfolio"):
        children = store.child_portfolio_ids(portfolio.id)
        current = [
            published_id(ref.get("_ref", ""))
            for ref in portfolio.body.get("subPortfolios") or []
            if isinstance(ref, dict)
        ]
        if set(current) == set(children) and len(current) == len(children):
            continue
        # Keep the editor's order for children already listed.
        ordered = [c for c in current if c in children]
        ordered += [c for c in children if c not in ordered]
        wanted[portfolio.id] = [
            {"_type": "reference", "_key": child, "_ref": child} for child in ordered
        ]
        items.append((portfolio.id, "portfolio"))
    return _run(
        "sync-subportfolios",
        items,
        lambda doc_id: store.patch(doc_id, set_fields={"subPortfolios": wanted[doc_id]}),
        dry_run,
    )


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------

_COVER_FIELDS = ("coverArtwork", "coverImage")


def reset_dataset(store: DocumentStore, dry_run: bool = False) -> JobReport:
    """Delete every artwork, then every image asset.

    Portfolio ``coverArtwork`` and ``coverImage`` point into what is being
    deleted, so they are unset first (skipped on a dry run).  Any other
    document still referencing an image, such as an artist photo, makes
    that delete fail and it is reported as failed.
    """
    covered = [
        p.id
        for p in store.list_documents("portfolio")
        if p.body.get("coverArtwork") or p.body.get("coverImage")
    ]
    if covered and not dry_run:
        for portfolio_id in covered:
            store.patch(portfolio_id, unset=list(_COVER_FIELDS))
        logger.info("Unset covers on %d portfolios", len(covered))
    items = [(a.id, a.doc_type) for a in store.list_documents("artwork")]
    items += [(a.id, a.doc_type) for a in store.list_documents("sanity.imageAsset")]
    logger.warning("Resetting %s: %d documents", store.name, len(items))
    return _run("reset", items, lambda doc_id: store.delete_many([doc_id]), dry_run)

