"""Descendant collection for portfolio trees.

A portfolio's children are the portfolios whose ``parentPortfolio`` points
at it; its artworks are those whose ``portfolio`` points at it.  The
``subPortfolios`` array is never consulted here.
"""

from __future__ import annotations

import logging
from typing import Any

from gallery.config import settings
from gallery.documents import dedupe_ids, published_id
from gallery.errors import CascadeCycleError, DocumentNotFoundError
from gallery.models import Descendants
from gallery.store.base import DocumentStore

logger = logging.getLogger(__name__)


def has_children(store: DocumentStore, portfolio_id: str) -> bool:
    """Return ``True`` if *portfolio_id* has any sub-portfolio or artwork."""
    portfolios, artworks = store.child_counts(published_id(portfolio_id))
    return portfolios > 0 or artworks > 0


def collect_descendants(
    store: DocumentStore,
    root_id: str,
    max_depth: int | None = None,
) -> Descendants:
    """Walk the tree under *root_id* depth-first.

    Args:
        store: Any document store.
        root_id: Root portfolio (draft or published id).
        max_depth: Deepest level allowed below the root.  Defaults to
            ``settings.max_cascade_depth``.

    Returns:
        A :class:`~gallery.models.Descendants` whose ``portfolios`` list starts
        with the root and is in pre-order, so reversing it yields a
        children-before-parents order.

    Raises:
        CascadeCycleError: A portfolio was reached twice or the tree is deeper
            than *max_depth*.
    """
    limit = settings.max_cascade_depth if max_depth is None else max_depth
    root = published_id(root_id)
    result = Descendants(root_id=root)
    seen_artworks: set[str] = set()

    def _visit(portfolio_id: str, depth: int, path: list[str]) -> None:
        if portfolio_id in result.depths:
            raise CascadeCycleError(
                f"Portfolio {portfolio_id!r} is reachable twice: "
                + " -> ".join(path + [portfolio_id]),
                path=path + [portfolio_id],
            )
        if depth > limit:
            raise CascadeCycleError(
                f"Portfolio tree under {root!r} is deeper than {limit} levels",
                path=path + [portfolio_id],
            )

        result.portfolios.append(portfolio_id)
        result.depths[portfolio_id] = depth

        for artwork_id in dedupe_ids(store.artwork_ids(portfolio_id)):
            if artwork_id not in seen_artworks:
                seen_artworks.add(artwork_id)
                result.artworks.append(artwork_id)
                result.artwork_parents[artwork_id] = portfolio_id

        for child_id in dedupe_ids(store.child_portfolio_ids(portfolio_id)):
            result.parents[child_id] = portfolio_id
            _visit(child_id, depth + 1, path + [portfolio_id])

    _visit(root, 0, [])
    logger.debug(
        "Collected %d portfolios and %d artworks under %s",
        len(result.portfolios),
        len(result.artworks),
        root,
    )
    return result


# ---------------------------------------------------------------------------
# Tree views
# ---------------------------------------------------------------------------

def build_tree(store: DocumentStore, root_id: str, include_artworks: bool = True) -> dict[str, Any]:
    """Nested ``{id, title, ..., artworks, children}`` view of a portfolio.

    Raises:
        DocumentNotFoundError: *root_id* does not exist.
        CascadeCycleError: See :func:`collect_descendants`.
    """
    root = published_id(root_id)
    if store.get_document(root) is None:
        raise DocumentNotFoundError(root)
    found = collect_descendants(store, root)

    nodes: dict[str, dict[str, Any]] = {}
    for pid in found.portfolios:
        doc = store.get_document(pid)
        nodes[pid] = {
            "id": pid,
            "type": "portfolio",
            "title": doc.title if doc else "",
            "listingStatus": doc.listing_status if doc else None,
            "published": doc.published if doc else False,
            "artworks": [],
            "children": [],
        }
    for child, parent in found.parents.items():
        nodes[parent]["children"].append(nodes[child])
    if include_artworks:
        for aid, parent in found.artwork_parents.items():
            doc = store.get_document(aid)
            nodes[parent]["artworks"].append({
                "id": aid,
                "type": "artwork",
                "title": doc.title if doc else "",
                "mediaType": doc.body.get("mediaType") if doc else None,
                "listingStatus": doc.listing_status if doc else None,
                "published": doc.published if doc else False,
            })
    return nodes[root]


def root_portfolio_ids(store: DocumentStore) -> list[str]:
    """Portfolios without a ``parentPortfolio``."""
    return [
        p.id
        for p in store.list_documents("portfolio")
        if not (p.body.get("parentPortfolio") or {}).get("_ref")
    ]
