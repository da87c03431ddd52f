"""Portfolio hierarchy endpoints.

Routes
------
GET /portfolios                        Top-level portfolios
GET /portfolios/{id}/descendants       Flat descendant sets (cascade scope)
GET /portfolios/{id}/tree              Nested tree for rendering
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from gallery.api.errors import http_error
from gallery.cascade import build_tree, collect_descendants, root_portfolio_ids
from gallery.errors import GalleryError

router = APIRouter()


def _require_portfolio(store: Any, portfolio_id: str) -> None:
    doc = store.get_document(portfolio_id)
    if doc is None or doc.doc_type != "portfolio":
        raise HTTPException(status_code=404, detail=f"Portfolio '{portfolio_id}' not found.")


@router.get("", response_model=list[dict[str, Any]])
def list_roots_endpoint(request: Request) -> list[dict[str, Any]]:
    """Return portfolios that have no parent."""
    store = request.app.state.store
    try:
        roots = root_portfolio_ids(store)
        return [
            {"id": pid, "title": store.get_document(pid).title}
            for pid in roots
        ]
    except GalleryError as exc:
        raise http_error(exc) from exc


@router.get("/{portfolio_id}/descendants", response_model=dict[str, Any])
def descendants_endpoint(portfolio_id: str, request: Request) -> dict[str, Any]:
    """Return every portfolio (root first) and artwork under *portfolio_id*."""
    store = request.app.state.store
    try:
        _require_portfolio(store, portfolio_id)
        found = collect_descendants(store, portfolio_id)
    except GalleryError as exc:
        raise http_error(exc) from exc
    return {
        "root_id": found.root_id,
        "portfolios": found.portfolios,
        "artworks": found.artworks,
        "parents": found.parents,
        "depths": found.depths,
        "count": len(found),
    }


@router.get("/{portfolio_id}/tree", response_model=dict[str, Any])
def tree_endpoint(portfolio_id: str, request: Request, artworks: bool = True) -> dict[str, Any]:
    """Return the nested portfolio tree under *portfolio_id*."""
    store = request.app.state.store
    try:
        _require_portfolio(store, portfolio_id)
        return build_tree(store, portfolio_id, include_artworks=artworks)
    except GalleryError as exc:
        raise http_error(exc) from exc
