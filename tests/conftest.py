"""Shared fixtures: an in-memory local store and document builders.

Nothing here touches the network or the on-disk workspace.
"""

from __future__ import annotations

from typing import Any, Generator

import pytest

from gallery.store.local import LocalStore


# ---------------------------------------------------------------------------
# Document builders
# ---------------------------------------------------------------------------

def _ref(doc_id: str) -> dict[str, str]:
    return {"_type": "reference", "_ref": doc_id}


def _portfolio(pid: str, title: str, parent: str | None = None, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "_id": pid,
        "_type": "portfolio",
        "title": title,
        "slug": {"_type": "slug", "current": pid},
    }
    if parent:
        body["parentPortfolio"] = _ref(parent)
    body.update(extra)
    return body


def _artwork(aid: str, title: str, portfolio: str | None, media_type: str = "image", **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "_id": aid,
        "_type": "artwork",
        "title": title,
        "slug": {"_type": "slug", "current": aid},
        "mediaType": media_type,
    }
    if portfolio:
        body["portfolio"] = _ref(portfolio)
    body.update(extra)
    return body


@pytest.fixture()
def portfolio_doc():
    return _portfolio


@pytest.fixture()
def artwork_doc():
    return _artwork


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

@pytest.fixture()
def store() -> Generator[LocalStore, None, None]:
    """Fresh in-memory local store."""
    s = LocalStore.open(":memory:")
    yield s
    s.close()


@pytest.fixture()
def scenario(store: LocalStore) -> LocalStore:
    """P ⊃ Q, artwork A1 in P and A2 in Q."""
    store.create(_portfolio("p", "Parent"))
    store.create(_portfolio("q", "Child", parent="p"))
    store.create(_artwork("a1", "First", "p"))
    store.create(_artwork("a2", "Second", "q"))
    return store


@pytest.fixture()
def draft_scenario(store: LocalStore) -> LocalStore:
    """Same shape as ``scenario`` but every document is an unpublished draft."""
    store.create(_portfolio("drafts.p", "Parent"))
    store.create(_portfolio("drafts.q", "Child", parent="p"))
    store.create(_artwork("drafts.a1", "First", "p"))
    store.create(_artwork("drafts.a2", "Second", "q"))
    return store
