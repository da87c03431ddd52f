"""The document-store interface the cascade, maintenance and media layers use.

Two implementations exist:

``SanityStore`` (:mod:`gallery.store.sanity`)
    The live CMS dataset over HTTP.

``LocalStore`` (:mod:`gallery.store.local`)
    A SQLite mirror of a dataset export, for offline rehearsal and tests.

Every id accepted or returned here is a *published* id; stores deal with
draft versions internally.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from gallery.models import Document, PublishState


class DocumentStore(Protocol):
    name: str

    # -- reads ---------------------------------------------------------
    def get_document(self, doc_id: str) -> Document | None:
        """Return the document (draft body preferred) or ``None``."""
        ...

    def list_documents(self, doc_type: str) -> list[Document]:
        ...

    def child_portfolio_ids(self, portfolio_id: str) -> list[str]:
        """Portfolios whose ``parentPortfolio`` points at *portfolio_id*."""
        ...

    def artwork_ids(self, portfolio_id: str) -> list[str]:
        """Artworks whose ``portfolio`` points at *portfolio_id*."""
        ...

    def child_counts(self, portfolio_id: str) -> tuple[int, int]:
        """``(sub_portfolio_count, artwork_count)`` without fetching ids."""
        ...

    def referencing_ids(self, doc_id: str) -> list[str]:
        """Ids of documents holding any reference to *doc_id*."""
        ...

    def raw_ids_with_prefix(self, prefix: str) -> list[str]:
        """Raw stored ids (drafts included, un-normalised) starting with *prefix*."""
        ...

    # -- writes --------------------------------------------------------
    def create(self, doc: dict[str, Any]) -> Document:
        ...

    def patch(
        self,
        doc_id: str,
        set_fields: dict[str, Any] | None = None,
        unset: list[str] | None = None,
    ) -> None:
        """Patch every stored version of *doc_id*."""
        ...

    def delete_many(self, doc_ids: list[str]) -> None:
        """Delete all versions of *doc_ids* in one atomic transaction, in order."""
        ...

    def delete_raw(self, raw_id: str) -> None:
        """Delete exactly one stored id (used to repair corrupted drafts)."""
        ...

    def set_publish_state(self, doc_id: str, state: PublishState) -> bool:
        """Publish or unpublish atomically.  Returns ``False`` if already in *state*."""
        ...

    def upload_asset(self, kind: str, path: Path, filename: str | None = None) -> dict[str, Any]:
        """Upload a file as an ``image`` or ``file`` asset and return the asset document."""
        ...

    def close(self) -> None:
        ...
