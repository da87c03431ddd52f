"""Dataclass models shared by the stores, cascades and reports.

These are plain Python objects.  Validation of full CMS documents lives in
:mod:`gallery.schemas`; the types here describe what the cascade layer
passes around.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    PDF = "pdf"
    AUDIO = "audio"


class ListingStatus(str, Enum):
    LISTED = "listed"
    UNPUBLISHED = "unpublished"


class PublishState(str, Enum):
    PUBLISHED = "published"
    DRAFT = "draft"


class CascadeOperation(str, Enum):
    DELETE = "delete"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    MARK_UNPUBLISHED = "mark-unpublished"
    CLEAR_UNPUBLISHED = "clear-unpublished"

    @property
    def bottom_up(self) -> bool:
        """Operations that must touch children before their parents."""
        return self in (CascadeOperation.DELETE, CascadeOperation.UNPUBLISH)


@dataclass
class Document:
    """A CMS document as returned by a store (published id, raw body)."""

    id: str
    doc_type: str
    title: str
    body: dict[str, Any] = field(default_factory=dict)
    published: bool = True
    has_draft: bool = False

    @property
    def listing_status(self) -> str | None:
        return self.body.get("listingStatus")


@dataclass
class Descendants:
    """Transitive closure of a portfolio.

    ``portfolios`` is in depth-first pre-order with the root first;
    ``artworks`` is in discovery order.  All ids are published ids.
    """

    root_id: str
    portfolios: list[str] = field(default_factory=list)
    artworks: list[str] = field(default_factory=list)
    parents: dict[str, str] = field(default_factory=dict)
    depths: dict[str, int] = field(default_factory=dict)
    artwork_parents: dict[str, str] = field(default_factory=dict)

    @property
    def sub_portfolios(self) -> list[str]:
        return [p for p in self.portfolios if p != self.root_id]

    def __len__(self) -> int:
        return len(self.portfolios) + len(self.artworks)


@dataclass
class CascadeTarget:
    doc_id: str
    doc_type: str


@dataclass
class ItemResult:
    doc_id: str
    doc_type: str
    status: str  # "ok" | "failed" | "skipped"
    error: str | None = None


@dataclass
class CascadeReport:
    operation: CascadeOperation
    root_id: str
    results: list[ItemResult] = field(default_factory=list)

    def _with_status(self, status: str) -> list[ItemResult]:
        return [r for r in self.results if r.status == status]

    @property
    def succeeded(self) -> list[ItemResult]:
        return self._with_status("ok")

    @property
    def failed(self) -> list[ItemResult]:
        return self._with_status("failed")

    @property
    def skipped(self) -> list[ItemResult]:
        return self._with_status("skipped")

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return (
            f"{self.operation.value}: {len(self.succeeded)} ok, "
            f"{len(self.failed)} failed, {len(self.skipped)} skipped"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation.value,
            "root_id": self.root_id,
            "ok": self.ok,
            "summary": self.summary(),
            "results": [
                {
                    "doc_id": r.doc_id,
                    "doc_type": r.doc_type,
                    "status": r.status,
                    "error": r.error,
                }
                for r in self.results
            ],
        }
