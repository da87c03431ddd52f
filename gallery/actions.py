"""Document actions offered on a document in the studio.

The studio's document-action extension point asks for the actions of a
schema type; :func:`resolve_actions` answers it.  Portfolios get the five
cascade actions and video artworks get "Upload to Mux"; every other type
gets none.

Each action is declarative (name, label, icon, tone, disabled predicate)
plus a handler that plans the work, checks the user's answer against the
plan's confirmation rule and applies it::

    action = get_action("portfolio", "delete")
    plan = action.plan(store, "portfolio-123")
    report = action.handle(store, "portfolio-123", confirmation="DELETE")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from gallery.cascade import CascadePlan, apply_cascade, plan_cascade
from gallery.cascade.plan import is_yes
from gallery.errors import ConfirmationError, DocumentNotFoundError
from gallery.media.migration import upload_artwork_video, video_asset_ref, video_filename
from gallery.media.mux import MuxAsset, MuxClient
from gallery.models import CascadeOperation, CascadeReport, Document, MediaType
from gallery.store.base import DocumentStore


def _unsaved(doc: Document | None) -> str | None:
    if doc is None:
        return "Save the document first"
    return None


@dataclass(frozen=True, kw_only=True)
class DocumentAction:
    name: str
    label: str
    icon: str
    tone: str
    disabled: Callable[[Document | None], str | None] | None = _unsaved

    def applies_to(self, doc: Document | None) -> bool:
        """Whether the studio shows this action for *doc* at all."""
        return True

    def disabled_reason(self, doc: Document | None) -> str | None:
        """Why the action is unavailable for *doc*, or ``None`` if it is enabled."""
        return self.disabled(doc) if self.disabled else None

    def plan(self, store: DocumentStore, doc_id: str) -> Any:
        raise NotImplementedError

    def apply(self, store: DocumentStore, plan: Any, fail_fast: bool = False) -> Any:
        raise NotImplementedError

    def handle(
        self,
        store: DocumentStore,
        doc_id: str,
        confirmation: str | None,
        fail_fast: bool = False,
    ) -> Any:
        """Plan, confirm and apply.

        Raises:
            ConfirmationError: *confirmation* does not satisfy the plan.
        """
        plan = self.plan(store, doc_id)
        if not plan.accepts(confirmation):
            raise ConfirmationError(
                f"{self.label} on {doc_id!r} was not confirmed",
                expected=plan.confirmation_phrase,
            )
        return self.apply(store, plan, fail_fast=fail_fast)

    def describe(self, doc: Document | None = None) -> dict[str, Any]:
        reason = self.disabled_reason(doc)
        return {
            "name": self.name,
            "label": self.label,
            "icon": self.icon,
            "tone": self.tone,
            "disabled": reason is not None,
            "disabled_reason": reason,
        }


# ---------------------------------------------------------------------------
# Cascades
# ---------------------------------------------------------------------------

@dataclass(frozen=True, kw_only=True)
class CascadeAction(DocumentAction):
    operation: CascadeOperation

    def plan(self, store: DocumentStore, doc_id: str) -> CascadePlan:
        return plan_cascade(store, doc_id, self.operation)

    def apply(self, store: DocumentStore, plan: CascadePlan, fail_fast: bool = False) -> CascadeReport:
        return apply_cascade(store, plan, fail_fast=fail_fast)


PORTFOLIO_ACTIONS: tuple[DocumentAction, ...] = (
    CascadeAction(
        name="publish",
        operation=CascadeOperation.PUBLISH,
        label="Cascade Publish",
        icon="Publish",
        tone="positive",
    ),
    CascadeAction(
        name="unpublish",
        operation=CascadeOperation.UNPUBLISH,
        label="Cascade Unpublish",
        icon="Unpublish",
        tone="caution",
    ),
    CascadeAction(
        name="mark-unpublished",
        operation=CascadeOperation.MARK_UNPUBLISHED,
        label="Cascade Mark Unpublish",
        icon="EyeClosed",
        tone="caution",
    ),
    CascadeAction(
        name="clear-unpublished",
        operation=CascadeOperation.CLEAR_UNPUBLISHED,
        label="Cascade Clear Unpublished",
        icon="EyeOpen",
        tone="positive",
    ),
    CascadeAction(
        name="delete",
        operation=CascadeOperation.DELETE,
        label="Cascade Delete",
        icon="Trash",
        tone="critical",
    ),
)


# ---------------------------------------------------------------------------
# Upload to Mux
# ---------------------------------------------------------------------------

def _mux_disabled(doc: Document | None) -> str | None:
    if doc is None:
        return "Save the document first"
    if doc.body.get("muxPlaybackId"):
        return "Already uploaded to Mux"
    if not video_asset_ref(doc):
        return "No video file to upload"
    return None


@dataclass
class MuxUploadPlan:
    artwork: Document
    filename: str | None

    confirmation_phrase = None

    @property
    def confirmation_message(self) -> str:
        return (
            f'Upload "{self.filename or self.artwork.id}" to Mux?\n\n'
            "This may take several minutes for large videos."
        )

    def accepts(self, confirmation: str | None) -> bool:
        return is_yes(confirmation)

    def to_dict(self) -> dict[str, Any]:
        return {
            "artwork_id": self.artwork.id,
            "filename": self.filename,
            "confirmation_message": self.confirmation_message,
            "confirmation_phrase": None,
        }


@dataclass
class MuxUploadReport:
    doc_id: str
    asset: MuxAsset
    ok: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "doc_id": self.doc_id,
            "ok": self.ok,
            "muxAssetId": self.asset.asset_id,
            "muxPlaybackId": self.asset.playback_id,
            "muxStatus": self.asset.status,
        }


@dataclass(frozen=True, kw_only=True)
class MuxUploadAction(DocumentAction):
    client_factory: Callable[[], MuxClient] = MuxClient

    def applies_to(self, doc: Document | None) -> bool:
        return doc is not None and doc.body.get("mediaType") == MediaType.VIDEO.value

    def plan(self, store: DocumentStore, doc_id: str) -> MuxUploadPlan:
        doc = store.get_document(doc_id)
        if doc is None:
            raise DocumentNotFoundError(doc_id)
        return MuxUploadPlan(artwork=doc, filename=video_filename(store, doc))

    def apply(self, store: DocumentStore, plan: MuxUploadPlan, fail_fast: bool = False) -> MuxUploadReport:
        mux = self.client_factory()
        try:
            asset = upload_artwork_video(store, mux, plan.artwork)
        finally:
            mux.close()
        return MuxUploadReport(doc_id=plan.artwork.id, asset=asset)


ARTWORK_ACTIONS: tuple[DocumentAction, ...] = (
    MuxUploadAction(
        name="upload-to-mux",
        label="Upload to Mux",
        icon="Play",
        tone="primary",
        disabled=_mux_disabled,
    ),
)

_REGISTRY: dict[str, tuple[DocumentAction, ...]] = {
    "portfolio": PORTFOLIO_ACTIONS,
    "artwork": ARTWORK_ACTIONS,
}


def resolve_actions(schema_type: str) -> list[DocumentAction]:
    """Actions registered for *schema_type* (empty for most types).

    Filter with :meth:`DocumentAction.applies_to` before showing them.
    """
    return list(_REGISTRY.get(schema_type, ()))


def get_action(schema_type: str, name: str) -> DocumentAction:
    """Look up one action by name.

    Raises:
        KeyError: *schema_type* has no action called *name*.
    """
    for action in resolve_actions(schema_type):
        if action.name == name:
            return action
    raise KeyError(f"No action {name!r} for schema type {schema_type!r}")
