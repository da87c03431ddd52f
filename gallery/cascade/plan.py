"""Cascade planning: what will be touched, in which order, and how to confirm it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from gallery.cascade.walk import collect_descendants, has_children
from gallery.documents import published_id
from gallery.errors import DocumentNotFoundError
from gallery.models import CascadeOperation, CascadeTarget, Descendants
from gallery.store.base import DocumentStore

DELETE_PHRASE = "DELETE"
_YES = {"y", "yes", "true", "confirm"}


def is_yes(answer: str | None) -> bool:
    """``True`` for the yes/no answers that count as consent."""
    return answer is not None and str(answer).strip().lower() in _YES


@dataclass
class CascadePlan:
    operation: CascadeOperation
    root_id: str
    root_type: str
    root_title: str
    descendants: Descendants
    cascade: bool

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------
    def ordered_targets(self) -> list[CascadeTarget]:
        """Targets in the order the operation must be applied.

        Delete and unpublish go bottom-up: every artwork, then portfolios
        deepest-first.  The other operations go top-down: portfolios from the
        root outwards, then artworks.
        """
        if not self.cascade:
            return [CascadeTarget(self.root_id, self.root_type)]
        portfolios = [CascadeTarget(p, "portfolio") for p in self.descendants.portfolios]
        artworks = [CascadeTarget(a, "artwork") for a in self.descendants.artworks]
        if self.operation.bottom_up:
            return artworks + list(reversed(portfolios))
        return portfolios + artworks

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------
    @property
    def confirmation_phrase(self) -> str | None:
        """Text the user must type, or ``None`` when a yes/no answer is enough."""
        if self.operation is CascadeOperation.DELETE and self.cascade:
            return DELETE_PHRASE
        return None

    @property
    def confirmation_message(self) -> str:
        n_art = len(self.descendants.artworks)
        n_sub = len(self.descendants.sub_portfolios)
        op = self.operation

        if not self.cascade:
            noun = "this portfolio" if self.root_type == "portfolio" else f"this {self.root_type}"
            verbs = {
                CascadeOperation.DELETE: f"Delete {noun} permanently?",
                CascadeOperation.PUBLISH: f"Publish {noun}?",
                CascadeOperation.UNPUBLISH: f"Unpublish {noun}?",
                CascadeOperation.MARK_UNPUBLISHED: f'Mark {noun} as "unpublished"?',
                CascadeOperation.CLEAR_UNPUBLISHED: f'Remove "unpublished" from {noun}?',
            }
            return verbs[op]

        if op is CascadeOperation.DELETE:
            return (
                "⚠️ CASCADE DELETE ⚠️\n"
                "This will delete:\n"
                f"• 1 portfolio ({self.root_title})\n"
                f"• {n_sub} sub-portfolios\n"
                f"• {n_art} artworks\n"
                f'Type "{DELETE_PHRASE}" to confirm'
            )
        if op is CascadeOperation.MARK_UNPUBLISHED:
            return f'Mark {n_art} artworks and {n_sub} sub-portfolios as "unpublished"?'
        if op is CascadeOperation.CLEAR_UNPUBLISHED:
            return (
                f'Remove "unpublished" from {n_art} artworks and '
                f"{len(self.descendants.portfolios)} portfolios?"
            )
        verb = "Publish" if op is CascadeOperation.PUBLISH else "Unpublish"
        return f"{verb} 1 portfolio, {n_sub} sub-portfolios and {n_art} artworks?"

    def accepts(self, confirmation: str | None) -> bool:
        """Check a user's answer against this plan's confirmation rule."""
        if confirmation is None:
            return False
        answer = str(confirmation).strip()
        if self.confirmation_phrase:
            return answer == self.confirmation_phrase
        return is_yes(answer)

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation.value,
            "root_id": self.root_id,
            "root_title": self.root_title,
            "cascade": self.cascade,
            "portfolios": list(self.descendants.portfolios),
            "artworks": list(self.descendants.artworks),
            "order": [t.doc_id for t in self.ordered_targets()],
            "confirmation_message": self.confirmation_message,
            "confirmation_phrase": self.confirmation_phrase,
        }


def plan_cascade(
    store: DocumentStore,
    root_id: str,
    operation: CascadeOperation,
) -> CascadePlan:
    """Build a :class:`CascadePlan` for *operation* on *root_id*.

    A portfolio with no sub-portfolios and no artworks, or any
    non-portfolio document, gets a single-document plan and the tree walk
    is skipped.

    Raises:
        DocumentNotFoundError: *root_id* does not exist.
        CascadeCycleError: The hierarchy under *root_id* is not a tree.
    """
    pid = published_id(root_id)
    root = store.get_document(pid)
    if root is None:
        raise DocumentNotFoundError(pid)

    if root.doc_type == "portfolio" and has_children(store, pid):
        descendants = collect_descendants(store, pid)
        cascade = True
    else:
        descendants = Descendants(root_id=pid)
        if root.doc_type == "artwork":
            descendants.artworks.append(pid)
        else:
            descendants.portfolios.append(pid)
            descendants.depths[pid] = 0
        cascade = False

    return CascadePlan(
        operation=operation,
        root_id=pid,
        root_type=root.doc_type,
        root_title=root.title,
        descendants=descendants,
        cascade=cascade,
    )
