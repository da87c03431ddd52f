"""Apply a :class:`~gallery.cascade.plan.CascadePlan` to a document store.

Failure policy
--------------
Delete runs as one atomic transaction: either every target goes or none
does.  Every other operation runs item by item; a failure is logged and
recorded in the report and the loop moves on, unless ``fail_fast`` is set,
in which case the remaining targets are reported as skipped.
"""

from __future__ import annotations

import logging
from typing import Callable

from gallery.cascade.plan import CascadePlan
from gallery.documents import clear_unpublished_title, mark_unpublished_title
from gallery.errors import GalleryError
from gallery.models import (
    CascadeOperation,
    CascadeReport,
    ItemResult,
    ListingStatus,
    PublishState,
)
from gallery.store.base import DocumentStore

logger = logging.getLogger(__name__)

NOT_ATTEMPTED = "not attempted after an earlier failure"


# ---------------------------------------------------------------------------
# Per-document transitions.  Each returns False when nothing had to change.
# ---------------------------------------------------------------------------

def _publish(store: DocumentStore, doc_id: str) -> bool:
    return store.set_publish_state(doc_id, PublishState.PUBLISHED)


def _unpublish(store: DocumentStore, doc_id: str) -> bool:
    return store.set_publish_state(doc_id, PublishState.DRAFT)


def _set_listing(store: DocumentStore, doc_id: str, status: ListingStatus) -> bool:
    doc = store.get_document(doc_id)
    if doc is None:
        return False

    updates: dict[str, str] = {}
    if doc.title:
        if status is ListingStatus.UNPUBLISHED:
            title = mark_unpublished_title(doc.title)
        else:
            title = clear_unpublished_title(doc.title)
        if title != doc.title:
            updates["title"] = title
    if doc.listing_status != status.value:
        updates["listingStatus"] = status.value

    if not updates:
        return False
    store.patch(doc_id, set_fields=updates)
    return True


def mark_unpublished(store: DocumentStore, doc_id: str) -> bool:
    """Flag *doc_id* as unpublished (status field and title suffix, one patch)."""
    return _set_listing(store, doc_id, ListingStatus.UNPUBLISHED)


def clear_unpublished(store: DocumentStore, doc_id: str) -> bool:
    """Undo :func:`mark_unpublished`."""
    return _set_listing(store, doc_id, ListingStatus.LISTED)


_HANDLERS: dict[CascadeOperation, Callable[[DocumentStore, str], bool]] = {
    CascadeOperation.PUBLISH: _publish,
    CascadeOperation.UNPUBLISH: _unpublish,
    CascadeOperation.MARK_UNPUBLISHED: mark_unpublished,
    CascadeOperation.CLEAR_UNPUBLISHED: clear_unpublished,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def apply_cascade(
    store: DocumentStore,
    plan: CascadePlan,
    fail_fast: bool = False,
) -> CascadeReport:
    """Run *plan* against *store* and return a per-document report."""
    report = CascadeReport(operation=plan.operation, root_id=plan.root_id)
    targets = plan.ordered_targets()
    logger.info(
        "Applying %s to %d documents under %s (%s)",
        plan.operation.value,
        len(targets),
        plan.root_id,
        store.name,
    )

    if plan.operation is CascadeOperation.DELETE:
        try:
            store.delete_many([t.doc_id for t in targets])
        except GalleryError as exc:
            logger.error("Cascade delete of %s rejected: %s", plan.root_id, exc)
            report.results = [
                ItemResult(t.doc_id, t.doc_type, "failed", str(exc)) for t in targets
            ]
        else:
            report.results = [ItemResult(t.doc_id, t.doc_type, "ok") for t in targets]
        return report

    handler = _HANDLERS[plan.operation]
    for index, target in enumerate(targets):
        try:
            changed = handler(store, target.doc_id)
        except GalleryError as exc:
            logger.warning(
                "%s failed for %s %s: %s",
                plan.operation.value,
                target.doc_type,
                target.doc_id,
                exc,
            )
            report.results.append(
                ItemResult(target.doc_id, target.doc_type, "failed", str(exc))
            )
            if fail_fast:
                report.results.extend(
                    ItemResult(t.doc_id, t.doc_type, "skipped", NOT_ATTEMPTED)
                    for t in targets[index + 1:]
                )
                break
            continue
        report.results.append(
            ItemResult(target.doc_id, target.doc_type, "ok" if changed else "skipped")
        )

    logger.info("%s", report.summary())
    return report
