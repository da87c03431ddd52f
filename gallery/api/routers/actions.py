"""Document-action endpoints used by the studio.

Routes
------
GET  /actions/{schema_type}/{doc_id}      Actions offered for a document
POST /actions/{doc_id}/{action}/plan      Preview: targets, order, confirmation rule
POST /actions/{doc_id}/{action}           Execute with the user's confirmation
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from gallery.actions import DocumentAction, get_action, resolve_actions
from gallery.api.errors import http_error
from gallery.errors import GalleryError
from gallery.store.base import DocumentStore

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class ExecuteRequest(BaseModel):
    confirmation: str | None = None
    fail_fast: bool = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _lookup(store: DocumentStore, doc_id: str, name: str) -> DocumentAction:
    try:
        doc = store.get_document(doc_id)
    except GalleryError as exc:
        raise http_error(exc) from exc
    if doc is None:
        raise HTTPException(status_code=404, detail=f"Document '{doc_id}' not found.")
    try:
        action = get_action(doc.doc_type, name)
    except KeyError as exc:
        raise HTTPException(
            status_code=404,
            detail=f"No action '{name}' for {doc.doc_type} documents.",
        ) from exc
    if not action.applies_to(doc):
        raise HTTPException(status_code=404, detail=f"'{name}' does not apply to '{doc_id}'.")
    reason = action.disabled_reason(doc)
    if reason:
        raise HTTPException(status_code=409, detail=reason)
    return action


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/{schema_type}/{doc_id}", response_model=list[dict[str, Any]])
def list_actions_endpoint(schema_type: str, doc_id: str, request: Request) -> list[dict[str, Any]]:
    """Return the actions the studio should show for this document."""
    store = request.app.state.store
    actions = resolve_actions(schema_type)
    if not actions:
        return []
    try:
        doc = store.get_document(doc_id)
    except GalleryError as exc:
        raise http_error(exc) from exc
    return [a.describe(doc) for a in actions if a.applies_to(doc)]


@router.post("/{doc_id}/{action}/plan", response_model=dict[str, Any])
def plan_action_endpoint(doc_id: str, action: str, request: Request) -> dict[str, Any]:
    """Return what *action* would touch, in order, and how to confirm it."""
    store = request.app.state.store
    document_action = _lookup(store, doc_id, action)
    try:
        plan = document_action.plan(store, doc_id)
    except GalleryError as exc:
        raise http_error(exc) from exc
    return {"action": document_action.describe(), **plan.to_dict()}


@router.post("/{doc_id}/{action}", response_model=dict[str, Any])
def execute_action_endpoint(
    doc_id: str,
    action: str,
    body: ExecuteRequest,
    request: Request,
) -> dict[str, Any]:
    """Run *action*; the body must carry the confirmation its plan asks for."""
    store = request.app.state.store
    document_action = _lookup(store, doc_id, action)
    try:
        report = document_action.handle(
            store, doc_id, confirmation=body.confirmation, fail_fast=body.fail_fast
        )
    except GalleryError as exc:
        raise http_error(exc) from exc
    return report.to_dict()
