"""HTTP client and document store for a live Sanity dataset.

Endpoints used
--------------
``GET  /v{api}/data/query/{dataset}``    GROQ queries
``GET  /v{api}/data/doc/{dataset}/{ids}`` fetch documents by id
``POST /v{api}/data/mutate/{dataset}``   create / patch / delete transactions
``POST /v{api}/data/actions/{dataset}``  atomic publish / unpublish
``POST /v{api}/assets/{kind}s/{dataset}`` image and file uploads

All requests are synchronous and sequential; one ``httpx.Client`` is kept
open per store.
"""

from __future__ import annotations

import json
import logging
import mimetypes
from pathlib import Path
from typing import Any

import httpx

from gallery.config import settings
from gallery.documents import dedupe_ids, draft_id, is_draft_id, published_id
from gallery.errors import (
    CmsRequestError,
    ConfigurationError,
    DocumentNotFoundError,
    ReferenceConflictError,
)
from gallery.models import Document, PublishState

logger = logging.getLogger(__name__)

_PUBLISH_ACTION = "sanity.action.document.publish"
_UNPUBLISH_ACTION = "sanity.action.document.unpublish"


# ---------------------------------------------------------------------------
# Low-level HTTP client
# ---------------------------------------------------------------------------

class SanityClient:
    """Thin wrapper over the Sanity HTTP API."""

    def __init__(
        self,
        project_id: str | None = None,
        dataset: str | None = None,
        token: str | None = None,
        api_version: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.project_id = project_id or settings.sanity_project_id
        self.dataset = dataset or settings.sanity_dataset
        self.token = token if token is not None else settings.sanity_token
        self.api_version = api_version or settings.sanity_api_version
        if not self.project_id:
            raise ConfigurationError(
                "SANITY_PROJECT_ID is not set. Add it to your .env file."
            )

        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        self.base_url = f"https://{self.project_id}.api.sanity.io/v{self.api_version}"
        self._http = httpx.Client(
            headers=headers,
            timeout=timeout or settings.request_timeout,
            follow_redirects=True,
        )

    # -- transport -----------------------------------------------------
    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise CmsRequestError(f"{method} {path} failed: {exc}") from exc
        _raise_for_response(response)
        return response

    # -- API -----------------------------------------------------------
    def query(self, groq: str, params: dict[str, Any] | None = None) -> Any:
        """Run a GROQ query and return its ``result``."""
        query_params = {"query": groq}
        for key, value in (params or {}).items():
            query_params[f"${key}"] = json.dumps(value)
        response = self._request("GET", f"/data/query/{self.dataset}", params=query_params)
        return response.json().get("result")

    def get_documents(self, ids: list[str]) -> list[dict[str, Any]]:
        response = self._request("GET", f"/data/doc/{self.dataset}/{','.join(ids)}")
        return [d for d in response.json().get("documents", []) if d]

    def mutate(
        self,
        mutations: list[dict[str, Any]],
        return_documents: bool = False,
    ) -> dict[str, Any]:
        """Submit *mutations* as one transaction."""
        params = {"returnIds": "true"}
        if return_documents:
            params["returnDocuments"] = "true"
        response = self._request(
            "POST",
            f"/data/mutate/{self.dataset}",
            params=params,
            json={"mutations": mutations},
        )
        return response.json()

    def actions(self, actions: list[dict[str, Any]]) -> dict[str, Any]:
        response = self._request(
            "POST", f"/data/actions/{self.dataset}", json={"actions": actions}
        )
        return response.json()

    def upload_asset(
        self,
        kind: str,
        content: bytes,
        filename: str,
        content_type: str | None = None,
    ) -> dict[str, Any]:
        """Upload raw bytes as an ``image`` or ``file`` asset."""
        if kind not in ("image", "file"):
            raise ValueError(f"Unknown asset kind {kind!r}")
        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        response = self._request(
            "POST",
            f"/assets/{kind}s/{self.dataset}",
            params={"filename": filename},
            content=content,
            headers={"Content-Type": content_type},
        )
        return response.json()["document"]

    def close(self) -> None:
        self._http.close()


def _raise_for_response(response: httpx.Response) -> None:
    """Map a non-2xx CMS response onto the :mod:`gallery.errors` hierarchy."""
    if response.is_success:
        return

    try:
        body = response.json()
    except ValueError:
        body = {}

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        description = error.get("description") or error.get("message") or ""
        types = [error.get("type") or ""]
        doc_id = None
        for item in error.get("items") or []:
            item_error = item.get("error") or {}
            types.append(item_error.get("type") or "")
            doc_id = doc_id or item_error.get("id")
            description = description or item_error.get("description", "")
    else:
        types = []
        doc_id = None
        if isinstance(error, str):
            description = error
        elif isinstance(body, dict):
            description = str(body.get("message", ""))
        else:
            description = ""

    description = description or response.text or response.reason_phrase
    type_blob = " ".join(types).lower()

    if "reference" in type_blob or "references" in description.lower():
        raise ReferenceConflictError(description, doc_id=doc_id)
    if response.status_code == 404 or "notfound" in type_blob:
        raise DocumentNotFoundError(doc_id or "unknown")
    raise CmsRequestError(
        f"CMS request failed ({response.status_code}): {description}",
        status_code=response.status_code,
    )


# ---------------------------------------------------------------------------
# Document store
# ---------------------------------------------------------------------------

def _merge_versions(raw_docs: list[dict[str, Any]]) -> dict[str, Document]:
    """Fold published and draft versions into one :class:`Document` per id."""
    grouped: dict[str, dict[str, dict[str, Any]]] = {}
    for raw in raw_docs:
        pid = published_id(raw["_id"])
        slot = "draft" if is_draft_id(raw["_id"]) else "published"
        grouped.setdefault(pid, {})[slot] = raw

    merged: dict[str, Document] = {}
    for pid, versions in grouped.items():
        body = versions.get("draft") or versions["published"]
        merged[pid] = Document(
            id=pid,
            doc_type=body.get("_type", ""),
            title=body.get("title") or body.get("name") or "",
            body=body,
            published="published" in versions,
            has_draft="draft" in versions,
        )
    return merged


class SanityStore:
    """:class:`~gallery.store.base.DocumentStore` backed by the live CMS."""

    def __init__(self, client: SanityClient | None = None) -> None:
        self.client = client or SanityClient()
        self.name = f"sanity:{self.client.project_id}/{self.client.dataset}"

    # -- helpers -------------------------------------------------------
    def _existing_versions(self, doc_id: str) -> list[str]:
        pid = published_id(doc_id)
        return self.client.query(
            "*[_id in [$id, $draft]]._id", {"id": pid, "draft": draft_id(pid)}
        ) or []

    # -- reads ---------------------------------------------------------
    def get_document(self, doc_id: str) -> Document | None:
        pid = published_id(doc_id)
        merged = _merge_versions(self.client.get_documents([pid, draft_id(pid)]))
        return merged.get(pid)

    def list_documents(self, doc_type: str) -> list[Document]:
        raw = self.client.query("*[_type == $type]", {"type": doc_type}) or []
        return list(_merge_versions(raw).values())

    def child_portfolio_ids(self, portfolio_id: str) -> list[str]:
        ids = self.client.query(
            '*[_type == "portfolio" && parentPortfolio._ref == $id]._id',
            {"id": published_id(portfolio_id)},
        )
        return dedupe_ids(ids or [])

    def artwork_ids(self, portfolio_id: str) -> list[str]:
        ids = self.client.query(
            '*[_type == "artwork" && portfolio._ref == $id]._id',
            {"id": published_id(portfolio_id)},
        )
        return dedupe_ids(ids or [])

    def child_counts(self, portfolio_id: str) -> tuple[int, int]:
        result = self.client.query(
            """{
              "portfolios": count(*[_type == "portfolio" && parentPortfolio._ref == $id]),
              "artworks":   count(*[_type == "artwork" && portfolio._ref == $id])
            }""",
            {"id": published_id(portfolio_id)},
        ) or {}
        return int(result.get("portfolios", 0)), int(result.get("artworks", 0))

    def referencing_ids(self, doc_id: str) -> list[str]:
        ids = self.client.query("*[references($id)]._id", {"id": published_id(doc_id)})
        return dedupe_ids(ids or [])

    def raw_ids_with_prefix(self, prefix: str) -> list[str]:
        return self.client.query("*[_id in path($path)]._id", {"path": f"{prefix}**"}) or []

    # -- writes --------------------------------------------------------
    def create(self, doc: dict[str, Any]) -> Document:
        result = self.client.mutate([{"create": doc}], return_documents=True)
        created = result["results"][0].get("document") or {**doc, "_id": result["results"][0]["id"]}
        return _merge_versions([created])[published_id(created["_id"])]

    def patch(
        self,
        doc_id: str,
        set_fields: dict[str, Any] | None = None,
        unset: list[str] | None = None,
    ) -> None:
        versions = self._existing_versions(doc_id)
        if not versions:
            raise DocumentNotFoundError(published_id(doc_id))
        operations: dict[str, Any] = {}
        if set_fields:
            operations["set"] = set_fields
        if unset:
            operations["unset"] = unset
        if not operations:
            return
        self.client.mutate([{"patch": {"id": vid, **operations}} for vid in versions])

    def delete_many(self, doc_ids: list[str]) -> None:
        mutations: list[dict[str, Any]] = []
        for doc_id in doc_ids:
            pid = published_id(doc_id)
            mutations.append({"delete": {"id": draft_id(pid)}})
            mutations.append({"delete": {"id": pid}})
        if mutations:
            logger.debug("Deleting %d documents in one transaction", len(doc_ids))
            self.client.mutate(mutations)

    def delete_raw(self, raw_id: str) -> None:
        self.client.mutate([{"delete": {"id": raw_id}}])

    def set_publish_state(self, doc_id: str, state: PublishState) -> bool:
        pid = published_id(doc_id)
        did = draft_id(pid)
        versions = set(self._existing_versions(pid))
        if not versions:
            raise DocumentNotFoundError(pid)

        if state is PublishState.PUBLISHED:
            if did not in versions:
                return False
            action_type = _PUBLISH_ACTION
        else:
            if pid not in versions:
                return False
            action_type = _UNPUBLISH_ACTION

        self.client.actions(
            [{"actionType": action_type, "draftId": did, "publishedId": pid}]
        )
        return True

    def upload_asset(self, kind: str, path: Path, filename: str | None = None) -> dict[str, Any]:
        return self.client.upload_asset(kind, path.read_bytes(), filename or path.name)

    def close(self) -> None:
        self.client.close()
