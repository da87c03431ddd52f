"""Tests for the Sanity HTTP client and store.

All HTTP traffic is intercepted with respx; nothing leaves the process.
"""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from gallery.config import settings
from gallery.errors import (
    CmsRequestError,
    ConfigurationError,
    DocumentNotFoundError,
    ReferenceConflictError,
)
from gallery.models import PublishState
from gallery.store.sanity import SanityClient, SanityStore

HOST = "proj.api.sanity.io"
PREFIX = "/v2023-03-01"
QUERY = f"{PREFIX}/data/query/production"
MUTATE = f"{PREFIX}/data/mutate/production"
ACTIONS = f"{PREFIX}/data/actions/production"


@pytest.fixture()
def router():
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture()
def sanity(router):
    client = SanityClient(
        project_id="proj", dataset="production", token="tok", api_version="2023-03-01"
    )
    store = SanityStore(client)
    yield store
    store.close()


def _result(value) -> httpx.Response:
    return httpx.Response(200, json={"result": value})


def _body(route) -> dict:
    return json.loads(route.calls.last.request.content)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class TestClient:
    def test_missing_project_id(self, monkeypatch):
        monkeypatch.setattr(settings, "sanity_project_id", "")
        with pytest.raises(ConfigurationError):
            SanityClient()

    def test_query_encodes_params_as_json(self, router, sanity):
        route = router.get(host=HOST, path=QUERY).mock(return_value=_result(["x"]))
        assert sanity.client.query("*[_id == $id]._id", {"id": "x"}) == ["x"]
        request = route.calls.last.request
        assert request.url.params["$id"] == '"x"'
        assert request.headers["authorization"] == "Bearer tok"

    def test_network_error(self, router, sanity):
        router.get(host=HOST, path=QUERY).mock(side_effect=httpx.ConnectError("boom"))
        with pytest.raises(CmsRequestError):
            sanity.client.query("*")

    def test_reference_error_is_classified(self, router, sanity):
        router.post(host=HOST, path=MUTATE).mock(
            return_value=httpx.Response(
                409,
                json={
                    "error": {
                        "type": "mutationError",
                        "description": "Mutation failed",
                        "items": [
                            {
                                "error": {
                                    "type": "documentHasExistingReferencesError",
                                    "id": "p",
                                    "description": 'Document "p" cannot be deleted as there are references to it',
                                }
                            }
                        ],
                    }
                },
            )
        )
        with pytest.raises(ReferenceConflictError) as excinfo:
            sanity.delete_many(["p"])
        assert excinfo.value.doc_id == "p"
        assert excinfo.value.status_code == 409

    def test_server_error(self, router, sanity):
        router.get(host=HOST, path=QUERY).mock(
            return_value=httpx.Response(500, json={"error": "Internal"})
        )
        with pytest.raises(CmsRequestError) as excinfo:
            sanity.client.query("*")
        assert excinfo.value.status_code == 500
        assert not isinstance(excinfo.value, ReferenceConflictError)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReads:
    def test_get_document_prefers_draft(self, router, sanity):
        router.get(host=HOST, path__startswith=f"{PREFIX}/data/doc/production/").mock(
            return_value=httpx.Response(
                200,
                json={
                    "documents": [
                        {"_id": "p", "_type": "portfolio", "title": "Old"},
                        {"_id": "drafts.p", "_type": "portfolio", "title": "New"},
                    ]
                },
            )
        )
        doc = sanity.get_document("drafts.p")
        assert doc.id == "p"
        assert doc.title == "New"
        assert doc.published and doc.has_draft

    def test_get_document_missing(self, router, sanity):
        router.get(host=HOST, path__startswith=f"{PREFIX}/data/doc/production/").mock(
            return_value=httpx.Response(200, json={"documents": []})
        )
        assert sanity.get_document("nope") is None

    def test_child_ids_are_deduped(self, router, sanity):
        route = router.get(host=HOST, path=QUERY).mock(
            return_value=_result(["c", "drafts.c", "d"])
        )
        assert sanity.child_portfolio_ids("drafts.p") == ["c", "d"]
        assert route.calls.last.request.url.params["$id"] == '"p"'

    def test_child_counts(self, router, sanity):
        router.get(host=HOST, path=QUERY).mock(
            return_value=_result({"portfolios": 2, "artworks": 0})
        )
        assert sanity.child_counts("p") == (2, 0)

    def test_list_documents_merges_versions(self, router, sanity):
        router.get(host=HOST, path=QUERY).mock(
            return_value=_result([
                {"_id": "a", "_type": "artwork", "title": "A"},
                {"_id": "drafts.a", "_type": "artwork", "title": "A (edited)"},
                {"_id": "drafts.b", "_type": "artwork", "title": "B"},
            ])
        )
        docs = {d.id: d for d in sanity.list_documents("artwork")}
        assert docs["a"].title == "A (edited)"
        assert docs["b"].published is False


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

class TestWrites:
    def test_delete_many_is_one_transaction(self, router, sanity):
        route = router.post(host=HOST, path=MUTATE).mock(
            return_value=httpx.Response(200, json={"results": []})
        )
        sanity.delete_many(["a1", "p"])
        assert route.call_count == 1
        assert _body(route)["mutations"] == [
            {"delete": {"id": "drafts.a1"}},
            {"delete": {"id": "a1"}},
            {"delete": {"id": "drafts.p"}},
            {"delete": {"id": "p"}},
        ]

    def test_patch_touches_every_version(self, router, sanity):
        router.get(host=HOST, path=QUERY).mock(return_value=_result(["p", "drafts.p"]))
        route = router.post(host=HOST, path=MUTATE).mock(
            return_value=httpx.Response(200, json={"results": []})
        )
        sanity.patch("p", set_fields={"listingStatus": "unpublished"})
        patched = [m["patch"]["id"] for m in _body(route)["mutations"]]
        assert patched == ["p", "drafts.p"]

    def test_patch_missing(self, router, sanity):
        router.get(host=HOST, path=QUERY).mock(return_value=_result([]))
        with pytest.raises(DocumentNotFoundError):
            sanity.patch("ghost", set_fields={"title": "x"})

    def test_publish_uses_actions_api(self, router, sanity):
        router.get(host=HOST, path=QUERY).mock(return_value=_result(["drafts.p"]))
        route = router.post(host=HOST, path=ACTIONS).mock(
            return_value=httpx.Response(200, json={"transactionId": "t1"})
        )
        assert sanity.set_publish_state("p", PublishState.PUBLISHED) is True
        assert _body(route)["actions"] == [
            {
                "actionType": "sanity.action.document.publish",
                "draftId": "drafts.p",
                "publishedId": "p",
            }
        ]

    def test_publish_without_draft_is_a_no_op(self, router, sanity):
        router.get(host=HOST, path=QUERY).mock(return_value=_result(["p"]))
        route = router.post(host=HOST, path=ACTIONS)
        assert sanity.set_publish_state("p", PublishState.PUBLISHED) is False
        assert not route.called

    def test_unpublish(self, router, sanity):
        router.get(host=HOST, path=QUERY).mock(return_value=_result(["p"]))
        route = router.post(host=HOST, path=ACTIONS).mock(
            return_value=httpx.Response(200, json={"transactionId": "t2"})
        )
        assert sanity.set_publish_state("p", PublishState.DRAFT) is True
        assert _body(route)["actions"][0]["actionType"] == "sanity.action.document.unpublish"

    def test_upload_asset(self, router, sanity, tmp_path):
        path = tmp_path / "wave.jpg"
        path.write_bytes(b"pixels")
        route = router.post(host=HOST, path=f"{PREFIX}/assets/images/production").mock(
            return_value=httpx.Response(
                200, json={"document": {"_id": "image-abc-jpg", "_type": "sanity.imageAsset"}}
            )
        )
        asset = sanity.upload_asset("image", path, filename="wave-hq.jpg")
        assert asset["_id"] == "image-abc-jpg"
        request = route.calls.last.request
        assert request.url.params["filename"] == "wave-hq.jpg"
        assert request.headers["content-type"] == "image/jpeg"
        assert request.content == b"pixels"
