"""Tests for the SQLite dataset mirror."""

from __future__ import annotations

import json

import pytest

from gallery.errors import CmsRequestError, DocumentNotFoundError, ReferenceConflictError
from gallery.models import PublishState
from gallery.store import LocalStore, open_store


@pytest.fixture()
def export_file(tmp_path):
    lines = [
        {"_id": "p", "_type": "portfolio", "title": "Published title"},
        {"_id": "drafts.p", "_type": "portfolio", "title": "Draft title"},
        {"_id": "drafts.q", "_type": "portfolio", "title": "Only a draft",
         "parentPortfolio": {"_type": "reference", "_ref": "p"}},
        {"_id": "drafts.drafts.p", "_type": "portfolio", "title": "Corrupted"},
        {"_id": "a", "_type": "artwork", "title": "Art",
         "portfolio": {"_type": "reference", "_ref": "drafts.q"}},
    ]
    path = tmp_path / "export.ndjson"
    path.write_text("\n".join(json.dumps(line) for line in lines) + "\n\n", encoding="utf-8")
    return path


class TestImportExport:
    def test_import_folds_drafts(self, store, export_file):
        assert store.import_ndjson(export_file) == 5
        p = store.get_document("p")
        assert p.title == "Draft title"
        assert p.published is True
        q = store.get_document("drafts.q")
        assert q.id == "q"
        assert q.published is False

    def test_corrupted_ids_are_kept_verbatim(self, store, export_file):
        store.import_ndjson(export_file)
        assert store.raw_ids_with_prefix("drafts.drafts.") == ["drafts.drafts.p"]
        assert set(store.raw_ids_with_prefix("drafts.")) == {"drafts.q", "drafts.drafts.p"}
        assert store.get_document("drafts.drafts.p").title == "Corrupted"

    def test_references_are_normalised(self, store, export_file):
        store.import_ndjson(export_file)
        assert store.artwork_ids("q") == ["a"]
        assert store.child_portfolio_ids("p") == ["q"]

    def test_export_restores_draft_ids(self, store, export_file, tmp_path):
        store.import_ndjson(export_file)
        out = tmp_path / "out" / "export.ndjson"
        assert store.export_ndjson(out) == 4
        ids = {json.loads(line)["_id"] for line in out.read_text(encoding="utf-8").splitlines()}
        assert ids == {"p", "drafts.q", "drafts.drafts.p", "a"}


class TestWrites:
    def test_create_duplicate(self, store, portfolio_doc):
        store.create(portfolio_doc("p", "One"))
        with pytest.raises(CmsRequestError):
            store.create(portfolio_doc("p", "Two"))

    def test_create_without_id(self, store):
        doc = store.create({"_type": "tag", "name": "ink"})
        assert doc.id
        assert doc.title == "ink"

    def test_patch_dotted_path_updates_references(self, scenario):
        scenario.patch("a1", set_fields={"video.asset._ref": "file-new"})
        assert scenario.get_document("a1").body["video"]["asset"]["_ref"] == "file-new"
        assert scenario.referencing_ids("file-new") == ["a1"]

    def test_patch_unset(self, scenario):
        scenario.patch("a1", unset=["slug"])
        assert "slug" not in scenario.get_document("a1").body

    def test_patch_missing(self, store):
        with pytest.raises(DocumentNotFoundError):
            store.patch("ghost", set_fields={"title": "x"})

    def test_delete_blocked_by_outside_reference(self, scenario):
        with pytest.raises(ReferenceConflictError) as excinfo:
            scenario.delete_many(["q"])
        assert excinfo.value.doc_id == "q"
        assert scenario.get_document("q") is not None

    def test_delete_raw_leaves_real_document(self, store, export_file):
        store.import_ndjson(export_file)
        store.delete_raw("drafts.drafts.p")
        store.delete_raw("drafts.p")
        assert store.get_document("drafts.drafts.p") is None
        assert store.get_document("p") is not None

    def test_publish_state(self, draft_scenario):
        assert draft_scenario.set_publish_state("a1", PublishState.PUBLISHED) is True
        assert draft_scenario.set_publish_state("a1", PublishState.PUBLISHED) is False
        assert draft_scenario.get_document("a1").published
        with pytest.raises(DocumentNotFoundError):
            draft_scenario.set_publish_state("ghost", PublishState.DRAFT)


class TestAssets:
    def test_upload_is_content_addressed(self, store, tmp_path):
        image = tmp_path / "wave.jpg"
        image.write_bytes(b"pixels")
        first = store.upload_asset("image", image, filename="wave-hq.jpg")
        assert first["_type"] == "sanity.imageAsset"
        assert first["_id"].startswith("image-") and first["_id"].endswith("-jpg")
        assert first["originalFilename"] == "wave-hq.jpg"
        assert first["mimeType"] == "image/jpeg"
        assert store.upload_asset("image", image)["_id"] == first["_id"]

    def test_unknown_kind(self, store, tmp_path):
        path = tmp_path / "x.bin"
        path.write_bytes(b"x")
        with pytest.raises(ValueError):
            store.upload_asset("video", path)


class TestOpenStore:
    def test_local_target(self):
        s = open_store("local::memory:")
        try:
            assert isinstance(s, LocalStore)
        finally:
            s.close()

    def test_unknown_target(self):
        with pytest.raises(ValueError):
            open_store("ftp://nowhere")
