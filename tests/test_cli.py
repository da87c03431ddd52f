"""Tests for the gallery CLI.

Every test works on a local mirror inside ``tmp_path``; the workspace
setting is patched so no real context or database is touched.
"""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from gallery.config import settings
from gallery.store import LocalStore
from gallery_cli.context import CliContext, load_context, save_context
from gallery_cli.main import app
from gallery_cli.rendering import render_tree

runner = CliRunner()


@pytest.fixture()
def workspace(tmp_path, monkeypatch):
    """Isolated workspace plus a small dataset export."""
    monkeypatch.setattr(settings, "workspace_dir", tmp_path / "ws")
    monkeypatch.setattr(settings, "store_target", "sanity")
    lines = [
        {"_id": "p", "_type": "portfolio", "title": "Parent"},
        {"_id": "q", "_type": "portfolio", "title": "Child",
         "parentPortfolio": {"_type": "reference", "_ref": "p"}},
        {"_id": "a1", "_type": "artwork", "title": "First", "mediaType": "image",
         "portfolio": {"_type": "reference", "_ref": "p"}},
        {"_id": "drafts.a2", "_type": "artwork", "title": "Second", "mediaType": "video",
         "displayTitle": True, "portfolio": {"_type": "reference", "_ref": "q"}},
        {"_id": "drafts.drafts.a1", "_type": "artwork", "title": "Ghost"},
    ]
    export = tmp_path / "export.ndjson"
    export.write_text("\n".join(json.dumps(line) for line in lines), encoding="utf-8")
    return tmp_path


@pytest.fixture()
def imported(workspace):
    result = runner.invoke(app, ["dataset", "import", str(workspace / "export.ndjson")])
    assert result.exit_code == 0, result.output
    return settings.workspace_dir / "dataset.db"


def _open(db) -> LocalStore:
    return LocalStore.open(db)


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

class TestContext:
    def test_defaults_when_missing(self, workspace):
        ctx = load_context()
        assert ctx.active_store is None
        assert ctx.store_target == "sanity"

    def test_round_trip(self, workspace):
        save_context(CliContext(active_store="local:/tmp/x.db", user_preferences={"verbose": True}))
        ctx = load_context()
        assert ctx.active_store == "local:/tmp/x.db"
        assert ctx.user_preferences == {"verbose": True}

    def test_corrupt_file(self, workspace):
        settings.cli_config_dir.mkdir(parents=True)
        (settings.cli_config_dir / "context.json").write_text("{oops", encoding="utf-8")
        assert load_context() == CliContext()


# ---------------------------------------------------------------------------
# dataset
# ---------------------------------------------------------------------------

class TestDataset:
    def test_import_sets_active_store(self, workspace, imported):
        assert load_context().active_store == f"local:{imported}"
        assert load_context().last_import.endswith("export.ndjson")

    def test_status(self, imported):
        result = runner.invoke(app, ["dataset", "status"])
        assert result.exit_code == 0, result.output
        assert "portfolio: 2" in result.output
        assert "artwork: 3" in result.output
        assert "draft ids: 2" in result.output

    def test_export(self, imported, workspace):
        out = workspace / "out.ndjson"
        result = runner.invoke(app, ["dataset", "export", str(out)])
        assert result.exit_code == 0, result.output
        assert len(out.read_text(encoding="utf-8").splitlines()) == 5

    def test_use_rejects_unknown_target(self, workspace):
        result = runner.invoke(app, ["dataset", "use", "ftp://x"])
        assert result.exit_code == 1
        assert "❌" in result.output

    def test_use_rejects_missing_mirror(self, workspace):
        result = runner.invoke(app, ["dataset", "use", f"local:{workspace / 'nope.db'}"])
        assert result.exit_code == 1

    def test_use_sanity(self, imported):
        result = runner.invoke(app, ["dataset", "use", "sanity"])
        assert result.exit_code == 0
        assert load_context().active_store == "sanity"


# ---------------------------------------------------------------------------
# tree
# ---------------------------------------------------------------------------

class TestTree:
    def test_prints_hierarchy(self, imported):
        result = runner.invoke(app, ["tree"])
        assert result.exit_code == 0, result.output
        assert "📁 Parent" in result.output
        assert "📁 Child" in result.output
        assert "🎬 Second (draft)" in result.output

    def test_without_artworks(self, imported):
        result = runner.invoke(app, ["tree", "p", "--no-artworks"])
        assert result.exit_code == 0
        assert "First" not in result.output

    def test_missing_portfolio(self, imported):
        result = runner.invoke(app, ["tree", "ghost"])
        assert result.exit_code == 1
        assert "❌ Document not found" in result.output

    def test_render_tree_markers(self):
        tree = {
            "id": "p", "type": "portfolio", "title": "Root", "published": True,
            "listingStatus": "unpublished",
            "children": [],
            "artworks": [{"id": "a", "type": "artwork", "title": "", "mediaType": "pdf",
                          "published": True}],
        }
        lines = render_tree(tree).splitlines()
        assert lines[0] == "📁 Root (unlisted)"
        assert lines[1] == "└── 📄 Untitled (a)"


# ---------------------------------------------------------------------------
# cascade
# ---------------------------------------------------------------------------

class TestCascade:
    def test_dry_run(self, imported):
        result = runner.invoke(app, ["cascade", "delete", "p", "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "CASCADE DELETE" in result.output
        assert "[portfolio] p" in result.output
        assert _open(imported).get_document("p") is not None

    def test_delete_rejected(self, imported):
        result = runner.invoke(app, ["cascade", "delete", "p"], input="delete\n")
        assert result.exit_code == 1
        assert "Aborted. Nothing was changed." in result.output
        assert _open(imported).get_document("p") is not None

    def test_delete_confirmed(self, imported):
        result = runner.invoke(app, ["cascade", "delete", "p"], input="DELETE\n")
        assert result.exit_code == 0, result.output
        assert "✅ delete: 4 ok" in result.output
        store = _open(imported)
        assert store.list_documents("portfolio") == []
        assert store.get_document("drafts.drafts.a1") is not None

    def test_publish_with_prompt(self, imported):
        result = runner.invoke(app, ["cascade", "publish", "p", "-v"], input="y\n")
        assert result.exit_code == 0, result.output
        assert _open(imported).get_document("a2").published

    def test_mark_unpublished_yes(self, imported):
        result = runner.invoke(app, ["cascade", "mark-unpublished", "p", "--yes"])
        assert result.exit_code == 0, result.output
        assert _open(imported).get_document("q").title == "Child unpublished"

    def test_missing_document(self, imported):
        result = runner.invoke(app, ["cascade", "publish", "ghost", "--yes"])
        assert result.exit_code == 1
        assert "❌ Document not found" in result.output


# ---------------------------------------------------------------------------
# cleanup / migrate
# ---------------------------------------------------------------------------

class TestMaintenanceCommands:
    def test_corrupted_drafts_dry_run(self, imported):
        result = runner.invoke(app, ["cleanup", "corrupted-drafts", "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "drafts.drafts.a1" in result.output
        assert "would change (dry run)" in result.output

    def test_corrupted_drafts_confirm(self, imported):
        result = runner.invoke(app, ["cleanup", "corrupted-drafts"], input="y\n")
        assert result.exit_code == 0, result.output
        assert _open(imported).get_document("drafts.drafts.a1") is None

    def test_corrupted_drafts_declined(self, imported):
        result = runner.invoke(app, ["cleanup", "corrupted-drafts"], input="n\n")
        assert result.exit_code == 1
        assert _open(imported).get_document("drafts.drafts.a1") is not None

    def test_orphans_nothing_to_do(self, imported):
        result = runner.invoke(app, ["cleanup", "orphans"])
        assert result.exit_code == 0
        assert "0 would change" in result.output

    def test_display_titles(self, imported):
        result = runner.invoke(app, ["migrate", "display-titles", "-v"])
        assert result.exit_code == 0, result.output
        assert _open(imported).get_document("a1").body["displayTitle"] is True

    def test_normalize_titles(self, imported):
        result = runner.invoke(app, ["migrate", "normalize-titles"])
        assert result.exit_code == 0, result.output
        assert _open(imported).get_document("p").listing_status == "listed"


# ---------------------------------------------------------------------------
# media
# ---------------------------------------------------------------------------

class TestMediaCommands:
    def test_list_videos_empty(self, imported):
        result = runner.invoke(app, ["media", "list-videos"])
        assert result.exit_code == 0
        assert "No videos found!" in result.output

    def test_upload(self, imported, workspace):
        base = workspace / "images"
        (base / "hq" / "Prints").mkdir(parents=True)
        (base / "lq" / "Prints").mkdir(parents=True)
        (base / "hq" / "Prints" / "owl.jpg").write_bytes(b"hq")
        (base / "lq" / "Prints" / "owl.webp").write_bytes(b"lq")
        result = runner.invoke(app, ["media", "upload", str(base)])
        assert result.exit_code == 0, result.output
        assert "Artworks created: 1" in result.output

    def test_upload_originals(self, imported, workspace):
        from PIL import Image

        source = workspace / "originals" / "Prints"
        source.mkdir(parents=True)
        Image.new("RGB", (600, 300)).save(source / "owl.png")
        (source / "flight.mov").write_bytes(b"video")
        result = runner.invoke(
            app, ["media", "upload", str(workspace / "originals"), "--originals",
                  "--work-dir", str(workspace / "work")],
        )
        assert result.exit_code == 0, result.output
        assert "Prepared 1 images and 1 videos" in result.output
        assert "Artworks created: 2" in result.output
        assert (workspace / "work" / "lq" / "Prints" / "owl.jpg").is_file()

    def test_rollback_without_mapping(self, imported):
        result = runner.invoke(app, ["media", "rollback"])
        assert result.exit_code == 0
        assert "Nothing to roll back" in result.output

    def test_mux_migrate_needs_credentials(self, imported, monkeypatch):
        monkeypatch.setattr(settings, "mux_token_id", "")
        monkeypatch.setattr(settings, "mux_token_secret", "")
        result = runner.invoke(app, ["media", "mux-migrate"])
        assert result.exit_code == 1
        assert "MUX_TOKEN_ID" in result.output


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------

class TestServe:
    @pytest.fixture()
    def uvicorn_calls(self, monkeypatch):
        import uvicorn

        calls: list[tuple] = []

        def fake_run(app_path, **kwargs):
            calls.append((app_path, kwargs, settings.store_target))

        # setenv first so the variable serve writes is undone after the test
        monkeypatch.setenv("GALLERY_STORE", "")
        monkeypatch.delenv("GALLERY_STORE")
        monkeypatch.setattr(uvicorn, "run", fake_run)
        return calls

    def test_serves_active_mirror(self, imported, uvicorn_calls):
        import os

        result = runner.invoke(app, ["serve", "--port", "9001"])
        assert result.exit_code == 0, result.output
        app_path, kwargs, target = uvicorn_calls[0]
        assert app_path == "gallery.api.app:app"
        assert kwargs["port"] == 9001
        assert target == f"local:{imported}"
        assert os.environ["GALLERY_STORE"] == f"local:{imported}"
        assert f"Serving store: local:{imported}" in result.output

    def test_app_opens_the_served_store(self, imported, uvicorn_calls):
        from fastapi.testclient import TestClient

        from gallery.api.app import create_app

        runner.invoke(app, ["serve"])
        with TestClient(create_app()) as client:
            assert client.get("/portfolios").json() == [{"id": "p", "title": "Parent"}]

    def test_defaults_to_live_dataset(self, workspace, uvicorn_calls):
        result = runner.invoke(app, ["serve"])
        assert result.exit_code == 0, result.output
        assert uvicorn_calls[0][2] == "sanity"
