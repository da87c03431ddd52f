"""Tests for the document-action registry."""

from __future__ import annotations

import dataclasses

import pytest

from gallery.actions import get_action, resolve_actions
from gallery.errors import ConfirmationError, MediaProcessingError, MuxError
from gallery.media.mux import MuxAsset
from gallery.models import CascadeOperation


class TestRegistry:
    def test_portfolio_actions(self):
        actions = resolve_actions("portfolio")
        assert [a.label for a in actions] == [
            "Cascade Publish",
            "Cascade Unpublish",
            "Cascade Mark Unpublish",
            "Cascade Clear Unpublished",
            "Cascade Delete",
        ]
        assert {a.operation for a in actions} == set(CascadeOperation)

    def test_artworks_get_mux_upload(self):
        assert [a.name for a in resolve_actions("artwork")] == ["upload-to-mux"]

    def test_other_types_get_none(self):
        assert resolve_actions("siteSettings") == []

    def test_get_action(self):
        assert get_action("portfolio", "delete").tone == "critical"
        with pytest.raises(KeyError):
            get_action("artwork", "delete")

    def test_disabled_until_saved(self, scenario):
        action = get_action("portfolio", "publish")
        assert action.disabled_reason(None) == "Save the document first"
        described = action.describe(scenario.get_document("p"))
        assert described["disabled"] is False
        assert described["icon"] == "Publish"


class TestHandle:
    def test_delete_needs_phrase(self, scenario):
        action = get_action("portfolio", "delete")
        with pytest.raises(ConfirmationError) as excinfo:
            action.handle(scenario, "p", confirmation="yes")
        assert excinfo.value.expected == "DELETE"
        assert scenario.get_document("p") is not None

        report = action.handle(scenario, "p", confirmation="DELETE")
        assert report.ok
        assert scenario.get_document("p") is None

    def test_mark_unpublished(self, scenario):
        report = get_action("portfolio", "mark-unpublished").handle(scenario, "p", confirmation="yes")
        assert report.ok
        assert scenario.get_document("q").title == "Child unpublished"

    def test_missing_confirmation(self, scenario):
        with pytest.raises(ConfirmationError) as excinfo:
            get_action("portfolio", "publish").handle(scenario, "p", confirmation=None)
        assert excinfo.value.expected is None


# ---------------------------------------------------------------------------
# Upload to Mux
# ---------------------------------------------------------------------------

class FakeMux:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.uploaded: list[bytes] = []
        self.closed = False

    def upload_file(self, path):
        if self.fail:
            raise MuxError("Asset processing failed")
        self.uploaded.append(path.read_bytes())
        return MuxAsset(asset_id="mux-asset", playback_id="mux-play", status="ready")

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def video_artwork(scenario, artwork_doc, tmp_path):
    clip = tmp_path / "clip.mp4"
    clip.write_bytes(b"video bytes")
    asset = scenario.upload_asset("file", clip)
    video = {"_type": "file", "asset": {"_type": "reference", "_ref": asset["_id"]}}
    scenario.create(artwork_doc("v1", "Clip", "p", media_type="video", video=video))
    return scenario


def _mux_action(mux: FakeMux):
    def factory():
        return mux

    return dataclasses.replace(get_action("artwork", "upload-to-mux"), client_factory=factory)


class TestUploadToMux:
    def test_only_shown_for_video_artworks(self, video_artwork):
        action = get_action("artwork", "upload-to-mux")
        assert action.applies_to(video_artwork.get_document("v1"))
        assert not action.applies_to(video_artwork.get_document("a1"))
        assert not action.applies_to(None)

    def test_disabled_reasons(self, video_artwork, artwork_doc):
        action = get_action("artwork", "upload-to-mux")
        assert action.disabled_reason(video_artwork.get_document("v1")) is None

        video_artwork.create(artwork_doc("v2", "No file", "p", media_type="video"))
        assert action.disabled_reason(video_artwork.get_document("v2")) == "No video file to upload"

        video_artwork.patch("v1", set_fields={"muxPlaybackId": "already"})
        assert action.disabled_reason(video_artwork.get_document("v1")) == "Already uploaded to Mux"

    def test_plan_names_the_file(self, video_artwork):
        plan = get_action("artwork", "upload-to-mux").plan(video_artwork, "v1")
        assert plan.filename == "clip.mp4"
        assert plan.confirmation_phrase is None
        assert plan.confirmation_message.startswith('Upload "clip.mp4" to Mux?')

    def test_upload_patches_artwork(self, video_artwork):
        mux = FakeMux()
        report = _mux_action(mux).handle(video_artwork, "v1", confirmation="yes")

        assert report.ok
        assert mux.uploaded == [b"video bytes"]
        assert mux.closed
        body = video_artwork.get_document("v1").body
        assert body["muxAssetId"] == "mux-asset"
        assert body["muxPlaybackId"] == "mux-play"
        assert body["muxStatus"] == "ready"

    def test_needs_confirmation(self, video_artwork):
        mux = FakeMux()
        with pytest.raises(ConfirmationError):
            _mux_action(mux).handle(video_artwork, "v1", confirmation="no")
        assert mux.uploaded == []

    def test_mux_failure_leaves_artwork_untouched(self, video_artwork):
        mux = FakeMux(fail=True)
        with pytest.raises(MuxError):
            _mux_action(mux).handle(video_artwork, "v1", confirmation="yes")
        assert mux.closed
        assert "muxPlaybackId" not in video_artwork.get_document("v1").body

    def test_asset_without_url(self, video_artwork, artwork_doc):
        video_artwork.create({"_id": "file-x", "_type": "sanity.fileAsset", "originalFilename": "x.mp4"})
        video = {"_type": "file", "asset": {"_type": "reference", "_ref": "file-x"}}
        video_artwork.create(artwork_doc("v3", "Broken", "p", media_type="video", video=video))
        with pytest.raises(MediaProcessingError):
            _mux_action(FakeMux()).handle(video_artwork, "v3", confirmation="yes")
