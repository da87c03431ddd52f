"""Tests for the Mux client (respx-mocked)."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from gallery.config import settings
from gallery.errors import ConfigurationError, MuxError
from gallery.media import MuxAsset, MuxClient, purge_mux_assets

API = "https://mux.test/video/v1"
UPLOAD_URL = "https://storage.test/upload/up1"


@pytest.fixture()
def router():
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture()
def mux(router):
    client = MuxClient(
        token_id="id",
        token_secret="secret",
        base_url="https://mux.test",
        poll_interval=0,
        poll_attempts=3,
    )
    yield client
    client.close()


def _data(payload) -> httpx.Response:
    return httpx.Response(200, json={"data": payload})


class TestCredentials:
    def test_missing_credentials(self, monkeypatch):
        monkeypatch.setattr(settings, "mux_token_id", "")
        monkeypatch.setattr(settings, "mux_token_secret", "")
        with pytest.raises(ConfigurationError):
            MuxClient()


class TestUpload:
    def test_upload_file_waits_for_ready_asset(self, router, mux, tmp_path):
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"frames")
        create = router.post(f"{API}/uploads").mock(
            return_value=_data({"id": "up1", "url": UPLOAD_URL, "status": "waiting"})
        )
        put = router.put(UPLOAD_URL).mock(return_value=httpx.Response(200))
        router.get(f"{API}/uploads/up1").mock(
            side_effect=[
                _data({"id": "up1", "status": "waiting"}),
                _data({"id": "up1", "status": "asset_created", "asset_id": "as1"}),
            ]
        )
        router.get(f"{API}/assets/as1").mock(
            side_effect=[
                _data({"id": "as1", "status": "preparing"}),
                _data({"id": "as1", "status": "ready", "playback_ids": [{"id": "pb1"}]}),
            ]
        )

        asset = mux.upload_file(video)

        assert asset == MuxAsset(asset_id="as1", playback_id="pb1", status="ready")
        request = create.calls.last.request
        assert request.headers["authorization"].startswith("Basic ")
        assert json.loads(request.content)["new_asset_settings"]["playback_policy"] == ["public"]
        assert put.calls.last.request.content == b"frames"

    def test_poll_gives_up(self, router, mux):
        router.get(f"{API}/uploads/up1").mock(return_value=_data({"id": "up1", "status": "waiting"}))
        with pytest.raises(MuxError):
            mux.wait_for_upload("up1")

    def test_errored_asset(self, router, mux):
        router.get(f"{API}/assets/as1").mock(return_value=_data({"id": "as1", "status": "errored"}))
        with pytest.raises(MuxError):
            mux.wait_for_asset("as1")

    def test_failed_put(self, router, mux, tmp_path):
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"frames")
        router.put(UPLOAD_URL).mock(return_value=httpx.Response(500))
        with pytest.raises(MuxError):
            mux.put_file(UPLOAD_URL, video)


class TestAssets:
    def test_list_assets_follows_pages(self, router, mux):
        route = router.get(f"{API}/assets").mock(
            side_effect=[
                _data([{"id": "a"}, {"id": "b"}]),
                _data([{"id": "c"}]),
            ]
        )
        assets = mux.list_assets(limit=2)
        assert [a["id"] for a in assets] == ["a", "b", "c"]
        assert route.calls[1].request.url.params["page"] == "2"

    def test_purge_reports_failures(self, router, mux):
        router.get(f"{API}/assets").mock(return_value=_data([{"id": "a"}, {"id": "b"}]))
        router.delete(f"{API}/assets/a").mock(return_value=httpx.Response(204))
        router.delete(f"{API}/assets/b").mock(return_value=httpx.Response(500))
        deleted, failed = purge_mux_assets(mux, delay=0)
        assert deleted == ["a"]
        assert failed == ["b"]
