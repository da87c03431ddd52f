"""Minimal Mux Video API client.

Only the calls the migration needs: direct uploads, asset retrieval, listing
and deletion.  Waiting on an upload or asset is bounded by
``settings.mux_poll_attempts`` × ``settings.mux_poll_interval``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from gallery.config import settings
from gallery.errors import ConfigurationError, MuxError

logger = logging.getLogger(__name__)

_UPLOAD_PENDING = {"waiting", "asset_creating"}
_ASSET_PENDING = {"preparing"}


@dataclass
class MuxAsset:
    asset_id: str
    playback_id: str | None
    status: str


class MuxClient:
    def __init__(
        self,
        token_id: str | None = None,
        token_secret: str | None = None,
        base_url: str | None = None,
        poll_interval: float | None = None,
        poll_attempts: int | None = None,
    ) -> None:
        token_id = token_id or settings.mux_token_id
        token_secret = token_secret or settings.mux_token_secret
        if not token_id or not token_secret:
            raise ConfigurationError(
                "MUX_TOKEN_ID and MUX_TOKEN_SECRET must be set to talk to Mux."
            )
        self.poll_interval = settings.mux_poll_interval if poll_interval is None else poll_interval
        self.poll_attempts = settings.mux_poll_attempts if poll_attempts is None else poll_attempts
        self._http = httpx.Client(
            base_url=f"{(base_url or settings.mux_base_url).rstrip('/')}/video/v1",
            auth=(token_id, token_secret),
            timeout=settings.request_timeout,
        )

    # -- transport -----------------------------------------------------
    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._http.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise MuxError(f"Mux {method} {path} failed: {exc}") from exc
        if not response.content:
            return {}
        return response.json().get("data", {})

    # -- uploads -------------------------------------------------------
    def create_upload(self, encoding_tier: str = "baseline") -> dict[str, Any]:
        """Create a direct upload; the returned dict carries ``id`` and ``url``."""
        return self._request(
            "POST",
            "/uploads",
            json={
                "cors_origin": "*",
                "new_asset_settings": {
                    "playback_policy": ["public"],
                    "encoding_tier": encoding_tier,
                },
            },
        )

    def get_upload(self, upload_id: str) -> dict[str, Any]:
        return self._request("GET", f"/uploads/{upload_id}")

    def put_file(self, upload_url: str, path: Path, content_type: str = "video/mp4") -> None:
        """PUT the file body to a direct-upload URL."""
        try:
            with path.open("rb") as fh:
                response = httpx.put(
                    upload_url,
                    content=fh.read(),
                    headers={"Content-Type": content_type},
                    timeout=None,
                )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise MuxError(f"Upload of {path.name} failed: {exc}") from exc

    # -- assets --------------------------------------------------------
    def get_asset(self, asset_id: str) -> dict[str, Any]:
        return self._request("GET", f"/assets/{asset_id}")

    def list_assets(self, limit: int = 100) -> list[dict[str, Any]]:
        """Every asset in the environment, following pagination."""
        assets: list[dict[str, Any]] = []
        page = 1
        while True:
            try:
                response = self._http.get("/assets", params={"limit": limit, "page": page})
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise MuxError(f"Mux asset listing failed: {exc}") from exc
            batch = response.json().get("data", [])
            assets.extend(batch)
            if len(batch) < limit:
                return assets
            page += 1

    def delete_asset(self, asset_id: str) -> None:
        self._request("DELETE", f"/assets/{asset_id}")

    # -- polling -------------------------------------------------------
    def _poll(self, fetch: Any, pending: set[str], label: str) -> dict[str, Any]:
        data = fetch()
        for _ in range(self.poll_attempts):
            if data.get("status") not in pending:
                return data
            logger.debug("%s status: %s", label, data.get("status"))
            time.sleep(self.poll_interval)
            data = fetch()
        if data.get("status") in pending:
            raise MuxError(f"{label} still {data.get('status')!r} after {self.poll_attempts} checks")
        return data

    def wait_for_upload(self, upload_id: str) -> str:
        """Block until the upload has produced an asset; return its id."""
        upload = self._poll(
            lambda: self.get_upload(upload_id), _UPLOAD_PENDING, f"Upload {upload_id}"
        )
        if upload.get("status") != "asset_created":
            raise MuxError(f"Upload {upload_id} ended with status {upload.get('status')!r}")
        return upload["asset_id"]

    def wait_for_asset(self, asset_id: str) -> MuxAsset:
        """Block until the asset is ready."""
        asset = self._poll(
            lambda: self.get_asset(asset_id), _ASSET_PENDING, f"Asset {asset_id}"
        )
        if asset.get("status") != "ready":
            raise MuxError(f"Asset {asset_id} processing failed: {asset.get('status')!r}")
        playback_ids = asset.get("playback_ids") or [{}]
        return MuxAsset(asset_id=asset["id"], playback_id=playback_ids[0].get("id"), status="ready")

    def upload_file(self, path: Path) -> MuxAsset:
        """Direct-upload *path* and wait for a ready asset."""
        upload = self.create_upload()
        logger.info("Created Mux upload %s for %s", upload["id"], path.name)
        self.put_file(upload["url"], path)
        asset_id = self.wait_for_upload(upload["id"])
        return self.wait_for_asset(asset_id)

    def close(self) -> None:
        self._http.close()
