"""Centralised settings for the gallery studio tools.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # CMS (Sanity) project
    # ------------------------------------------------------------------
    sanity_project_id: str = field(
        default_factory=lambda: os.environ.get("SANITY_PROJECT_ID", "")
    )
    sanity_dataset: str = field(
        default_factory=lambda: os.environ.get("SANITY_DATASET", "production")
    )
    sanity_token: str = field(
        default_factory=lambda: os.environ.get("SANITY_TOKEN", "")
    )
    sanity_api_version: str = field(
        default_factory=lambda: os.environ.get("SANITY_API_VERSION", "2023-03-01")
    )

    store_target: str = field(
        default_factory=lambda: os.environ.get("GALLERY_STORE", "sanity")
    )

    # ------------------------------------------------------------------
    # Mux video platform
    # ------------------------------------------------------------------
    mux_token_id: str = field(
        default_factory=lambda: os.environ.get("MUX_TOKEN_ID", "")
    )
    mux_token_secret: str = field(
        default_factory=lambda: os.environ.get(
            "MUX_TOKEN_SECRET", os.environ.get("MUX_SECRET", "")
        )
    )
    mux_base_url: str = field(
        default_factory=lambda: os.environ.get("MUX_BASE_URL", "https://api.mux.com")
    )
    mux_poll_interval: float = field(
        default_factory=lambda: float(os.environ.get("MUX_POLL_INTERVAL", "5"))
    )
    mux_poll_attempts: int = field(
        default_factory=lambda: int(os.environ.get("MUX_POLL_ATTEMPTS", "60"))
    )
    mux_rate_limit_delay: float = field(
        default_factory=lambda: float(os.environ.get("MUX_RATE_LIMIT_DELAY", "2"))
    )

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )

    # ------------------------------------------------------------------
    # Cascade
    # ------------------------------------------------------------------
    max_cascade_depth: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CASCADE_DEPTH", "32"))
    )

    # ------------------------------------------------------------------
    # Media migrations
    # ------------------------------------------------------------------
    videos_folder: Path = field(
        default_factory=lambda: Path(
            os.environ.get("VIDEOS_FOLDER", Path.home() / "Desktop" / "compressed_videos")
        )
    )
    compression_target_mb: float = field(
        default_factory=lambda: float(os.environ.get("COMPRESSION_TARGET_MB", "10"))
    )
    compression_max_source_mb: float = field(
        default_factory=lambda: float(os.environ.get("COMPRESSION_MAX_SOURCE_MB", "50"))
    )

    # ------------------------------------------------------------------
    # Workspace / local state
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("GALLERY_WORKSPACE", Path.home() / ".gallery_studio")
        )
    )

    @property
    def cli_config_dir(self) -> Path:
        """Directory holding the CLI context file."""
        return self.workspace_dir / "cli"

    @property
    def progress_path(self) -> Path:
        """Mux migration progress file."""
        return self.workspace_dir / "migration-progress.json"

    @property
    def mapping_path(self) -> Path:
        """Video compression mapping file (used for rollback)."""
        return self.workspace_dir / "video_mapping.json"

    @property
    def backup_dir(self) -> Path:
        """Where original videos are kept before compression."""
        return self.workspace_dir / "video_backups"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the local-store schema SQL bundled with the package."""
        return Path(__file__).resolve().parent / "store" / "schema.sql"

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "WARNING")
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from gallery.config import settings
settings = Settings()
