"""Media tooling: Mux migration, video inventory, compression and bulk upload."""

from gallery.media.compression import (
    CompressionMapping,
    compress_videos,
    plan_encoding,
    rollback,
)
from gallery.media.inventory import list_video_assets, video_usage
from gallery.media.migration import migrate_videos, purge_mux_assets
from gallery.media.mux import MuxAsset, MuxClient
from gallery.media.progress import MigrationProgress
from gallery.media.uploader import DirectoryUploader, UploadResult

__all__ = [
    "CompressionMapping",
    "DirectoryUploader",
    "MigrationProgress",
    "MuxAsset",
    "MuxClient",
    "UploadResult",
    "compress_videos",
    "list_video_assets",
    "migrate_videos",
    "plan_encoding",
    "purge_mux_assets",
    "rollback",
    "video_usage",
]
