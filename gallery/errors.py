"""Exception hierarchy shared by the stores, cascades and migrations."""

from __future__ import annotations



class GalleryError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(GalleryError):
    """Required credentials or paths are missing."""


class CmsRequestError(GalleryError):
    """The document store rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DocumentNotFoundError(CmsRequestError):
    def __init__(self, doc_id: str) -> None:
        super().__init__(f"Document not found: {doc_id!r}", status_code=404)
        self.doc_id = doc_id


class ReferenceConflictError(CmsRequestError):
    """A delete or unpublish was refused because other documents still reference the target."""

    def __init__(self, message: str, doc_id: str | None = None) -> None:
        super().__init__(message, status_code=409)
        self.doc_id = doc_id


class CascadeCycleError(GalleryError):
    """The portfolio hierarchy loops back on itself or is deeper than allowed."""

    def __init__(self, message: str, path: list[str] | None = None) -> None:
        super().__init__(message)
        self.path = path or []


class MuxError(GalleryError):
    """A Mux upload or asset did not reach the expected state."""


class ConfirmationError(GalleryError):
    """A cascade was invoked without the confirmation its plan requires."""

    def __init__(self, message: str, expected: str | None = None) -> None:
        super().__init__(message)
        self.expected = expected


class MediaProcessingError(GalleryError):
    """ffprobe or ffmpeg failed, or a media file could not be fetched."""
