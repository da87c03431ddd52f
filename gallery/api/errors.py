"""Translate :mod:`gallery.errors` exceptions into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException

from gallery.errors import (
    CascadeCycleError,
    CmsRequestError,
    ConfigurationError,
    ConfirmationError,
    DocumentNotFoundError,
    GalleryError,
    MediaProcessingError,
    MuxError,
    ReferenceConflictError,
)


def http_error(exc: GalleryError) -> HTTPException:
    if isinstance(exc, DocumentNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (ReferenceConflictError, CascadeCycleError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ConfirmationError):
        return HTTPException(
            status_code=400,
            detail={"message": str(exc), "expected": exc.expected},
        )
    if isinstance(exc, (CmsRequestError, MuxError, MediaProcessingError)):
        return HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
