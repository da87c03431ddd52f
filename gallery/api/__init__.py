"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from gallery.api import app

    uvicorn gallery.api:app --reload
"""

from gallery.api.app import app

__all__ = ["app"]
