"""FastAPI application factory.

Lifespan
--------
On startup the app opens the document store named by
``settings.store_target`` (``GALLERY_STORE``; ``gallery serve`` points it at
the CLI's active store).  It is shared across all requests via
``request.app.state.store``.  On shutdown it closes the store cleanly.

Routers
-------
All endpoint groups are mounted under their respective path prefix:

    /actions     : document actions offered to the studio, plan and execute
    /portfolios  : descendant sets and nested tree views
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gallery.config import settings
from gallery.store import open_store

from gallery.api.routers import actions as actions_router
from gallery.api.routers import portfolios as portfolios_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the store on startup and close it on shutdown."""
    store = open_store(settings.store_target)
    app.state.store = store
    try:
        yield
    finally:
        app.state.store.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Gallery Studio API",
        description=(
            "Cascade actions for the gallery CMS: lists the document actions "
            "available on a document, previews a cascade plan with its "
            "confirmation rule, executes it, and serves portfolio trees."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # The studio runs on its own origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(actions_router.router, prefix="/actions", tags=["actions"])
    app.include_router(portfolios_router.router, prefix="/portfolios", tags=["portfolios"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn gallery.api.app:app --reload
app = create_app()
