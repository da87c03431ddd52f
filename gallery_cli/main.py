"""Gallery Studio CLI: entry-point for all dataset operations.

Usage:
    gallery --help
    python gallery_cli/main.py --help

Sub-command groups:
    tree      → portfolio hierarchy
    cascade   → delete / publish / unpublish / title tagging over a tree
    dataset   → local mirrors and the active store
    cleanup   → orphans, unassigned artworks, corrupted drafts, reset
    migrate   → field migrations
    media     → Mux, compression, bulk upload
    serve     → document-action HTTP API
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from gallery.xxx import ...`
# works when the CLI is invoked as `python gallery_cli/main.py`.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import logging
import os
from typing import Optional

import typer

from gallery.cascade import build_tree, root_portfolio_ids
from gallery.config import settings
from gallery_cli.commands.cascade import cascade_app
from gallery_cli.commands.cleanup import cleanup_app
from gallery_cli.commands.dataset import dataset_app
from gallery_cli.commands.media import media_app
from gallery_cli.commands.migrate import migrate_app
from gallery_cli.context import handle_errors, load_context, open_active_store
from gallery_cli.rendering import render_tree

app = typer.Typer(
    name="gallery",
    help="Gallery Studio CLI: cascades, cleanups and media migrations for the gallery CMS.",
    no_args_is_help=True,
)

app.add_typer(cascade_app, name="cascade")
app.add_typer(dataset_app, name="dataset")
app.add_typer(cleanup_app, name="cleanup")
app.add_typer(migrate_app, name="migrate")
app.add_typer(media_app, name="media")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", help="Log at DEBUG level."),
) -> None:
    """Configure logging before any sub-command runs."""
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level)


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------
@app.command("tree")
@handle_errors
def tree(
    portfolio_id: Optional[str] = typer.Argument(None, help="Root portfolio. Defaults to all top-level portfolios."),
    artworks: bool = typer.Option(True, "--artworks/--no-artworks", help="Show artworks."),
) -> None:
    """Print the portfolio hierarchy."""
    store = open_active_store()
    try:
        roots = [portfolio_id] if portfolio_id else root_portfolio_ids(store)
        if not roots:
            typer.echo("No portfolios found.")
            return
        for root in roots:
            typer.echo(render_tree(build_tree(store, root, include_artworks=artworks), show_artworks=artworks))
    finally:
        store.close()


# ---------------------------------------------------------------------------
# API server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address."),
    port: int = typer.Option(8000, "--port", help="Bind port."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
) -> None:
    """Run the document-action API against the active store."""
    import uvicorn

    target = load_context().store_target
    # The app opens its store from settings on startup; a reloader child
    # process only sees the environment.
    os.environ["GALLERY_STORE"] = target
    settings.store_target = target
    typer.echo(f"📂 Serving store: {target}")
    uvicorn.run("gallery.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
