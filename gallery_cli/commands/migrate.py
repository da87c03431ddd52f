"""Field migrations that bring older documents up to the current schema."""

from __future__ import annotations

import typer

from gallery import maintenance
from gallery_cli.commands.cleanup import run_job
from gallery_cli.context import handle_errors

migrate_app = typer.Typer(help="Schema and field migrations.")

_dry_run = typer.Option(False, "--dry-run", help="Only list what would change.")
_verbose = typer.Option(False, "--verbose", "-v", help="List every document.")


@migrate_app.command("display-titles")
@handle_errors
def migrate_display_titles(dry_run: bool = _dry_run, verbose: bool = _verbose) -> None:
    """Set displayTitle=true on artworks created before the field existed."""
    run_job(maintenance.backfill_display_titles, dry_run, verbose)


@migrate_app.command("normalize-titles")
@handle_errors
def migrate_normalize_titles(dry_run: bool = _dry_run, verbose: bool = _verbose) -> None:
    """Turn legacy "... unpublished" titles into listingStatus (and back in step)."""
    run_job(maintenance.normalize_titles, dry_run, verbose)


@migrate_app.command("sync-subportfolios")
@handle_errors
def migrate_sync_subportfolios(dry_run: bool = _dry_run, verbose: bool = _verbose) -> None:
    """Rebuild every subPortfolios array from the parentPortfolio references."""
    run_job(maintenance.sync_sub_portfolios, dry_run, verbose)
