"""Cleanup commands: orphaned assets, unassigned artworks, corrupted drafts, reset."""

from __future__ import annotations

from typing import Callable

import typer

from gallery import maintenance
from gallery.maintenance import JobReport
from gallery.store.base import DocumentStore
from gallery_cli.context import handle_errors, open_active_store
from gallery_cli.rendering import render_job

cleanup_app = typer.Typer(help="Remove orphaned or broken documents.")


def run_job(
    job: Callable[..., JobReport],
    dry_run: bool,
    verbose: bool,
    confirm: str = "",
    yes: bool = False,
) -> None:
    """Run a maintenance *job*, asking first when it would change data."""
    store: DocumentStore = open_active_store()
    try:
        if confirm and not dry_run and not yes:
            preview = job(store, dry_run=True)
            if not preview.results:
                typer.echo(f"✅ {preview.summary()}")
                return
            for line in render_job(preview):
                typer.echo(line)
            if not typer.confirm(confirm.format(count=len(preview.results))):
                typer.echo("Aborted. Nothing was changed.")
                raise typer.Exit(code=1)
        report = job(store, dry_run=dry_run)
    finally:
        store.close()

    for line in render_job(report, verbose=verbose):
        typer.echo(line)
    if report.failed:
        raise typer.Exit(code=1)


_dry_run = typer.Option(False, "--dry-run", help="Only list what would change.")
_yes = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt.")
_verbose = typer.Option(False, "--verbose", "-v", help="List every document.")


@cleanup_app.command("orphans")
@handle_errors
def cleanup_orphans(dry_run: bool = _dry_run, yes: bool = _yes, verbose: bool = _verbose) -> None:
    """Delete image and file assets that no document references."""
    run_job(maintenance.delete_orphan_assets, dry_run, verbose,
            confirm="Delete {count} orphaned assets?", yes=yes)


@cleanup_app.command("unassigned")
@handle_errors
def cleanup_unassigned(dry_run: bool = _dry_run, yes: bool = _yes, verbose: bool = _verbose) -> None:
    """Delete artworks whose portfolio is missing."""
    run_job(maintenance.delete_unassigned_artworks, dry_run, verbose,
            confirm="Delete {count} unassigned artworks?", yes=yes)


@cleanup_app.command("corrupted-drafts")
@handle_errors
def cleanup_corrupted_drafts(dry_run: bool = _dry_run, yes: bool = _yes, verbose: bool = _verbose) -> None:
    """Delete `drafts.drafts.*` documents left behind by shadow-copy unpublishing."""
    run_job(maintenance.repair_corrupted_drafts, dry_run, verbose,
            confirm="Delete {count} corrupted drafts?", yes=yes)


@cleanup_app.command("reset")
@handle_errors
def cleanup_reset(dry_run: bool = _dry_run, yes: bool = _yes, verbose: bool = _verbose) -> None:
    """Delete ALL artworks and image assets (before a fresh bulk upload)."""
    run_job(maintenance.reset_dataset, dry_run, verbose,
            confirm="⚠️ Delete ALL {count} artworks and image assets?", yes=yes)
