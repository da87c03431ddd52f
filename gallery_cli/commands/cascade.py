"""Cascade commands: apply one operation to a portfolio and everything under it."""

from __future__ import annotations

import typer

from gallery.cascade import apply_cascade, plan_cascade
from gallery.models import CascadeOperation
from gallery_cli.context import handle_errors, open_active_store
from gallery_cli.rendering import render_results

cascade_app = typer.Typer(help="Cascade delete / publish / unpublish / title tagging.")


def _run(
    operation: CascadeOperation,
    doc_id: str,
    yes: bool,
    fail_fast: bool,
    dry_run: bool,
    verbose: bool,
) -> None:
    store = open_active_store()
    try:
        plan = plan_cascade(store, doc_id, operation)
        typer.echo(plan.confirmation_message)

        if dry_run:
            typer.echo("\nOrder:")
            for i, target in enumerate(plan.ordered_targets(), start=1):
                typer.echo(f"  {i:>3}. [{target.doc_type}] {target.doc_id}")
            return

        if yes:
            answer = plan.confirmation_phrase or "yes"
        elif plan.confirmation_phrase:
            answer = typer.prompt("Confirmation", default="", show_default=False)
        else:
            answer = "yes" if typer.confirm("Proceed?") else "no"

        if not plan.accepts(answer):
            typer.echo("Aborted. Nothing was changed.")
            raise typer.Exit(code=1)

        report = apply_cascade(store, plan, fail_fast=fail_fast)
    finally:
        store.close()

    for line in render_results(report.results, verbose=verbose):
        typer.echo(line)
    if report.ok:
        typer.echo(f"✅ {report.summary()}")
    else:
        typer.echo(f"❌ {report.summary()}")
        raise typer.Exit(code=1)


def _command(operation: CascadeOperation, help_text: str) -> None:
    @cascade_app.command(operation.value, help=help_text)
    @handle_errors
    def _cmd(
        doc_id: str = typer.Argument(..., help="Portfolio (or single document) id."),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
        fail_fast: bool = typer.Option(
            False, "--fail-fast", help="Stop at the first failing document."
        ),
        dry_run: bool = typer.Option(
            False, "--dry-run", help="Show the plan and order without changing anything."
        ),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="List every document."),
    ) -> None:
        _run(operation, doc_id, yes, fail_fast, dry_run, verbose)


_command(
    CascadeOperation.DELETE,
    "Delete a portfolio with all sub-portfolios and artworks (atomic).",
)
_command(
    CascadeOperation.PUBLISH,
    "Publish a portfolio with all sub-portfolios and artworks.",
)
_command(
    CascadeOperation.UNPUBLISH,
    "Unpublish a portfolio with all sub-portfolios and artworks.",
)
_command(
    CascadeOperation.MARK_UNPUBLISHED,
    'Flag a portfolio tree as "unpublished" (listingStatus and title suffix).',
)
_command(
    CascadeOperation.CLEAR_UNPUBLISHED,
    'Remove the "unpublished" flag from a portfolio tree.',
)
