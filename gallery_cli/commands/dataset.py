"""Dataset commands: local mirrors of a CMS export and the active store."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Optional

import typer

from gallery.config import settings
from gallery.store import LOCAL_PREFIX, LocalStore
from gallery_cli.context import handle_errors, load_context, open_active_store, save_context

dataset_app = typer.Typer(help="Import, export and switch between datasets.")


def _default_db() -> Path:
    return settings.workspace_dir / "dataset.db"


@dataset_app.command("import")
@handle_errors
def dataset_import(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="NDJSON export file."),
    db: Optional[Path] = typer.Option(None, "--db", help="Mirror database. Defaults to the workspace."),
    use: bool = typer.Option(True, "--use/--no-use", help="Make the mirror the active store."),
) -> None:
    """Load a dataset export into a local SQLite mirror."""
    db = db or _default_db()
    store = LocalStore.open(db)
    try:
        count = store.import_ndjson(source)
    finally:
        store.close()
    typer.echo(f"✅ Imported {count} documents into {db}")

    ctx = load_context()
    ctx.last_import = str(source)
    if use:
        ctx.active_store = f"{LOCAL_PREFIX}{db}"
        typer.echo(f"📂 Active store: {ctx.active_store}")
    save_context(ctx)


@dataset_app.command("export")
@handle_errors
def dataset_export(
    output: Path = typer.Argument(..., dir_okay=False, help="NDJSON file to write."),
    db: Optional[Path] = typer.Option(None, "--db", help="Mirror database. Defaults to the workspace."),
) -> None:
    """Write a local mirror back out as NDJSON (ready for `sanity dataset import`)."""
    db = db or _default_db()
    if not db.exists():
        typer.echo(f"❌ No mirror at {db}. Run 'dataset import' first.")
        raise typer.Exit(code=1)
    store = LocalStore.open(db)
    try:
        count = store.export_ndjson(output)
    finally:
        store.close()
    typer.echo(f"✅ Exported {count} documents to {output}")


@dataset_app.command("use")
def dataset_use(
    target: str = typer.Argument(..., help="'sanity' or 'local:<path to mirror db>'."),
) -> None:
    """Switch the store every other command works on."""
    if target != "sanity" and not target.startswith(LOCAL_PREFIX):
        typer.echo(f"❌ Unknown store {target!r}. Use 'sanity' or 'local:<path>'.")
        raise typer.Exit(code=1)
    if target.startswith(LOCAL_PREFIX) and not Path(target[len(LOCAL_PREFIX):]).exists():
        typer.echo(f"❌ No mirror at {target[len(LOCAL_PREFIX):]}.")
        raise typer.Exit(code=1)
    ctx = load_context()
    ctx.active_store = target
    save_context(ctx)
    typer.echo(f"📂 Active store: {target}")


@dataset_app.command("status")
@handle_errors
def dataset_status() -> None:
    """Show the active store and what it holds."""
    ctx = load_context()
    typer.echo(f"\n📊 Store: {ctx.store_target}")
    if ctx.last_import:
        typer.echo(f"   Last import: {ctx.last_import}")
    typer.echo("-" * 40)

    store = open_active_store()
    try:
        counts: Counter[str] = Counter()
        for doc_type in ("portfolio", "artwork", "artist", "siteSettings",
                         "sanity.imageAsset", "sanity.fileAsset"):
            counts[doc_type] = len(store.list_documents(doc_type))
        drafts = len(store.raw_ids_with_prefix("drafts."))
    finally:
        store.close()

    for doc_type, count in counts.items():
        typer.echo(f"   {doc_type}: {count}")
    typer.echo(f"   draft ids: {drafts}")
    typer.echo("")
