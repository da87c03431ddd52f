"""Persistent state management for the gallery CLI.

Tracks the active document store (the live dataset or a local mirror).
Stored in ``<workspace>/cli/context.json``.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from functools import wraps
from pathlib import Path
from typing import Any, Callable

import typer

from gallery.config import settings
from gallery.errors import GalleryError
from gallery.store import DocumentStore, open_store


@dataclass
class CliContext:
    active_store: str | None = None
    last_import: str | None = None
    user_preferences: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, data: str) -> CliContext:
        try:
            raw = json.loads(data)
            return cls(**raw)
        except (json.JSONDecodeError, TypeError):
            return cls()

    @property
    def store_target(self) -> str:
        return self.active_store or settings.store_target


def _get_context_path() -> Path:
    """Return the path to the context JSON file."""
    return settings.cli_config_dir / "context.json"


def load_context() -> CliContext:
    """Load the CLI context from disk. Returns defaults if missing/corrupt."""
    path = _get_context_path()
    if not path.exists():
        return CliContext()
    try:
        return CliContext.from_json(path.read_text(encoding="utf-8"))
    except OSError:
        return CliContext()


def save_context(ctx: CliContext) -> None:
    """Save the CLI context to disk."""
    settings.cli_config_dir.mkdir(parents=True, exist_ok=True)
    _get_context_path().write_text(ctx.to_json(), encoding="utf-8")


def open_active_store() -> DocumentStore:
    """Open the store the context points at (``settings.store_target`` by default)."""
    target = load_context().store_target
    try:
        return open_store(target)
    except ValueError as exc:
        typer.echo(f"❌ {exc}")
        raise typer.Exit(code=1)


def handle_errors(func: Callable) -> Callable:
    """Decorator for CLI commands: report :class:`GalleryError` and exit 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GalleryError as exc:
            typer.echo(f"❌ {exc}")
            raise typer.Exit(code=1)

    return wrapper
