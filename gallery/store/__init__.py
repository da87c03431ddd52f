"""Document-store package.

Public re-exports so callers can write::

    from gallery.store import open_store

    store = open_store()                    # live CMS from settings
    store = open_store("local:mirror.db")   # offline SQLite mirror
"""

from __future__ import annotations

from pathlib import Path

from gallery.store.base import DocumentStore
from gallery.store.local import LocalStore
from gallery.store.sanity import SanityClient, SanityStore

LOCAL_PREFIX = "local:"


def open_store(target: str | None = None) -> DocumentStore:
    """Open the store named by *target*.

    ``None`` or ``"sanity"`` opens the live dataset configured in
    :mod:`gallery.config`; ``"local:<path>"`` opens a SQLite mirror.
    """
    if target and target.startswith(LOCAL_PREFIX):
        return LocalStore.open(Path(target[len(LOCAL_PREFIX):]))
    if target in (None, "", "sanity"):
        return SanityStore()
    raise ValueError(f"Unknown store target {target!r}. Use 'sanity' or 'local:<path>'.")


__all__ = [
    "DocumentStore",
    "LocalStore",
    "SanityClient",
    "SanityStore",
    "open_store",
    "LOCAL_PREFIX",
]
