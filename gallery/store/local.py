"""SQLite-backed mirror of a CMS dataset.

A dataset export (NDJSON, one document per line) is imported into a local
database.  Cascades, maintenance jobs and migrations can then run against
it offline and the result can be exported again.

Differences from the live store
-------------------------------
* A draft and its published counterpart fold into a single row carrying a
  ``published`` flag, so publish and unpublish are one UPDATE each.
* Referential integrity is checked on delete the way the platform does:
  removing a document that is still strongly referenced from outside the
  deleted set raises :class:`~gallery.errors.ReferenceConflictError` and
  nothing is removed.
"""

from __future__ import annotations

import hashlib
import json
import logging
import mimetypes
import sqlite3
import uuid
from pathlib import Path
from time import time
from typing import Any, Iterator

from gallery.documents import (
    DRAFTS_PREFIX,
    is_corrupted_id,
    is_draft_id,
    published_id,
)
from gallery.errors import CmsRequestError, DocumentNotFoundError, ReferenceConflictError
from gallery.models import Document, PublishState
from gallery.store.db import get_connection, init_db

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _storage_key(raw_id: str) -> str:
    return raw_id if is_corrupted_id(raw_id) else published_id(raw_id)


def _iter_refs(value: Any, path: str = "") -> Iterator[tuple[str, str, bool]]:
    """Yield ``(target_id, path, weak)`` for every ``_ref`` inside *value*."""
    if isinstance(value, dict):
        ref = value.get("_ref")
        if isinstance(ref, str):
            yield published_id(ref), path, bool(value.get("_weak"))
        for key, child in value.items():
            if key.startswith("_"):
                continue
            yield from _iter_refs(child, f"{path}.{key}" if path else key)
    elif isinstance(value, list):
        for child in value:
            yield from _iter_refs(child, f"{path}[]")


def _set_path(body: dict[str, Any], dotted: str, value: Any) -> None:
    parts = dotted.split(".")
    target = body
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _unset_path(body: dict[str, Any], dotted: str) -> None:
    parts = dotted.split(".")
    target: Any = body
    for part in parts[:-1]:
        target = target.get(part) if isinstance(target, dict) else None
        if target is None:
            return
    if isinstance(target, dict):
        target.pop(parts[-1], None)


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        doc_type=row["doc_type"],
        title=row["title"],
        body=json.loads(row["body"] or "{}"),
        published=bool(row["published"]),
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class LocalStore:
    """:class:`~gallery.store.base.DocumentStore` over a SQLite connection."""

    def __init__(self, conn: sqlite3.Connection, name: str = "local") -> None:
        self.conn = conn
        self.name = name

    @classmethod
    def open(cls, db_path: Path | str) -> "LocalStore":
        conn = get_connection(db_path)
        init_db(conn)
        return cls(conn, name=f"local:{db_path}")

    # -- row writes ----------------------------------------------------
    def _write_row(self, key: str, body: dict[str, Any], published: bool) -> None:
        now = int(time())
        body = {**body, "_id": key}
        title = body.get("title") or body.get("name") or ""
        self.conn.execute(
            """
            INSERT INTO documents (id, doc_type, title, body, published, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                doc_type = excluded.doc_type,
                title = excluded.title,
                body = excluded.body,
                published = excluded.published,
                updated_at = excluded.updated_at
            """,
            (key, body.get("_type", ""), title, json.dumps(body), int(published), now, now),
        )
        self.conn.execute("DELETE FROM refs WHERE source_id = ?", (key,))
        self.conn.executemany(
            "INSERT OR IGNORE INTO refs (source_id, target_id, path, weak) VALUES (?, ?, ?, ?)",
            [(key, target, path, int(weak)) for target, path, weak in _iter_refs(body)],
        )

    def _row(self, key: str) -> sqlite3.Row | None:
        return self.conn.execute("SELECT * FROM documents WHERE id = ?", (key,)).fetchone()

    # -- reads ---------------------------------------------------------
    def get_document(self, doc_id: str) -> Document | None:
        row = self._row(_storage_key(doc_id))
        return _row_to_document(row) if row else None

    def list_documents(self, doc_type: str) -> list[Document]:
        rows = self.conn.execute(
            "SELECT * FROM documents WHERE doc_type = ? ORDER BY rowid", (doc_type,)
        ).fetchall()
        return [_row_to_document(r) for r in rows]

    def _sources(self, target_id: str, path: str, doc_type: str) -> list[str]:
        rows = self.conn.execute(
            """
            SELECT d.id FROM refs r
            JOIN documents d ON d.id = r.source_id
            WHERE r.target_id = ? AND r.path = ? AND d.doc_type = ?
            ORDER BY d.rowid
            """,
            (published_id(target_id), path, doc_type),
        ).fetchall()
        # Corrupted double-draft rows are leftovers, not members of the tree.
        return [r["id"] for r in rows if not is_corrupted_id(r["id"])]

    def child_portfolio_ids(self, portfolio_id: str) -> list[str]:
        return self._sources(portfolio_id, "parentPortfolio", "portfolio")

    def artwork_ids(self, portfolio_id: str) -> list[str]:
        return self._sources(portfolio_id, "portfolio", "artwork")

    def child_counts(self, portfolio_id: str) -> tuple[int, int]:
        return len(self.child_portfolio_ids(portfolio_id)), len(self.artwork_ids(portfolio_id))

    def referencing_ids(self, doc_id: str) -> list[str]:
        rows = self.conn.execute(
            "SELECT DISTINCT source_id FROM refs WHERE target_id = ? ORDER BY source_id",
            (published_id(doc_id),),
        ).fetchall()
        return [r["source_id"] for r in rows]

    def raw_ids_with_prefix(self, prefix: str) -> list[str]:
        rows = self.conn.execute("SELECT id, published FROM documents ORDER BY rowid").fetchall()
        out: list[str] = []
        for row in rows:
            raw = row["id"]
            if not row["published"] and not is_corrupted_id(raw):
                raw = DRAFTS_PREFIX + raw
            if raw.startswith(prefix):
                out.append(raw)
        return out

    # -- writes --------------------------------------------------------
    def create(self, doc: dict[str, Any]) -> Document:
        raw_id = doc.get("_id") or uuid.uuid4().hex
        key = _storage_key(raw_id)
        if self._row(key) is not None:
            raise CmsRequestError(f"Document already exists: {key!r}", status_code=409)
        with self.conn:
            self._write_row(key, doc, published=not is_draft_id(raw_id))
        return self.get_document(key)  # type: ignore[return-value]

    def patch(
        self,
        doc_id: str,
        set_fields: dict[str, Any] | None = None,
        unset: list[str] | None = None,
    ) -> None:
        row = self._row(_storage_key(doc_id))
        if row is None:
            raise DocumentNotFoundError(published_id(doc_id))
        body = json.loads(row["body"])
        for key, value in (set_fields or {}).items():
            _set_path(body, key, value)
        for key in unset or []:
            _unset_path(body, key)
        with self.conn:
            self._write_row(row["id"], body, published=bool(row["published"]))

    def _check_no_outside_refs(self, keys: list[str]) -> None:
        """Raise if a strong reference from outside *keys* points into them.

        Corrupted double-draft rows never block: the platform ignores
        references held by drafts.
        """
        if not keys:
            return
        marks = ",".join("?" for _ in keys)
        blocker = self.conn.execute(
            f"""
            SELECT source_id, target_id FROM refs
            WHERE target_id IN ({marks})
              AND source_id NOT IN ({marks})
              AND source_id NOT LIKE 'drafts.%'
              AND weak = 0
            LIMIT 1
            """,  # noqa: S608
            (*keys, *keys),
        ).fetchone()
        if blocker:
            raise ReferenceConflictError(
                f"Document {blocker['target_id']!r} cannot be deleted as there are "
                f"references to it from {blocker['source_id']!r}",
                doc_id=blocker["target_id"],
            )

    def delete_many(self, doc_ids: list[str]) -> None:
        keys = [_storage_key(d) for d in doc_ids]
        self._check_no_outside_refs(keys)
        with self.conn:
            for key in keys:
                self.conn.execute("DELETE FROM documents WHERE id = ?", (key,))
        logger.debug("Deleted %d local documents", len(keys))

    def delete_raw(self, raw_id: str) -> None:
        key = _storage_key(raw_id)
        row = self._row(key)
        if row is None:
            return
        if is_draft_id(raw_id) and not is_corrupted_id(raw_id) and row["published"]:
            # The draft of a published document has already been folded in.
            return
        self.delete_many([raw_id])

    def set_publish_state(self, doc_id: str, state: PublishState) -> bool:
        key = _storage_key(doc_id)
        row = self._row(key)
        if row is None:
            raise DocumentNotFoundError(published_id(doc_id))
        want = state is PublishState.PUBLISHED
        if bool(row["published"]) == want:
            return False
        with self.conn:
            self.conn.execute(
                "UPDATE documents SET published = ?, updated_at = ? WHERE id = ?",
                (int(want), int(time()), key),
            )
        return True

    def upload_asset(self, kind: str, path: Path, filename: str | None = None) -> dict[str, Any]:
        if kind not in ("image", "file"):
            raise ValueError(f"Unknown asset kind {kind!r}")
        content = path.read_bytes()
        sha1 = hashlib.sha1(content).hexdigest()  # noqa: S324
        ext = path.suffix.lstrip(".").lower() or "bin"
        asset_id = f"{kind}-{sha1}-{ext}"
        existing = self.get_document(asset_id)
        if existing:
            return existing.body
        filename = filename or path.name
        doc = {
            "_id": asset_id,
            "_type": f"sanity.{kind}Asset",
            "originalFilename": filename,
            "size": len(content),
            "mimeType": mimetypes.guess_type(filename)[0] or "application/octet-stream",
            "sha1hash": sha1,
            "url": path.resolve().as_uri(),
        }
        return self.create(doc).body

    # -- NDJSON import / export ---------------------------------------
    def import_ndjson(self, path: Path) -> int:
        """Load a dataset export.  Returns the number of lines imported."""
        count = 0
        with self.conn, path.open(encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                raw = json.loads(line)
                raw_id = raw.get("_id")
                if not raw_id:
                    continue
                key = _storage_key(raw_id)
                existing = self._row(key)
                if is_corrupted_id(raw_id):
                    self._write_row(key, raw, published=False)
                elif is_draft_id(raw_id):
                    published = bool(existing and existing["published"])
                    self._write_row(key, raw, published=published)
                elif existing is not None and not existing["published"]:
                    # Draft came first: keep its body, mark it published.
                    self._write_row(key, json.loads(existing["body"]), published=True)
                else:
                    self._write_row(key, raw, published=True)
                count += 1
        logger.info("Imported %d documents from %s", count, path)
        return count

    def export_ndjson(self, path: Path) -> int:
        """Write every document back out as NDJSON.  Returns the count."""
        rows = self.conn.execute("SELECT * FROM documents ORDER BY rowid").fetchall()
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            for row in rows:
                body = json.loads(row["body"])
                if not row["published"] and not is_corrupted_id(row["id"]):
                    body["_id"] = DRAFTS_PREFIX + row["id"]
                fh.write(json.dumps(body) + "\n")
        return len(rows)

    def close(self) -> None:
        self.conn.close()
