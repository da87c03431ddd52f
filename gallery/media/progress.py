"""Persistent progress for the Mux migration.

Stored as ``{"completed": [...], "failed": [...], "inProgress": [...]}`` in
``settings.progress_path`` and rewritten after every state change, so an
interrupted run picks up where it stopped.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from gallery.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MigrationProgress:
    completed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    in_progress: list[str] = field(default_factory=list)
    path: Path | None = field(default=None, repr=False, compare=False)

    def to_json(self) -> str:
        return json.dumps(
            {
                "completed": self.completed,
                "failed": self.failed,
                "inProgress": self.in_progress,
            },
            indent=2,
        )

    @classmethod
    def from_json(cls, data: str) -> "MigrationProgress":
        try:
            raw = json.loads(data)
            return cls(
                completed=list(raw.get("completed", [])),
                failed=list(raw.get("failed", [])),
                in_progress=list(raw.get("inProgress", [])),
            )
        except (json.JSONDecodeError, AttributeError, TypeError):
            return cls()

    # -- persistence ---------------------------------------------------
    @classmethod
    def load(cls, path: Path | None = None) -> "MigrationProgress":
        """Read the progress file, or start fresh if it is missing or corrupt."""
        path = path or settings.progress_path
        progress = cls.from_json(path.read_text(encoding="utf-8")) if path.exists() else cls()
        progress.path = path
        return progress

    def save(self) -> None:
        path = self.path or settings.progress_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")

    # -- transitions ---------------------------------------------------
    def is_done(self, doc_id: str) -> bool:
        return doc_id in self.completed or doc_id in self.failed

    def start(self, doc_id: str) -> None:
        if doc_id not in self.in_progress:
            self.in_progress.append(doc_id)
        self.save()

    def complete(self, doc_id: str) -> None:
        self._finish(doc_id, self.completed)

    def fail(self, doc_id: str) -> None:
        self._finish(doc_id, self.failed)

    def _finish(self, doc_id: str, bucket: list[str]) -> None:
        self.in_progress = [i for i in self.in_progress if i != doc_id]
        if doc_id not in bucket:
            bucket.append(doc_id)
        self.save()

    def retry_failed(self) -> list[str]:
        """Forget earlier failures so the next run tries them again."""
        retried, self.failed = self.failed, []
        self.save()
        logger.info("Cleared %d failed items for retry", len(retried))
        return retried
