"""Helpers for CMS document ids, titles and slugs.

Draft ids
---------
The CMS stores an unpublished edit as a second document whose id is the
published id prefixed with ``drafts.``.  Every id that enters the cascade
layer is normalised with :func:`published_id` first, so a draft and its
published counterpart count as one logical document.

Title suffix
------------
Older datasets flag hidden documents by appending ``unpublished`` to the
title.  The ``listingStatus`` field is the authoritative flag now; the suffix
helpers below keep the two in step and convert legacy titles.
"""

from __future__ import annotations

import re
import unicodedata

DRAFTS_PREFIX = "drafts."

_UNPUBLISHED_SUFFIX = re.compile(r"\s*unpublished\s*$", re.IGNORECASE)
UNPUBLISHED_SUFFIX = "unpublished"


# ---------------------------------------------------------------------------
# Ids
# ---------------------------------------------------------------------------

def is_draft_id(doc_id: str) -> bool:
    return doc_id.startswith(DRAFTS_PREFIX)


def published_id(doc_id: str) -> str:
    """Strip every leading ``drafts.`` prefix.

    ``drafts.drafts.abc`` collapses to ``abc`` as well, which is how
    corrupted double-prefixed drafts are recognised and repaired.
    """
    while doc_id.startswith(DRAFTS_PREFIX):
        doc_id = doc_id[len(DRAFTS_PREFIX):]
    return doc_id


def draft_id(doc_id: str) -> str:
    """Return the draft id for *doc_id* (always exactly one prefix)."""
    return DRAFTS_PREFIX + published_id(doc_id)


def is_corrupted_id(doc_id: str) -> bool:
    """``True`` for ids carrying more than one ``drafts.`` prefix."""
    return doc_id.startswith(DRAFTS_PREFIX + DRAFTS_PREFIX)


def dedupe_ids(ids: list[str]) -> list[str]:
    """Normalise to published ids and drop duplicates, keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for raw in ids:
        pid = published_id(raw)
        if pid not in seen:
            seen.add(pid)
            out.append(pid)
    return out


# ---------------------------------------------------------------------------
# Titles
# ---------------------------------------------------------------------------

def clean_title(title: str) -> str:
    """Remove a trailing ``unpublished`` marker (any case) and trim."""
    return _UNPUBLISHED_SUFFIX.sub("", title or "").strip()


def has_unpublished_suffix(title: str) -> bool:
    return bool(_UNPUBLISHED_SUFFIX.search(title or ""))


def mark_unpublished_title(title: str) -> str:
    """``"Nocturne"`` → ``"Nocturne unpublished"``.  Idempotent."""
    base = clean_title(title)
    return f"{base} {UNPUBLISHED_SUFFIX}" if base else UNPUBLISHED_SUFFIX


def clear_unpublished_title(title: str) -> str:
    """Inverse of :func:`mark_unpublished_title`.  Idempotent."""
    return clean_title(title)


# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------

SLUG_MAX_LENGTH = 96


def slugify(value: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Turn *value* into the slug shape the studio generates for artworks.

    Accents are transliterated (``"Café Noir"`` → ``"cafe-noir"``), anything
    that is not ``a-z``, ``0-9`` or ``-`` is dropped and runs of hyphens are
    collapsed.
    """
    normalized = unicodedata.normalize("NFD", value)
    ascii_only = "".join(c for c in normalized if not unicodedata.combining(c)).lower()
    slug = re.sub(r"\s+", "-", ascii_only)
    slug = re.sub(r"[^a-z0-9\-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")[:max_length]
