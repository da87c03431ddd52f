"""Utilities for rendering portfolio trees and job reports in the CLI."""

from __future__ import annotations

from typing import Any, Iterable

from gallery.models import ItemResult


def render_tree(tree: dict[str, Any], show_artworks: bool = True) -> str:
    """Render a :func:`~gallery.cascade.build_tree` result as an ASCII tree.

    Portfolios come before artworks at every level.  Unpublished documents
    are marked ``(draft)`` and unlisted ones ``(unlisted)``.
    """
    lines = [f"{_get_icon(tree)} {_label(tree)}"]

    def _render(node: dict[str, Any], prefix: str) -> None:
        children = list(node.get("children", []))
        if show_artworks:
            children += node.get("artworks", [])
        count = len(children)
        for i, child in enumerate(children):
            is_last = i == count - 1
            connector = "└── " if is_last else "├── "
            lines.append(f"{prefix}{connector}{_get_icon(child)} {_label(child)}")
            if child.get("type") == "portfolio":
                _render(child, prefix + ("    " if is_last else "│   "))

    _render(tree, "")
    return "\n".join(lines)


def _label(node: dict[str, Any]) -> str:
    label = node.get("title") or f"Untitled ({node['id'][:8]})"
    if not node.get("published", True):
        label += " (draft)"
    if node.get("listingStatus") == "unpublished":
        label += " (unlisted)"
    return label


def _get_icon(node: dict[str, Any]) -> str:
    if node.get("type") == "portfolio":
        return "📁"
    icons = {
        "image": "🖼️",
        "video": "🎬",
        "pdf": "📄",
        "audio": "🎵",
    }
    return icons.get(node.get("mediaType") or "", "📦")


def render_results(results: Iterable[ItemResult], verbose: bool = False) -> list[str]:
    """One line per failed item (and per success when *verbose*)."""
    lines: list[str] = []
    for r in results:
        if r.status == "failed":
            lines.append(f"  ❌ {r.doc_type or 'document'} {r.doc_id}: {r.error}")
        elif verbose and r.status == "ok":
            lines.append(f"  ✅ {r.doc_type or 'document'} {r.doc_id}")
        elif verbose:
            reason = f" ({r.error})" if r.error else ""
            lines.append(f"  ⏭️  {r.doc_type or 'document'} {r.doc_id}{reason}")
    return lines


def render_job(report: Any, verbose: bool = False) -> list[str]:
    """Lines for a maintenance :class:`~gallery.maintenance.JobReport`."""
    if report.dry_run:
        lines = [f"  • {r.doc_id}" for r in report.results]
    else:
        lines = render_results(report.results, verbose=verbose)
    icon = "❌" if report.failed else "✅"
    return lines + [f"{icon} {report.summary()}"]
