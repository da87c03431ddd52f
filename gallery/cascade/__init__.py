"""Cascade operations over portfolio trees.

Public re-exports so callers can write::

    from gallery.cascade import plan_cascade, apply_cascade
"""

from gallery.cascade.apply import apply_cascade, clear_unpublished, mark_unpublished
from gallery.cascade.plan import DELETE_PHRASE, CascadePlan, plan_cascade
from gallery.cascade.walk import (
    build_tree,
    collect_descendants,
    has_children,
    root_portfolio_ids,
)

__all__ = [
    "CascadePlan",
    "DELETE_PHRASE",
    "apply_cascade",
    "build_tree",
    "clear_unpublished",
    "collect_descendants",
    "has_children",
    "mark_unpublished",
    "plan_cascade",
    "root_portfolio_ids",
]
