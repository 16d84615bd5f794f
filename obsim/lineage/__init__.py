from obsim.lineage.tree import Case, LineageTree

from obsim.lineage.analysis import (
    generation_depths,
    generation_intervals,
    offspring_counts,
    summarize_tree,
)

__all__ = [
    "Case",
    "LineageTree",
    "generation_depths",
    "generation_intervals",
    "offspring_counts",
    "summarize_tree",
]
