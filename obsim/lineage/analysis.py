"""
Lineage Analysis
=================
Summary statistics over a finished lineage tree.

Implements:
- Offspring count per case (realised individual reproduction numbers)
- Generation intervals (infectee time minus infector time)
- Generation depth of each case from the root
"""

from __future__ import annotations

from typing import Dict

import numpy as np

from obsim.lineage.tree import LineageTree


def offspring_counts(tree: LineageTree) -> np.ndarray:
    """Number of children of each case, in creation order."""
    return np.array([len(tree.children(case.case_id)) for case in tree], dtype=np.int64)


def generation_intervals(tree: LineageTree) -> np.ndarray:
    intervals = [
        case.infection_time - tree[case.parent_id].infection_time
        for case in tree
        if case.parent_id is not None
    ]
    return np.array(intervals, dtype=float)


def generation_depths(tree: LineageTree) -> Dict[int, int]:
    """Map case id to its generation (root = 0)."""
    depths: Dict[int, int] = {}
    # creation order guarantees parents are seen before children
    for case in tree:
        depths[case.case_id] = 0 if case.parent_id is None else depths[case.parent_id] + 1
    return depths


def summarize_tree(tree: LineageTree) -> Dict[str, float]:
    if len(tree) == 0:
        return {
            "total_cases": 0,
            "leaves": 0,
            "max_generation": 0,
            "mean_generation": 0.0,
            "duration": 0.0,
            "mean_offspring": 0.0,
            "mean_generation_interval": 0.0,
            "mean_mutations": 0.0,
        }

    depths = np.array(list(generation_depths(tree).values()))
    times = np.array([case.infection_time for case in tree])
    intervals = generation_intervals(tree)
    mutations = np.array([case.genome.mutation_count for case in tree])
    offspring = offspring_counts(tree)

    return {
        "total_cases": len(tree),
        "leaves": int(np.sum(offspring == 0)),
        "max_generation": int(depths.max()),
        "mean_generation": float(depths.mean()),
        "duration": float(times.max() - times.min()),
        "mean_offspring": float(offspring.mean()),
        "mean_generation_interval": float(intervals.mean()) if intervals.size else 0.0,
        "mean_mutations": float(mutations.mean()),
    }
