"""
Surveillance Classification
============================
Labels simulated cases as index, singleton or unsampled detections.

Rules:
- Index: infected within ``index_window`` after the ancestral divergence time.
- Singleton: not index, no sampled descendant, and infected within
  ``singleton_window`` of its own transmission origin (the infector's
  infection time, or the divergence time for the root).
- Unsampled: everything else.

Index takes precedence when both windows apply.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Dict, List, Set

from obsim.config import ConfigError, SimulationParameters, window_problems
from obsim.lineage.tree import Case, LineageTree


class Label(str, Enum):
    INDEX = "index"
    SINGLETON = "singleton"
    UNSAMPLED = "unsampled"


def _in_window(offset: float, width: float) -> bool:
    return 0.0 <= offset <= width


def classify(
    tree: LineageTree,
    ancestral_divergence_time: float,
    index_window: float,
    singleton_window: float,
) -> Dict[int, Label]:
    """
    Label every case in the tree.

    Labels are also attached to the cases. The returned mapping is ordered
    by infection time, ties broken by case id.
    """
    problems = window_problems(index_window, singleton_window)
    if not math.isfinite(ancestral_divergence_time):
        problems.append(f"ancestral_divergence_time must be finite, got {ancestral_divergence_time}")
    if problems:
        raise ConfigError("; ".join(problems))

    order = sorted(tree, key=lambda c: (c.infection_time, c.case_id))
    labels: Dict[int, Label] = {}
    has_sampled_descendant: Set[int] = set()

    # descendants are infected strictly later, so they are decided first
    for case in reversed(order):
        if _in_window(case.infection_time - ancestral_divergence_time, index_window):
            label = Label.INDEX
        elif case.case_id not in has_sampled_descendant and _in_window(
            case.infection_time - _origin_time(tree, case, ancestral_divergence_time),
            singleton_window,
        ):
            label = Label.SINGLETON
        else:
            label = Label.UNSAMPLED

        case.label = label
        labels[case.case_id] = label
        if label is not Label.UNSAMPLED:
            _mark_ancestors(tree, case, has_sampled_descendant)

    ordered = {case.case_id: labels[case.case_id] for case in order}
    logging.debug(
        "Classified %d cases: %d index, %d singleton",
        len(ordered),
        sum(1 for v in ordered.values() if v is Label.INDEX),
        sum(1 for v in ordered.values() if v is Label.SINGLETON),
    )
    return ordered


def _origin_time(tree: LineageTree, case: Case, ancestral_divergence_time: float) -> float:
    if case.parent_id is None:
        return ancestral_divergence_time
    return tree[case.parent_id].infection_time


def _mark_ancestors(tree: LineageTree, case: Case, marked: Set[int]) -> None:
    parent_id = case.parent_id
    while parent_id is not None and parent_id not in marked:
        marked.add(parent_id)
        parent_id = tree[parent_id].parent_id


def classify_parameters(tree: LineageTree, params: SimulationParameters) -> Dict[int, Label]:
    surv = params.surveillance
    return classify(
        tree,
        surv.ancestral_divergence_time,
        surv.index_window,
        surv.singleton_window,
    )


def select_sampled(tree: LineageTree, labels: Dict[int, Label]) -> List[Case]:
    """Index and singleton cases in infection-time order, ties broken by id."""
    sampled = [tree[cid] for cid, label in labels.items() if label is not Label.UNSAMPLED]
    return sorted(sampled, key=lambda c: (c.infection_time, c.case_id))
