"""
Lineage Tree
=============
Arena of simulated cases keyed by integer id.

Cases only ever point at a parent that already exists, so the structure is a
tree by construction. ``check_invariants`` re-verifies this for tests and
debugging runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional

import pandas as pd

from obsim.genome.genome import Genome

if TYPE_CHECKING:
    from obsim.surveillance.classifier import Label


@dataclass
class Case:
    """A single infection in the outbreak."""

    case_id: int
    parent_id: Optional[int]
    infection_time: float
    genome: Genome
    label: Optional["Label"] = None  # assigned by classify()

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class LineageTree:
    def __init__(self) -> None:
        self._cases: Dict[int, Case] = {}
        self._root_id: Optional[int] = None
        self._children: Optional[Dict[int, List[int]]] = None

    def __len__(self) -> int:
        return len(self._cases)

    def __iter__(self) -> Iterator[Case]:
        return iter(self._cases.values())

    def __contains__(self, case_id: object) -> bool:
        return case_id in self._cases

    def __getitem__(self, case_id: int) -> Case:
        return self._cases[case_id]

    @property
    def root(self) -> Case:
        if self._root_id is None:
            raise ValueError("tree has no root")
        return self._cases[self._root_id]

    def _next_id(self) -> int:
        return len(self._cases)

    def add_root(self, genome: Genome, infection_time: float = 0.0) -> Case:
        if self._root_id is not None:
            raise ValueError("tree already has a root")
        case = Case(self._next_id(), None, float(infection_time), genome)
        self._cases[case.case_id] = case
        self._root_id = case.case_id
        self._children = None
        return case

    def add(self, parent_id: int, infection_time: float, genome: Genome) -> Case:
        if parent_id not in self._cases:
            raise ValueError(f"unknown parent case {parent_id}")
        case = Case(self._next_id(), parent_id, float(infection_time), genome)
        self._cases[case.case_id] = case
        self._children = None
        return case

    def parent(self, case_id: int) -> Optional[Case]:
        parent_id = self._cases[case_id].parent_id
        return None if parent_id is None else self._cases[parent_id]

    def children(self, case_id: int) -> List[Case]:
        if self._children is None:
            index: Dict[int, List[int]] = {cid: [] for cid in self._cases}
            for case in self._cases.values():
                if case.parent_id is not None:
                    index[case.parent_id].append(case.case_id)
            self._children = index
        return [self._cases[cid] for cid in self._children[case_id]]

    def ancestors(self, case_id: int) -> List[Case]:
        """Parent first, root last."""
        chain = []
        case = self.parent(case_id)
        while case is not None:
            chain.append(case)
            case = self.parent(case.case_id)
        return chain

    def descendants(self, case_id: int) -> List[Case]:
        found = []
        stack = [case_id]
        while stack:
            for child in self.children(stack.pop()):
                found.append(child)
                stack.append(child.case_id)
        return found

    def leaves(self) -> List[Case]:
        return [case for case in self if not self.children(case.case_id)]

    def depth(self, case_id: int) -> int:
        return len(self.ancestors(case_id))

    def check_invariants(self) -> None:
        """Assert single root, reachability, acyclicity and time ordering."""
        roots = [case for case in self if case.parent_id is None]
        assert len(roots) == 1, f"expected exactly one root, found {len(roots)}"
        assert roots[0].case_id == self._root_id

        for case in self:
            if case.parent_id is None:
                continue
            assert case.parent_id in self._cases, f"case {case.case_id} has unknown parent"
            parent = self._cases[case.parent_id]
            assert case.infection_time > parent.infection_time, (
                f"case {case.case_id} infected at {case.infection_time} "
                f"not after parent {parent.case_id} at {parent.infection_time}"
            )

        reached = {self._root_id}
        stack = [self._root_id]
        while stack:
            for child in self.children(stack.pop()):
                assert child.case_id not in reached, f"case {child.case_id} reached twice"
                reached.add(child.case_id)
                stack.append(child.case_id)
        assert len(reached) == len(self._cases), "some cases are unreachable from the root"

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {
                "case_id": case.case_id,
                "parent_id": case.parent_id,
                "infection_time": case.infection_time,
                "n_mutations": case.genome.mutation_count,
                "label": None if case.label is None else case.label.value,
            }
            for case in self
        ]
        frame = pd.DataFrame(
            rows, columns=["case_id", "parent_id", "infection_time", "n_mutations", "label"]
        )
        frame["parent_id"] = frame["parent_id"].astype("Int64")
        return frame
