"""
Sequence Evolution
===================
Mutates a parent genome along one transmission edge.

Models are pure functions of (parent genome, branch length, edge stream), so
a child's genome never depends on the order in which the tree is built.
"""

from __future__ import annotations

import abc
import math
from dataclasses import dataclass
from typing import List

import numpy as np

from obsim.config import ConfigError, MutationConfig, alphabet_problems
from obsim.genome.genome import Genome, Mutation


class EvolutionModel(abc.ABC):
    """
    Base class for sequence evolution models.

    Subclasses that change genome length (e.g. indel models) must say so in
    their docstring; the default model preserves length.
    """

    @abc.abstractmethod
    def evolve(
        self,
        parent: Genome,
        branch_length: float,
        rng: np.random.Generator,
        origin_time: float = 0.0,
    ) -> Genome:
        """
        Return the child genome after ``branch_length`` time units.

        Args:
            origin_time: Absolute time at the start of the branch, used to
                timestamp recorded mutations.
        """


@dataclass(frozen=True)
class SubstitutionModel(EvolutionModel):
    """
    Substitution-only model with a uniform per-site rate.

    The number of hits on a branch is Poisson with mean
    ``rate * len(genome) * branch_length``. Hits land on uniform sites at
    uniform times along the branch and are applied in time order; each picks
    a new symbol uniformly among the alphabet minus the current one. A site
    hit twice keeps the outcome of the later hit. Genome length is unchanged.
    """

    rate: float
    alphabet: str = "ACGT"

    def __post_init__(self) -> None:
        if not math.isfinite(self.rate) or self.rate <= 0:
            raise ConfigError(f"mutation rate must be > 0, got {self.rate}")
        problems = alphabet_problems(self.alphabet)
        if problems:
            raise ConfigError("; ".join(problems))

    def expected_mutations(self, length: int, branch_length: float) -> float:
        return self.rate * length * branch_length

    def evolve(
        self,
        parent: Genome,
        branch_length: float,
        rng: np.random.Generator,
        origin_time: float = 0.0,
    ) -> Genome:
        if branch_length < 0:
            raise ValueError(f"branch_length must be >= 0, got {branch_length}")

        length = len(parent)
        lam = self.expected_mutations(length, branch_length)
        n_hits = int(rng.poisson(lam)) if lam > 0 and length > 0 else 0
        if n_hits == 0:
            return parent

        times = np.sort(rng.uniform(origin_time, origin_time + branch_length, size=n_hits))
        sites = rng.integers(0, length, size=n_hits)

        symbols = list(parent.sequence)
        applied: List[Mutation] = []
        for site, when in zip(sites.tolist(), times.tolist()):
            before = symbols[site]
            choices = [s for s in dict.fromkeys(self.alphabet) if s != before]
            after = choices[int(rng.integers(len(choices)))]
            symbols[site] = after
            applied.append(Mutation(position=site, original=before, new=after, time=float(when)))

        return Genome(sequence="".join(symbols), mutations=parent.mutations + tuple(applied))


def build_evolution_model(cfg: MutationConfig) -> EvolutionModel:
    if cfg.model == "substitution":
        return SubstitutionModel(cfg.rate, cfg.alphabet)
    raise ConfigError(f"Unknown mutation model: {cfg.model}")
