from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

TRANSMISSION = 0
EVOLUTION = 1

Lineage = Tuple[int, ...]


@dataclass(frozen=True)
class RNGManager:
    """Derives independent generators per lineage edge from one root seed.

    A lineage is the path of offspring indices from the root case, so the
    stream a case receives does not depend on the order in which events are
    processed.
    """

    seed: int

    def __post_init__(self) -> None:
        if self.seed < 0:
            raise ValueError("seed must be non-negative")

    def stream(self, purpose: int, lineage: Lineage = ()) -> np.random.Generator:
        seq = np.random.SeedSequence(self.seed, spawn_key=(purpose, *lineage))
        return np.random.default_rng(seq)

    def transmission(self, lineage: Lineage = ()) -> np.random.Generator:
        return self.stream(TRANSMISSION, lineage)

    def evolution(self, lineage: Lineage) -> np.random.Generator:
        return self.stream(EVOLUTION, lineage)
