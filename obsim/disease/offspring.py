"""
Offspring Distributions
========================
Number of secondary infections caused by a single case.

Implements:
- Negative binomial offspring (mean R, dispersion k); k -> inf recovers Poisson
- Poisson offspring (mean R)
- Constant offspring (every case infects exactly n others)

Each model also reports the probability that a branching process driven by it
goes extinct, the smallest root of G(s) = s on [0, 1] where G is the
probability generating function.

References:
- Lloyd-Smith, J. O., et al. (2005). Superspreading and the effect of
  individual variation on disease emergence
"""

from __future__ import annotations

import abc
import math
from dataclasses import dataclass

import numpy as np
from scipy.optimize import brentq
from scipy.special import lambertw

from obsim.config import ConfigError, OffspringConfig

# Upper bracket for the pgf root search; f(1) == 0 always.
_ROOT_CEILING = 1.0 - 1e-9


class OffspringModel(abc.ABC):
    """Draws the number of offspring for one case."""

    @property
    @abc.abstractmethod
    def mean(self) -> float:
        ...

    @abc.abstractmethod
    def sample(self, rng: np.random.Generator) -> int:
        ...

    @abc.abstractmethod
    def pgf(self, s: float) -> float:
        ...

    def extinction_probability(self) -> float:
        if self.mean <= 1.0:
            return 1.0

        def excess(s: float) -> float:
            return self.pgf(s) - s

        if excess(_ROOT_CEILING) >= 0.0:
            return 1.0
        return float(brentq(excess, 0.0, _ROOT_CEILING, xtol=1e-14))


@dataclass(frozen=True)
class NegativeBinomialOffspring(OffspringModel):
    reproduction_number: float
    dispersion: float

    def __post_init__(self) -> None:
        if not math.isfinite(self.reproduction_number) or self.reproduction_number < 0:
            raise ConfigError(f"reproduction_number must be >= 0, got {self.reproduction_number}")
        if not math.isfinite(self.dispersion) or self.dispersion <= 0:
            raise ConfigError(f"dispersion must be > 0, got {self.dispersion}")

    @property
    def mean(self) -> float:
        return self.reproduction_number

    def sample(self, rng: np.random.Generator) -> int:
        if self.reproduction_number == 0:
            return 0
        k = self.dispersion
        p = k / (k + self.reproduction_number)
        return int(rng.negative_binomial(k, p))

    def pgf(self, s: float) -> float:
        k = self.dispersion
        return (1.0 + self.reproduction_number * (1.0 - s) / k) ** (-k)


@dataclass(frozen=True)
class PoissonOffspring(OffspringModel):
    reproduction_number: float

    def __post_init__(self) -> None:
        if not math.isfinite(self.reproduction_number) or self.reproduction_number < 0:
            raise ConfigError(f"reproduction_number must be >= 0, got {self.reproduction_number}")

    @property
    def mean(self) -> float:
        return self.reproduction_number

    def sample(self, rng: np.random.Generator) -> int:
        if self.reproduction_number == 0:
            return 0
        return int(rng.poisson(self.reproduction_number))

    def pgf(self, s: float) -> float:
        return math.exp(self.reproduction_number * (s - 1.0))

    def extinction_probability(self) -> float:
        R = self.reproduction_number
        if R <= 1.0:
            return 1.0
        q = -lambertw(-R * math.exp(-R)).real / R
        return float(max(0.0, min(1.0, q)))


@dataclass(frozen=True)
class ConstantOffspring(OffspringModel):
    count: int

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ConfigError(f"count must be >= 0, got {self.count}")

    @property
    def mean(self) -> float:
        return float(self.count)

    def sample(self, rng: np.random.Generator) -> int:
        return self.count

    def pgf(self, s: float) -> float:
        return s ** self.count

    def extinction_probability(self) -> float:
        return 1.0 if self.count == 0 else 0.0


def build_offspring_model(cfg: OffspringConfig) -> OffspringModel:
    if cfg.distribution == "negative_binomial":
        return NegativeBinomialOffspring(cfg.reproduction_number, cfg.dispersion)
    if cfg.distribution == "poisson":
        return PoissonOffspring(cfg.reproduction_number)
    if cfg.distribution == "constant":
        return ConstantOffspring(cfg.count)
    raise ConfigError(f"Unknown offspring distribution: {cfg.distribution}")
