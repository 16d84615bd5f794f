from __future__ import annotations

import abc
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from obsim.config import ConfigError, GenerationTimeConfig, profile_problems


class GenerationTimeModel(abc.ABC):
    """Draws the delay between an infector's infection and an infectee's."""

    @property
    @abc.abstractmethod
    def mean(self) -> float:
        ...

    @abc.abstractmethod
    def sample(self, rng: np.random.Generator) -> float:
        ...


def _check_positive(name: str, value: float) -> None:
    if not math.isfinite(value) or value <= 0:
        raise ConfigError(f"{name} must be > 0, got {value}")


@dataclass(frozen=True)
class ExponentialGenerationTime(GenerationTimeModel):
    mean_time: float

    def __post_init__(self) -> None:
        _check_positive("mean_time", self.mean_time)

    @property
    def mean(self) -> float:
        return self.mean_time

    def sample(self, rng: np.random.Generator) -> float:
        return float(rng.exponential(self.mean_time))


@dataclass(frozen=True)
class GammaGenerationTime(GenerationTimeModel):
    """Gamma generation time parameterised by its mean and standard deviation."""

    mean_time: float
    sd: float

    def __post_init__(self) -> None:
        _check_positive("mean_time", self.mean_time)
        _check_positive("sd", self.sd)

    @property
    def mean(self) -> float:
        return self.mean_time

    @property
    def shape(self) -> float:
        return (self.mean_time / self.sd) ** 2

    @property
    def scale(self) -> float:
        return self.sd ** 2 / self.mean_time

    def sample(self, rng: np.random.Generator) -> float:
        return float(rng.gamma(self.shape, self.scale))


@dataclass(frozen=True)
class ConstantGenerationTime(GenerationTimeModel):
    delay: float

    def __post_init__(self) -> None:
        _check_positive("delay", self.delay)

    @property
    def mean(self) -> float:
        return self.delay

    def sample(self, rng: np.random.Generator) -> float:
        return self.delay


@dataclass(frozen=True)
class InfectiousnessProfileGenerationTime(GenerationTimeModel):
    """
    Generation time drawn from a discrete infectiousness profile.

    After ``incubation`` time units the case is infectious for
    ``len(weights)`` unit intervals, interval k carrying relative weight
    ``weights[k]``. A draw picks an interval in proportion to its weight and
    a uniform point in (start, end] of that interval, so every draw is
    strictly positive.
    """

    weights: Sequence[float]
    incubation: float = 0.0

    def __post_init__(self) -> None:
        problems = profile_problems(self.weights, self.incubation)
        if problems:
            raise ConfigError("; ".join(problems))
        object.__setattr__(self, "weights", tuple(float(w) for w in self.weights))

    @property
    def probabilities(self) -> np.ndarray:
        w = np.asarray(self.weights)
        return w / w.sum()

    @property
    def mean(self) -> float:
        offsets = np.arange(len(self.weights))
        return self.incubation + float(offsets @ self.probabilities) + 0.5

    def sample(self, rng: np.random.Generator) -> float:
        k = int(rng.choice(len(self.weights), p=self.probabilities))
        return self.incubation + k + 1.0 - float(rng.random())


def build_generation_time_model(cfg: GenerationTimeConfig) -> GenerationTimeModel:
    if cfg.distribution == "exponential":
        return ExponentialGenerationTime(cfg.mean)
    if cfg.distribution == "gamma":
        return GammaGenerationTime(cfg.mean, cfg.sd)
    if cfg.distribution == "constant":
        return ConstantGenerationTime(cfg.mean)
    if cfg.distribution == "infectiousness_profile":
        return InfectiousnessProfileGenerationTime(cfg.weights, cfg.incubation)
    raise ConfigError(f"Unknown generation time distribution: {cfg.distribution}")
