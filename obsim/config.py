from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Sequence

import yaml
from pydantic import BaseModel, Field, ValidationError

RESERVED_SYMBOLS = set(":>@;=")


class SimSection(BaseModel):
    horizon: float = 30.0
    max_cases: int = 1000
    seed: int = 42


class OffspringConfig(BaseModel):
    distribution: Literal["negative_binomial", "poisson", "constant"] = "negative_binomial"
    reproduction_number: float = 1.5
    dispersion: float = 1.0
    count: int = 0


class GenerationTimeConfig(BaseModel):
    distribution: Literal[
        "exponential", "gamma", "constant", "infectiousness_profile"
    ] = "exponential"
    mean: float = 3.0
    sd: float = 1.5
    # relative infectiousness per unit of time after incubation
    weights: List[float] = Field(default_factory=list)
    incubation: float = 0.0


class MutationConfig(BaseModel):
    model: Literal["substitution"] = "substitution"
    rate: float = 5e-4
    reference: str = "ACGT" * 16
    alphabet: str = "ACGT"


class SurveillanceConfig(BaseModel):
    ancestral_divergence_time: float = 0.0
    index_window: float = 10.0
    singleton_window: float = 5.0


class SimulationParameters(BaseModel):
    sim: SimSection = SimSection()
    offspring: OffspringConfig = OffspringConfig()
    generation_time: GenerationTimeConfig = GenerationTimeConfig()
    mutation: MutationConfig = MutationConfig()
    surveillance: SurveillanceConfig = SurveillanceConfig()


class ConfigError(Exception):
    pass


def _finite(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def window_problems(index_window: float, singleton_window: float) -> List[str]:
    problems = []
    if not _finite(index_window) or index_window < 0:
        problems.append(f"index_window must be a finite value >= 0, got {index_window}")
    if not _finite(singleton_window) or singleton_window < 0:
        problems.append(f"singleton_window must be a finite value >= 0, got {singleton_window}")
    return problems


def profile_problems(weights: Sequence[float], incubation: float) -> List[str]:
    problems = []
    if not weights:
        problems.append("weights must not be empty")
    elif any(not _finite(w) or w < 0 for w in weights):
        problems.append(f"weights must be finite values >= 0, got {list(weights)}")
    elif sum(weights) <= 0:
        problems.append("weights must have a positive sum")
    if not _finite(incubation) or incubation < 0:
        problems.append(f"incubation must be a finite value >= 0, got {incubation}")
    return problems


def alphabet_problems(alphabet: str) -> List[str]:
    problems = []
    symbols = set(alphabet)
    if len(symbols) < 2:
        problems.append(f"alphabet needs at least 2 distinct symbols, got {alphabet!r}")
    bad = sorted(s for s in symbols if s.isspace() or s in RESERVED_SYMBOLS)
    if bad:
        problems.append(f"alphabet contains reserved symbols {bad}")
    return problems


def validate_parameters(params: SimulationParameters) -> SimulationParameters:
    """Check every section against its valid domain.

    All problems are collected and reported together in a single ConfigError.
    """
    problems: List[str] = []

    sim = params.sim
    if not _finite(sim.horizon) or sim.horizon <= 0:
        problems.append(f"sim.horizon must be a finite value > 0, got {sim.horizon}")
    if sim.max_cases <= 0:
        problems.append(f"sim.max_cases must be >= 1, got {sim.max_cases}")
    if sim.seed < 0:
        problems.append(f"sim.seed must be >= 0, got {sim.seed}")

    off = params.offspring
    if off.distribution in ("negative_binomial", "poisson"):
        if not _finite(off.reproduction_number) or off.reproduction_number < 0:
            problems.append(
                f"offspring.reproduction_number must be a finite value >= 0, got {off.reproduction_number}"
            )
    if off.distribution == "negative_binomial":
        if not _finite(off.dispersion) or off.dispersion <= 0:
            problems.append(f"offspring.dispersion must be > 0, got {off.dispersion}")
    if off.distribution == "constant" and off.count < 0:
        problems.append(f"offspring.count must be >= 0, got {off.count}")

    gen = params.generation_time
    if gen.distribution == "infectiousness_profile":
        problems.extend(
            f"generation_time.{p}" for p in profile_problems(gen.weights, gen.incubation)
        )
    elif not _finite(gen.mean) or gen.mean <= 0:
        problems.append(f"generation_time.mean must be > 0, got {gen.mean}")
    if gen.distribution == "gamma" and (not _finite(gen.sd) or gen.sd <= 0):
        problems.append(f"generation_time.sd must be > 0, got {gen.sd}")

    mut = params.mutation
    if not _finite(mut.rate) or mut.rate <= 0:
        problems.append(f"mutation.rate must be > 0, got {mut.rate}")
    if not mut.reference:
        problems.append("mutation.reference must not be empty")
    problems.extend(f"mutation.{p}" for p in alphabet_problems(mut.alphabet))
    foreign = sorted(set(mut.reference) - set(mut.alphabet))
    if foreign:
        problems.append(f"mutation.reference uses symbols outside the alphabet: {foreign}")

    surv = params.surveillance
    if not _finite(surv.ancestral_divergence_time):
        problems.append(
            f"surveillance.ancestral_divergence_time must be finite, got {surv.ancestral_divergence_time}"
        )
    problems.extend(
        f"surveillance.{p}" for p in window_problems(surv.index_window, surv.singleton_window)
    )

    if problems:
        raise ConfigError("; ".join(problems))
    return params


def _parse(data: Dict[str, Any]) -> SimulationParameters:
    try:
        params = SimulationParameters.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
    return validate_parameters(params)


def make_parameters(
    *,
    ancestral_divergence_time: float = 0.0,
    horizon: float = 30.0,
    max_cases: int = 1000,
    offspring: str = "negative_binomial",
    reproduction_number: float = 1.5,
    dispersion: float = 1.0,
    offspring_count: int = 0,
    generation_time: str = "exponential",
    generation_time_mean: float = 3.0,
    generation_time_sd: float = 1.5,
    generation_time_weights: Optional[Sequence[float]] = None,
    incubation: float = 0.0,
    mutation_rate: float = 5e-4,
    reference: str = "ACGT" * 16,
    alphabet: str = "ACGT",
    index_window: float = 10.0,
    singleton_window: float = 5.0,
    seed: int = 42,
) -> SimulationParameters:
    """Build validated parameters from flat caller-supplied values."""
    data = {
        "sim": {"horizon": horizon, "max_cases": max_cases, "seed": seed},
        "offspring": {
            "distribution": offspring,
            "reproduction_number": reproduction_number,
            "dispersion": dispersion,
            "count": offspring_count,
        },
        "generation_time": {
            "distribution": generation_time,
            "mean": generation_time_mean,
            "sd": generation_time_sd,
            "weights": list(generation_time_weights or []),
            "incubation": incubation,
        },
        "mutation": {"rate": mutation_rate, "reference": reference, "alphabet": alphabet},
        "surveillance": {
            "ancestral_divergence_time": ancestral_divergence_time,
            "index_window": index_window,
            "singleton_window": singleton_window,
        },
    }
    return _parse(data)


def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: str | Path) -> SimulationParameters:
    path = Path(path)
    data = yaml.safe_load(path.read_text()) or {}
    base_path = data.get("base")
    if base_path:
        base_data = yaml.safe_load((path.parent / base_path).read_text()) or {}
        data = deep_merge(base_data, data)
        data.pop("base", None)
    return _parse(data)


def dump_config(params: SimulationParameters, path: str | Path) -> None:
    path = Path(path)
    path.write_text(yaml.safe_dump(params.model_dump(), sort_keys=False))
