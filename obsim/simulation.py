from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass
from multiprocessing import Pool
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from obsim.config import SimulationParameters, validate_parameters
from obsim.disease.generation import GenerationTimeModel, build_generation_time_model
from obsim.disease.offspring import OffspringModel, build_offspring_model
from obsim.genome.evolution import EvolutionModel, build_evolution_model
from obsim.genome.genome import Genome
from obsim.lineage.analysis import generation_depths
from obsim.lineage.tree import LineageTree
from obsim.rng import Lineage, RNGManager
from obsim.surveillance.classifier import Label, classify_parameters


class OutbreakTooLarge(Exception):
    """The case cap was reached before the horizon was exhausted."""

    def __init__(self, max_cases: int, time: float, pending: int) -> None:
        super().__init__(
            f"outbreak exceeded {max_cases} cases at t={time:.4g} with {pending} events pending"
        )
        self.max_cases = max_cases
        self.time = time
        self.pending = pending


@dataclass
class Models:
    offspring: OffspringModel
    generation_time: GenerationTimeModel
    evolution: EvolutionModel


def build_models(
    params: SimulationParameters,
    offspring_model: Optional[OffspringModel] = None,
    generation_time_model: Optional[GenerationTimeModel] = None,
    evolution_model: Optional[EvolutionModel] = None,
) -> Models:
    return Models(
        offspring=offspring_model or build_offspring_model(params.offspring),
        generation_time=generation_time_model
        or build_generation_time_model(params.generation_time),
        evolution=evolution_model or build_evolution_model(params.mutation),
    )


def run(
    params: SimulationParameters,
    offspring_model: Optional[OffspringModel] = None,
    generation_time_model: Optional[GenerationTimeModel] = None,
    evolution_model: Optional[EvolutionModel] = None,
    check: bool = False,
) -> LineageTree:
    """
    Simulate one outbreak from the reference genome.

    Pending infections are processed in infection-time order (ties by
    insertion order). Offspring infected after the horizon are discarded.
    The run ends when nothing is pending, or raises OutbreakTooLarge as soon
    as a new case would push the tree past ``max_cases``.

    Model instances passed in override the ones configured in ``params``.
    With ``check=True`` the finished tree's structural invariants are
    asserted.
    """
    validate_parameters(params)
    models = build_models(params, offspring_model, generation_time_model, evolution_model)

    horizon = params.sim.horizon
    max_cases = params.sim.max_cases
    streams = RNGManager(params.sim.seed)

    tree = LineageTree()
    root = tree.add_root(Genome(params.mutation.reference))
    lineages: Dict[int, Lineage] = {root.case_id: ()}

    order = itertools.count()
    pending: List[Tuple[float, int, int]] = [(root.infection_time, next(order), root.case_id)]

    logging.info(
        "Starting outbreak simulation: seed=%d horizon=%g max_cases=%d",
        params.sim.seed,
        horizon,
        max_cases,
    )

    while pending:
        now, _, case_id = heapq.heappop(pending)
        case = tree[case_id]
        lineage = lineages.pop(case_id)
        rng = streams.transmission(lineage)

        n_offspring = models.offspring.sample(rng)
        for k in range(n_offspring):
            delta = models.generation_time.sample(rng)
            child_time = now + delta
            if child_time <= now:
                child_time = float(np.nextafter(now, np.inf))
            if child_time > horizon:
                continue
            if len(tree) >= max_cases:
                logging.warning(
                    "Outbreak reached the %d case cap at t=%.4g before the horizon", max_cases, now
                )
                raise OutbreakTooLarge(max_cases, now, len(pending))

            child_lineage = lineage + (k,)
            genome = models.evolution.evolve(
                case.genome,
                child_time - now,
                streams.evolution(child_lineage),
                origin_time=now,
            )
            child = tree.add(case_id, child_time, genome)
            lineages[child.case_id] = child_lineage
            heapq.heappush(pending, (child_time, next(order), child.case_id))

    logging.info("Outbreak simulation finished with %d cases", len(tree))
    if check:
        tree.check_invariants()
    return tree


def _run_replicate(params: SimulationParameters) -> Dict[str, object]:
    seed = params.sim.seed
    try:
        tree = run(params)
    except OutbreakTooLarge as exc:
        logging.info("Replicate seed=%d exceeded %d cases", seed, exc.max_cases)
        return {
            "seed": seed,
            "status": "too_large",
            "n_cases": exc.max_cases,
            "n_index": 0,
            "n_singleton": 0,
            "max_generation": 0,
            "duration": exc.time,
        }

    labels = classify_parameters(tree, params)
    depths = generation_depths(tree)
    times = [case.infection_time for case in tree]
    logging.info("Replicate seed=%d complete with %d cases", seed, len(tree))
    return {
        "seed": seed,
        "status": "complete",
        "n_cases": len(tree),
        "n_index": sum(1 for v in labels.values() if v is Label.INDEX),
        "n_singleton": sum(1 for v in labels.values() if v is Label.SINGLETON),
        "max_generation": max(depths.values()),
        "duration": max(times) - min(times),
    }


def run_replicates(
    params: SimulationParameters,
    seeds: Iterable[int],
    num_workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    Run one outbreak per seed and tabulate the outcome of each.

    Replicates share no state, so running them in a process pool gives the
    same table as running them in sequence.
    """
    validate_parameters(params)
    jobs = []
    for seed in seeds:
        replicate = params.model_copy(deep=True)
        replicate.sim.seed = int(seed)
        jobs.append(replicate)

    if num_workers is not None and num_workers > 1 and len(jobs) > 1:
        with Pool(num_workers) as pool:
            rows = pool.map(_run_replicate, jobs)
    else:
        rows = [_run_replicate(job) for job in jobs]

    return pd.DataFrame(
        rows,
        columns=[
            "seed",
            "status",
            "n_cases",
            "n_index",
            "n_singleton",
            "max_generation",
            "duration",
        ],
    )
