from pathlib import Path

import pytest

from obsim.config import ConfigError, load_config, make_parameters
from obsim.disease import (
    ConstantGenerationTime,
    ConstantOffspring,
    InfectiousnessProfileGenerationTime,
)
from obsim.io import CaseRecord, format_records, parse_record
from obsim.lineage import generation_depths
from obsim.simulation import OutbreakTooLarge, run, run_replicates
from obsim.surveillance import Label, classify_parameters, select_sampled

CONFIGS = Path(__file__).resolve().parent.parent / "configs"


def binary_tree_params(**overrides):
    values = dict(
        offspring="constant",
        offspring_count=2,
        generation_time="constant",
        generation_time_mean=1.0,
        horizon=5.0,
        max_cases=1000,
    )
    values.update(overrides)
    return make_parameters(**values)


def random_params(seed, **overrides):
    values = dict(
        reproduction_number=1.2,
        dispersion=0.5,
        horizon=25.0,
        max_cases=100000,
        mutation_rate=0.01,
        seed=seed,
    )
    values.update(overrides)
    return make_parameters(**values)


def test_deterministic_binary_tree():
    tree = run(binary_tree_params(), check=True)
    # generations 0..5 with two offspring each, horizon inclusive
    assert len(tree) == 63
    depths = generation_depths(tree)
    assert max(depths.values()) == 5
    assert len(tree.leaves()) == 32
    assert all(case.infection_time == depths[case.case_id] for case in tree)


def test_offspring_past_horizon_are_discarded():
    tree = run(binary_tree_params(horizon=4.5))
    assert len(tree) == 31
    assert max(case.infection_time for case in tree) == 4.0


def test_cap_reached_exactly_is_not_an_error():
    assert len(run(binary_tree_params(max_cases=63))) == 63


def test_cap_exceeded_raises():
    with pytest.raises(OutbreakTooLarge) as excinfo:
        run(binary_tree_params(max_cases=62))
    assert excinfo.value.max_cases == 62


@pytest.mark.parametrize("seed", range(5))
def test_tree_invariants(seed):
    tree = run(random_params(seed), check=True)
    root = tree.root
    assert root.parent_id is None
    assert root.infection_time == 0.0
    for case in tree:
        if case.parent_id is not None:
            parent = tree[case.parent_id]
            assert case.infection_time > parent.infection_time
            assert case.infection_time <= 25.0


@pytest.mark.parametrize("seed", range(5))
def test_default_model_preserves_genome_length(seed):
    params = random_params(seed)
    tree = run(params)
    reference = params.mutation.reference
    assert tree.root.genome.sequence == reference
    for case in tree:
        assert len(case.genome) == len(reference)


@pytest.mark.parametrize("seed", range(3))
def test_mutations_are_timed_on_their_branch(seed):
    tree = run(random_params(seed, mutation_rate=0.05))
    for case in tree:
        if case.parent_id is None:
            continue
        parent = tree[case.parent_id]
        new = case.genome.mutations[parent.genome.mutation_count:]
        assert case.genome.mutations[: parent.genome.mutation_count] == parent.genome.mutations
        assert all(parent.infection_time <= m.time <= case.infection_time for m in new)


@pytest.mark.parametrize(
    "overrides",
    [
        {"offspring": "constant", "offspring_count": 0},
        {"offspring": "poisson", "reproduction_number": 0.0},
        {"offspring": "negative_binomial", "reproduction_number": 0.0},
    ],
)
def test_zero_reproduction_gives_root_only(overrides):
    tree = run(make_parameters(**overrides))
    assert len(tree) == 1
    assert tree.root.genome.mutation_count == 0


def test_model_instances_override_configuration():
    params = make_parameters(reproduction_number=3.0, horizon=100.0)
    assert len(run(params, offspring_model=ConstantOffspring(0))) == 1
    tree = run(
        params,
        offspring_model=ConstantOffspring(1),
        generation_time_model=ConstantGenerationTime(10.0),
    )
    assert [case.infection_time for case in tree] == [10.0 * i for i in range(11)]


def test_infectiousness_profile_spaces_generations():
    params = make_parameters(
        offspring="constant",
        offspring_count=1,
        generation_time="infectiousness_profile",
        generation_time_weights=[0.0, 1.0],
        incubation=2.0,
        horizon=40.0,
    )
    tree = run(params, check=True)
    assert len(tree) >= 9
    for case in tree:
        if case.parent_id is not None:
            gap = case.infection_time - tree[case.parent_id].infection_time
            assert 3.0 < gap <= 4.0

    model = InfectiousnessProfileGenerationTime([0.0, 1.0], incubation=2.0)
    chain = run(
        make_parameters(horizon=40.0),
        offspring_model=ConstantOffspring(1),
        generation_time_model=model,
    )
    assert [c.infection_time for c in chain] == [c.infection_time for c in tree]


def test_supercritical_constant_offspring_hits_cap():
    params = make_parameters(offspring="constant", offspring_count=3, horizon=1000.0, max_cases=50)
    with pytest.raises(OutbreakTooLarge):
        run(params)


def test_supercritical_fixture_overflows_the_cap():
    with pytest.raises(OutbreakTooLarge) as excinfo:
        run(load_config(CONFIGS / "supercritical.yaml"))
    exc = excinfo.value
    assert exc.max_cases == 50
    assert exc.pending == 33
    assert exc.time == pytest.approx(2.055, abs=1e-3)


def test_supercritical_fixture_only_stops_early_by_extinction():
    params = load_config(CONFIGS / "supercritical.yaml")
    finished = []
    for seed in range(40):
        params.sim.seed = seed
        try:
            tree = run(params, check=True)
        except OutbreakTooLarge as exc:
            assert exc.max_cases == 50
        else:
            assert len(tree) == 1
            finished.append(seed)
    # P(no offspring) = exp(-3) for the root
    assert finished == [22, 28, 39]


def test_invalid_parameters_rejected_before_stepping():
    params = make_parameters()
    params.sim.horizon = -1.0
    with pytest.raises(ConfigError):
        run(params)
    params = make_parameters()
    params.offspring.dispersion = 0.0
    with pytest.raises(ConfigError):
        run(params)


def test_longer_horizon_extends_the_same_tree():
    short = run(binary_tree_params(generation_time="exponential", generation_time_mean=3.0, horizon=6.0))
    long = run(
        binary_tree_params(
            generation_time="exponential", generation_time_mean=3.0, horizon=10.0, max_cases=10**6
        )
    )
    long_cases = {(c.infection_time, c.genome) for c in long}
    assert all((c.infection_time, c.genome) in long_cases for c in short)
    assert len(long) >= len(short)


def test_full_pipeline_round_trip():
    params = random_params(3, reproduction_number=1.4)
    tree = run(params)
    labels = classify_parameters(tree, params)
    sampled = select_sampled(tree, labels)
    assert sampled, "root is always an index case with zero divergence time"

    parsed = [parse_record(text) for text in format_records(sampled)]
    assert parsed == [CaseRecord.from_case(case) for case in sampled]
    assert [r.case_id for r in parsed] == [c.case_id for c in sampled]


@pytest.mark.parametrize("seed", range(5))
def test_window_correctness(seed):
    params = random_params(seed, reproduction_number=1.4)
    surv = params.surveillance
    tree = run(params)
    labels = classify_parameters(tree, params)
    sampled = {cid for cid, label in labels.items() if label is not Label.UNSAMPLED}

    for case in tree:
        label = labels[case.case_id]
        offset = case.infection_time - surv.ancestral_divergence_time
        in_index = 0.0 <= offset <= surv.index_window
        origin = (
            surv.ancestral_divergence_time
            if case.parent_id is None
            else tree[case.parent_id].infection_time
        )
        in_singleton = 0.0 <= case.infection_time - origin <= surv.singleton_window
        sampled_below = any(d.case_id in sampled for d in tree.descendants(case.case_id))

        if label is Label.INDEX:
            assert in_index
        elif label is Label.SINGLETON:
            assert not in_index and in_singleton and not sampled_below
        else:
            assert not in_index and (sampled_below or not in_singleton)


def test_run_replicates_table():
    params = random_params(0)
    table = run_replicates(params, seeds=[1, 2, 3])
    assert list(table.columns) == [
        "seed",
        "status",
        "n_cases",
        "n_index",
        "n_singleton",
        "max_generation",
        "duration",
    ]
    assert table["seed"].tolist() == [1, 2, 3]
    assert set(table["status"]) <= {"complete", "too_large"}
    assert (table["n_index"] >= 1).all()
    assert table.equals(run_replicates(params, seeds=[1, 2, 3]))
    # the input parameters are left untouched
    assert params.sim.seed == 0


def test_run_replicates_reports_cap_overflow():
    params = make_parameters(offspring="constant", offspring_count=3, horizon=1000.0, max_cases=50)
    table = run_replicates(params, seeds=[0, 1])
    assert table["status"].tolist() == ["too_large", "too_large"]
