from pathlib import Path

import pytest

from obsim.config import (
    ConfigError,
    SimulationParameters,
    dump_config,
    load_config,
    make_parameters,
    validate_parameters,
)

CONFIGS = Path(__file__).resolve().parent.parent / "configs"


def test_load_config():
    params = load_config(CONFIGS / "baseline.yaml")
    assert params.sim.seed == 42
    assert params.sim.max_cases == 1000
    assert params.offspring.distribution == "negative_binomial"
    assert params.offspring.reproduction_number == 1.5
    assert params.generation_time.mean == 3.0
    assert params.surveillance.index_window == 10.0
    assert len(params.mutation.reference) == 64


def test_load_config_merges_base():
    params = load_config(CONFIGS / "supercritical.yaml")
    assert params.sim.max_cases == 50
    assert params.sim.horizon == 1000.0
    assert params.offspring.distribution == "poisson"
    assert params.offspring.reproduction_number == 3.0
    # inherited from baseline.yaml
    assert params.sim.seed == 42
    assert params.surveillance.singleton_window == 5.0


def test_dump_config_round_trip(tmp_path: Path):
    params = make_parameters(seed=7, horizon=12.5, reproduction_number=0.8)
    path = tmp_path / "resolved.yaml"
    dump_config(params, path)
    assert load_config(path) == params


def test_load_config_rejects_unknown_distribution(tmp_path: Path):
    path = tmp_path / "bad.yaml"
    path.write_text("offspring:\n  distribution: geometric\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_load_config_rejects_out_of_domain_values(tmp_path: Path):
    path = tmp_path / "bad.yaml"
    path.write_text("sim:\n  horizon: -1\n")
    with pytest.raises(ConfigError, match="horizon"):
        load_config(path)


def test_defaults_are_valid():
    params = SimulationParameters()
    assert validate_parameters(params) is params


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"horizon": 0.0}, "horizon"),
        ({"horizon": float("inf")}, "horizon"),
        ({"max_cases": 0}, "max_cases"),
        ({"seed": -1}, "seed"),
        ({"reproduction_number": -0.5}, "reproduction_number"),
        ({"dispersion": 0.0}, "dispersion"),
        ({"offspring": "constant", "offspring_count": -1}, "count"),
        ({"generation_time_mean": 0.0}, "generation_time.mean"),
        ({"generation_time": "gamma", "generation_time_sd": 0.0}, "generation_time.sd"),
        ({"generation_time": "infectiousness_profile"}, "generation_time.weights"),
        (
            {"generation_time": "infectiousness_profile", "generation_time_weights": [1.0], "incubation": -1.0},
            "generation_time.incubation",
        ),
        ({"mutation_rate": 0.0}, "mutation.rate"),
        ({"reference": ""}, "reference"),
        ({"alphabet": "AAAA", "reference": "AAAA"}, "alphabet"),
        ({"alphabet": "AC;", "reference": "ACAC"}, "reserved"),
        ({"reference": "ACGN"}, "outside the alphabet"),
        ({"index_window": -1.0}, "index_window"),
        ({"singleton_window": -0.1}, "singleton_window"),
        ({"ancestral_divergence_time": float("nan")}, "ancestral_divergence_time"),
    ],
)
def test_make_parameters_rejects(overrides, field):
    with pytest.raises(ConfigError, match=field):
        make_parameters(**overrides)


def test_zero_reproduction_number_is_allowed():
    params = make_parameters(offspring="poisson", reproduction_number=0.0)
    assert params.offspring.reproduction_number == 0.0


def test_validation_reports_every_problem():
    params = SimulationParameters()
    params.sim.horizon = 0
    params.sim.max_cases = 0
    with pytest.raises(ConfigError) as excinfo:
        validate_parameters(params)
    message = str(excinfo.value)
    assert "horizon" in message
    assert "max_cases" in message


def test_infectiousness_profile_ignores_mean():
    params = make_parameters(
        generation_time="infectiousness_profile",
        generation_time_mean=0.0,
        generation_time_weights=[0.2, 0.5, 0.3],
        incubation=1.5,
    )
    assert params.generation_time.weights == [0.2, 0.5, 0.3]
    assert params.generation_time.incubation == 1.5
