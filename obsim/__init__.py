"""Stochastic outbreak simulation with evolving genomes for surveillance studies."""

from obsim.config import (
    ConfigError,
    SimulationParameters,
    dump_config,
    load_config,
    make_parameters,
    validate_parameters,
)
from obsim.io.records import format_records, parse_record, parse_records
from obsim.lineage.tree import Case, LineageTree
from obsim.simulation import OutbreakTooLarge, run, run_replicates
from obsim.surveillance.classifier import Label, classify, classify_parameters, select_sampled

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "SimulationParameters",
    "dump_config",
    "load_config",
    "make_parameters",
    "validate_parameters",
    "format_records",
    "parse_record",
    "parse_records",
    "Case",
    "LineageTree",
    "OutbreakTooLarge",
    "run",
    "run_replicates",
    "Label",
    "classify",
    "classify_parameters",
    "select_sampled",
]
