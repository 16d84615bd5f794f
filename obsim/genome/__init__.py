from .evolution import EvolutionModel, SubstitutionModel, build_evolution_model
from .genome import Genome, Mutation, decode_mutations, encode_mutations

__all__ = [
    "EvolutionModel",
    "SubstitutionModel",
    "build_evolution_model",
    "Genome",
    "Mutation",
    "decode_mutations",
    "encode_mutations",
]
