from .generation import (
    ConstantGenerationTime,
    ExponentialGenerationTime,
    GammaGenerationTime,
    GenerationTimeModel,
    InfectiousnessProfileGenerationTime,
    build_generation_time_model,
)
from .offspring import (
    ConstantOffspring,
    NegativeBinomialOffspring,
    OffspringModel,
    PoissonOffspring,
    build_offspring_model,
)

__all__ = [
    "ConstantGenerationTime",
    "ExponentialGenerationTime",
    "GammaGenerationTime",
    "GenerationTimeModel",
    "InfectiousnessProfileGenerationTime",
    "build_generation_time_model",
    "ConstantOffspring",
    "NegativeBinomialOffspring",
    "OffspringModel",
    "PoissonOffspring",
    "build_offspring_model",
]
