from .classifier import Label, classify, classify_parameters, select_sampled

__all__ = ["Label", "classify", "classify_parameters", "select_sampled"]
