"""
Site evaluations on a relationship graph.

This module provides the per-site computations:

- **LogProbability**: likelihood of the read data of a site
- **CallMutations**: de novo mutation statistics from forward and backward passes
"""

from .call_mutations import CallMutations, MutationStats, lphred
from .probability import LogProbability, LogProbabilityParams, LogProbabilityValue

__all__ = [
    "CallMutations",
    "MutationStats",
    "lphred",
    "LogProbability",
    "LogProbabilityParams",
    "LogProbabilityValue",
]
