"""
Statistical models used by the peeling evaluations.

- **Mutation matrices**: per-node transition matrices of a relationship graph
- **Priors**: Dirichlet-multinomial population priors of founder genotypes
- **Genotyper**: genotype likelihoods of a library from its read depths
"""

from pedpeel.models.genotyper import Genotyper, GenotyperParams
from pedpeel.models.mutation import (
    MutationMatrices,
    create_mutation_matrices,
    create_mutation_matrices_subset,
    mutation_label,
)
from pedpeel.models.prior import population_prior_diploid, population_prior_haploid

__all__ = [
    "Genotyper",
    "GenotyperParams",
    "MutationMatrices",
    "create_mutation_matrices",
    "create_mutation_matrices_subset",
    "mutation_label",
    "population_prior_diploid",
    "population_prior_haploid",
]
