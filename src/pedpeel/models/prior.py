"""
Population priors of founder genotypes.
"""

import numpy as np

from ..core.matrix import DIPLOID_GENOTYPES


def _alpha(theta: float, nuc_freq, ref_weight: float, ref_index: int) -> np.ndarray:
    alpha = theta * np.asarray(nuc_freq, dtype=float)
    if ref_index < 4:
        alpha[ref_index] += ref_weight
    return alpha


def population_prior_diploid(theta: float, nuc_freq, ref_weight: float) -> np.ndarray:
    """
    Dirichlet-multinomial prior of the 10 diploid genotypes.

    With ``alpha = theta * nuc_freq`` plus `ref_weight` on the reference
    allele and ``S = sum(alpha)``::

        P(ii) = alpha_i (alpha_i + 1) / (S (S + 1))
        P(ij) = 2 alpha_i alpha_j / (S (S + 1))

    Returns
    -------
    np.ndarray, shape (5, 10)
        One row per reference index; row 4 (N) has no reference weight.
    """
    prior = np.zeros((5, 10))
    for ref in range(5):
        alpha = _alpha(theta, nuc_freq, ref_weight, ref)
        total = alpha.sum()
        for g, (a, b) in enumerate(DIPLOID_GENOTYPES):
            if a == b:
                prior[ref, g] = alpha[a] * (alpha[a] + 1.0)
            else:
                prior[ref, g] = 2.0 * alpha[a] * alpha[b]
        prior[ref] /= total * (total + 1.0)
    return prior


def population_prior_haploid(theta: float, nuc_freq, ref_weight: float) -> np.ndarray:
    """
    Prior of the 4 haploid genotypes, ``P(i) = alpha_i / S``.

    Returns
    -------
    np.ndarray, shape (5, 4)
    """
    prior = np.zeros((5, 4))
    for ref in range(5):
        alpha = _alpha(theta, nuc_freq, ref_weight, ref)
        prior[ref] = alpha / alpha.sum()
    return prior
