"""
Genotype likelihoods from read depths.

Reads of a library are modelled as a mixture of two Dirichlet-multinomial
distributions: a main component with little overdispersion and a minor
component that absorbs noisy sites. Within a component, the expected
fraction of each nucleotide depends on the genotype, the sequencing error
rate and a reference bias for heterozygotes carrying the reference allele.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np
from scipy.special import gammaln

from ..core.matrix import genotypes, num_genotypes


@dataclass
class GenotyperParams:
    """
    Parameters of one Dirichlet-multinomial component.

    Attributes
    ----------
    pi : float
        Mixture weight of the component
    phi : float
        Overdispersion, in (0, 1)
    epsilon : float
        Sequencing error rate, in (0, 1)
    omega : float
        Reference bias: a heterozygote carrying the reference allele shows
        it in a fraction ``omega / (1 + omega)`` of reads
    """

    pi: float
    phi: float
    epsilon: float
    omega: float = 1.0

    def __post_init__(self):
        if not 0.0 <= self.pi <= 1.0:
            raise ValueError(f"pi must be in [0, 1], got {self.pi}")
        if not 0.0 < self.phi < 1.0:
            raise ValueError(f"phi must be in (0, 1), got {self.phi}")
        if not 0.0 < self.epsilon < 1.0:
            raise ValueError(f"epsilon must be in (0, 1), got {self.epsilon}")
        if not self.omega > 0.0:
            raise ValueError(f"omega must be positive, got {self.omega}")


def _read_fractions(params: GenotyperParams, ref_index: int, ploidy: int) -> np.ndarray:
    """Expected nucleotide fractions in the reads, shape (n_genotypes, 4)."""
    n = num_genotypes(ploidy)
    f = np.zeros((n, 4))
    for g, alleles in enumerate(genotypes(ploidy)):
        if len(set(alleles)) == 1:
            f[g, alleles[0]] = 1.0
        elif ref_index in alleles:
            other = alleles[1] if alleles[0] == ref_index else alleles[0]
            f[g, ref_index] = params.omega / (1.0 + params.omega)
            f[g, other] = 1.0 / (1.0 + params.omega)
        else:
            f[g, alleles[0]] = 0.5
            f[g, alleles[1]] = 0.5
    eps = params.epsilon
    return f * (1.0 - eps) + (1.0 - f) * eps / 3.0


class Genotyper:
    """
    Log-likelihood of a library's read depths for every genotype.

    Parameters
    ----------
    params_a, params_b : GenotyperParams
        Mixture components; their weights are renormalized to sum to 1.

    Examples
    --------
    >>> genotyper = Genotyper(GenotyperParams(0.98, 0.0005, 0.0005),
    ...                       GenotyperParams(0.02, 0.05, 0.005))
    >>> loglike = genotyper(np.array([10, 0, 0, 0]), ref_index=0, ploidy=2)
    """

    def __init__(self, params_a: GenotyperParams, params_b: GenotyperParams):
        total = params_a.pi + params_b.pi
        if not total > 0.0:
            raise ValueError("Mixture weights must not both be zero")
        self.components = (params_a, params_b)
        with np.errstate(divide="ignore"):
            self.log_weights = (np.log(params_a.pi / total), np.log(params_b.pi / total))
        self._alphas: Dict[Tuple[int, int], Tuple[np.ndarray, ...]] = {}

    def _component_alphas(self, ref_index: int, ploidy: int) -> Tuple[np.ndarray, ...]:
        key = (ref_index, ploidy)
        if key not in self._alphas:
            self._alphas[key] = tuple(
                _read_fractions(p, ref_index, ploidy) * (1.0 - p.phi) / p.phi
                for p in self.components
            )
        return self._alphas[key]

    def __call__(self, depths, ref_index: int, ploidy: int) -> np.ndarray:
        """
        Genotype log-likelihoods of one library.

        Parameters
        ----------
        depths : array-like, shape (4,)
            A, C, G, T read counts
        ref_index : int
            Reference nucleotide (4 for N)
        ploidy : int
            1 or 2

        Returns
        -------
        np.ndarray
            Natural-log likelihood per genotype, up to a constant shared by
            all genotypes
        """
        n = np.asarray(depths, dtype=float)
        total = n.sum()
        loglikes = []
        for log_weight, alpha in zip(self.log_weights, self._component_alphas(ref_index, ploidy)):
            a = alpha.sum(axis=1)
            ll = (gammaln(a) - gammaln(a + total)
                  + np.sum(gammaln(alpha + n) - gammaln(alpha), axis=1))
            loglikes.append(log_weight + ll)
        return np.logaddexp(loglikes[0], loglikes[1])
