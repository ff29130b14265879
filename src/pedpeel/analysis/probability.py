"""
Log-likelihood of the read data of one site.
"""

import math
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Tuple

import numpy as np

from ..core.graph import RelationshipGraph
from ..core.matrix import MUTATIONS_ALL, subset_genotypes
from ..io.depths import AlleleDepths
from ..models.genotyper import Genotyper, GenotyperParams
from ..models.mutation import MutationMatrices, TransitionMatrixVector
from ..models.prior import population_prior_diploid, population_prior_haploid

LN10 = math.log(10.0)


@dataclass
class LogProbabilityParams:
    """
    Model parameters of a site evaluation.

    Attributes
    ----------
    theta : float
        Population diversity of founder genotypes
    nuc_freq : tuple of 4 floats
        Nucleotide frequencies (A, C, G, T); renormalized if needed
    ref_weight : float
        Extra prior weight of the reference allele
    params_a, params_b : GenotyperParams
        Components of the genotyper mixture
    """

    theta: float = 0.001
    nuc_freq: Tuple[float, float, float, float] = (0.3, 0.2, 0.2, 0.3)
    ref_weight: float = 1.0
    params_a: GenotyperParams = field(
        default_factory=lambda: GenotyperParams(pi=0.98, phi=0.0005, epsilon=0.0005, omega=1.0)
    )
    params_b: GenotyperParams = field(
        default_factory=lambda: GenotyperParams(pi=0.02, phi=0.05, epsilon=0.005, omega=1.0)
    )

    def __post_init__(self):
        if not self.theta > 0.0:
            raise ValueError(f"theta must be positive, got {self.theta}")
        if not self.ref_weight >= 0.0:
            raise ValueError(f"ref_weight must be non-negative, got {self.ref_weight}")
        freq = np.asarray(self.nuc_freq, dtype=float)
        if freq.shape != (4,) or np.any(freq < 0.0) or not freq.sum() > 0.0:
            raise ValueError(f"nuc_freq must be 4 non-negative values, got {self.nuc_freq}")
        if abs(freq.sum() - 1.0) > 1e-6:
            warnings.warn(
                f"Nucleotide frequencies sum to {freq.sum():.6f}; renormalizing",
                UserWarning,
            )
            freq = freq / freq.sum()
        self.nuc_freq = tuple(float(x) for x in freq)


class LogProbabilityValue(NamedTuple):
    """log10 likelihood of the data and the log10 scale removed from it."""
    log_data: float
    log_scale: float


class LogProbability:
    """
    Evaluates the likelihood of one site on a relationship graph.

    The object owns one workspace; it is reused for every site and must not
    be shared between threads.

    Parameters
    ----------
    graph : RelationshipGraph
        Successfully constructed graph
    params : LogProbabilityParams, optional
        Model parameters; defaults are used when omitted

    Examples
    --------
    >>> calc = LogProbability(graph, LogProbabilityParams(theta=0.001))
    >>> value = calc(depths, ref_index=0)
    >>> total = value.log_data + value.log_scale
    """

    def __init__(self, graph: RelationshipGraph, params: Optional[LogProbabilityParams] = None):
        self.graph = graph
        self.params = params if params is not None else LogProbabilityParams()
        self.work = graph.create_workspace()
        self.genotyper = Genotyper(self.params.params_a, self.params.params_b)
        self.diploid_prior = population_prior_diploid(
            self.params.theta, self.params.nuc_freq, self.params.ref_weight)
        self.haploid_prior = population_prior_haploid(
            self.params.theta, self.params.nuc_freq, self.params.ref_weight)
        self.transition_matrices = self.create_mutation_matrices(MUTATIONS_ALL)
        self._node_subsets: Dict[Tuple[int, ...], List[List[int]]] = {}

    def create_mutation_matrices(self, mutype: int = MUTATIONS_ALL) -> MutationMatrices:
        return MutationMatrices.create(self.graph, self.params.nuc_freq, mutype)

    def node_subsets(self, alleles: Tuple[int, ...]) -> List[List[int]]:
        """Genotype indices kept at every node when only `alleles` are possible."""
        if alleles not in self._node_subsets:
            self._node_subsets[alleles] = [subset_genotypes(p, alleles) for p in self.graph.ploidies]
        return self._node_subsets[alleles]

    def set_depths(self, depths, ref_index: Optional[int] = None) -> Tuple[float, Optional[Tuple[int, ...]]]:
        """
        Seed the workspace with genotype likelihoods and founder priors.

        Returns
        -------
        scale : float
            Natural-log scale removed from the genotype likelihoods
        alleles : tuple or None
            Alleles of a subset evaluation, None for raw depths
        """
        if isinstance(depths, AlleleDepths):
            alleles = depths.alleles
            ref = depths.ref_index if ref_index is None else ref_index
            scale = self.work.set_genotype_likelihoods(
                self.genotyper, depths.to_raw(), ref, self.node_subsets(alleles))
            self.work.set_founders(self.diploid_prior[ref][subset_genotypes(2, alleles)],
                                   self.haploid_prior[ref][subset_genotypes(1, alleles)])
            return scale, alleles

        if ref_index is None:
            raise ValueError("ref_index is required with raw depths")
        scale = self.work.set_genotype_likelihoods(self.genotyper, depths, ref_index)
        self.work.set_founders(self.diploid_prior[ref_index], self.haploid_prior[ref_index])
        return scale, None

    @staticmethod
    def select(matrices: MutationMatrices, alleles: Optional[Tuple[int, ...]]) -> TransitionMatrixVector:
        return matrices.full if alleles is None else matrices.subset(alleles)

    def __call__(self, depths, ref_index: Optional[int] = None) -> LogProbabilityValue:
        """
        Log-likelihood of a site.

        Parameters
        ----------
        depths : np.ndarray or AlleleDepths
            Raw depths of shape (n_libraries, 4) in library node order, or
            depths restricted to the observed alleles
        ref_index : int, optional
            Reference nucleotide (4 for N). Required for raw depths.

        Returns
        -------
        LogProbabilityValue
            log10 likelihood and log10 scale; their sum is the likelihood of
            the data under the genotyper's normalization
        """
        scale, alleles = self.set_depths(depths, ref_index)
        log_data = self.graph.peel_forwards(self.work, self.select(self.transition_matrices, alleles))
        return LogProbabilityValue(log_data / LN10, scale / LN10)
