"""
De novo mutation statistics of a site.
"""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from ..core.graph import RelationshipGraph
from ..core.matrix import MUTATIONS_MEAN, num_genotypes
from ..models.mutation import mutation_label, subset_indices
from .probability import LN10, LogProbability, LogProbabilityParams


def lphred(p: float, max_value: int = 255) -> int:
    """
    Phred-scaled value of an error probability, ``-10 log10(p)``.

    Rounded to the nearest integer and clamped to [0, max_value]; a zero or
    undefined probability gives `max_value`.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        q = -10.0 * np.log10(p)
    if not q < max_value:
        return max_value
    return max(0, int(math.floor(q + 0.5)))


@dataclass
class MutationStats:
    """
    Mutation statistics of one site.

    Attributes
    ----------
    mup : float
        Probability of at least one mutation in the pedigree
    lld : float
        log10 likelihood of the data
    genotype_likelihoods : list[np.ndarray]
        log10 genotype likelihoods of every library (scaled to a maximum of 0)
    posterior_probabilities : list[np.ndarray]
        Posterior genotype probabilities of every node
    mux : float
        Expected number of mutations
    node_mup : np.ndarray
        Probability that a node carries at least one mutation, given that
        the pedigree carries at least one
    node_mu1p : np.ndarray
        Probability that the single mutation is at a node, given exactly one
    mu1p : float
        Probability of exactly one mutation
    dnq : int
        Phred-scaled quality of the most likely mutation
    dnl : str
        Label of the node with the most likely mutation; empty when no
        single mutation can explain the data
    dnt : str
        Genotype transition of the most likely mutation; empty with `dnl`
    """

    mup: float = 0.0
    lld: float = 0.0
    genotype_likelihoods: List[np.ndarray] = field(default_factory=list)
    posterior_probabilities: List[np.ndarray] = field(default_factory=list)
    mux: float = 0.0
    node_mup: np.ndarray = field(default_factory=lambda: np.zeros(0))
    node_mu1p: np.ndarray = field(default_factory=lambda: np.zeros(0))
    mu1p: float = 0.0
    dnq: int = 0
    dnl: str = ""
    dnt: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """
        Export statistics as plain Python values.

        Returns
        -------
        dict
            Arrays become lists; impossible genotypes get a log-likelihood
            of None
        """
        def finite(values):
            return [float(v) if np.isfinite(v) else None for v in values]

        return {
            'mup': float(self.mup),
            'lld': float(self.lld),
            'mux': float(self.mux),
            'mu1p': float(self.mu1p),
            'dnq': int(self.dnq),
            'dnl': self.dnl,
            'dnt': self.dnt,
            'node_mup': [float(v) for v in self.node_mup],
            'node_mu1p': [float(v) for v in self.node_mu1p],
            'genotype_likelihoods': [finite(g) for g in self.genotype_likelihoods],
            'posterior_probabilities': [[float(v) for v in p] for p in self.posterior_probabilities],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def summary(self, labels: Optional[List[str]] = None) -> str:
        """
        Generate a formatted summary of the statistics.

        Parameters
        ----------
        labels : list[str], optional
            Node labels, used to list per-node probabilities

        Returns
        -------
        str
            Multi-line formatted summary
        """
        lines = []
        lines.append(f"Mutation: {self.dnt} at {self.dnl}")
        lines.append(f"  P(>=1 mutation):     {self.mup:.6g}")
        lines.append(f"  P(exactly 1):        {self.mu1p:.6g}")
        lines.append(f"  Expected mutations:  {self.mux:.6g}")
        lines.append(f"  Quality (DNQ):       {self.dnq}")
        lines.append(f"  log10 likelihood:    {self.lld:.4f}")
        if labels is not None and len(self.node_mup) == len(labels):
            lines.append("  Per node (mup / mu1p):")
            for label, mup, mu1p in zip(labels, self.node_mup, self.node_mu1p):
                if mup > 0.0 or mu1p > 0.0:
                    lines.append(f"    {label}: {mup:.4g} / {mu1p:.4g}")
        return "\n".join(lines)


def _expand(values: np.ndarray, index: List[int], size: int, fill: float) -> np.ndarray:
    out = np.full(size, fill)
    out[index] = values
    return out


class CallMutations(LogProbability):
    """
    Detects de novo mutations by contrasting mutation matrix variants.

    Parameters
    ----------
    min_prob : float
        Minimum probability of a mutation for a site to be reported
    graph : RelationshipGraph
        Successfully constructed graph
    params : LogProbabilityParams, optional
        Model parameters

    Examples
    --------
    >>> caller = CallMutations(0.1, graph, LogProbabilityParams())
    >>> stats = MutationStats()
    >>> if caller(depths, ref_index=0, stats=stats):
    ...     print(stats.summary(graph.labels))
    """

    def __init__(self, min_prob: float, graph: RelationshipGraph,
                 params: Optional[LogProbabilityParams] = None):
        super().__init__(graph, params)
        self.min_prob = min_prob

        self.zero_mutation_matrices = self.create_mutation_matrices(0)
        self.one_mutation_matrices = self.create_mutation_matrices(1)
        self.mean_mutation_matrices = self.create_mutation_matrices(MUTATIONS_MEAN)
        self.oneplus_mutation_matrices = self.transition_matrices - self.zero_mutation_matrices

    def __call__(self, depths, ref_index: Optional[int] = None,
                 stats: Optional[MutationStats] = None) -> bool:
        """
        Test a site for a de novo mutation.

        Parameters
        ----------
        depths : np.ndarray or AlleleDepths
            Raw depths in library node order, or allele-restricted depths
        ref_index : int, optional
            Reference nucleotide (4 for N). Required for raw depths.
        stats : MutationStats, optional
            Filled in when a mutation is found

        Returns
        -------
        bool
            True if the probability of a mutation is at least `min_prob`
        """
        work = self.work
        graph = self.graph
        scale, alleles = self.set_depths(depths, ref_index)
        full = self.select(self.transition_matrices, alleles)
        zero = self.select(self.zero_mutation_matrices, alleles)

        numerator = graph.peel_forwards(work, zero)
        denominator = graph.peel_forwards(work, full)
        mup = max(0.0, float(-np.expm1(numerator - denominator)))

        if not mup >= self.min_prob:
            return False
        if stats is None:
            return True

        one = self.select(self.one_mutation_matrices, alleles)
        mean = self.select(self.mean_mutation_matrices, alleles)
        oneplus = self.select(self.oneplus_mutation_matrices, alleles)
        subsets = None if alleles is None else self.node_subsets(alleles)

        stats.mup = mup
        stats.lld = (denominator + scale) / LN10

        graph.peel_backwards(work, full)

        first_library, last_library = work.library_nodes
        stats.genotype_likelihoods = []
        with np.errstate(divide="ignore"):
            for pos in range(first_library, last_library):
                loglike = np.log(work.lower[pos]) / LN10
                if subsets is not None:
                    loglike = _expand(loglike, subsets[pos], num_genotypes(work.ploidies[pos]), -np.inf)
                stats.genotype_likelihoods.append(loglike)

        stats.posterior_probabilities = []
        for i in range(work.num_nodes):
            post = work.upper[i] * work.lower[i]
            post = post / post.sum()
            if subsets is not None:
                post = _expand(post, subsets[i], num_genotypes(work.ploidies[i]), 0.0)
            stats.posterior_probabilities.append(post)

        first_nonfounder = work.founder_nodes[1]
        stats.mux = 0.0
        stats.node_mup = np.zeros(work.num_nodes)
        for i in range(first_nonfounder, work.num_nodes):
            stats.mux += float(np.sum(work.super_[i] * (mean[i] @ work.lower[i])))
            stats.node_mup[i] = np.sum(work.super_[i] * (oneplus[i] @ work.lower[i]))
        if mup > 0.0:
            stats.node_mup /= mup

        graph.peel_forwards(work, zero)
        graph.peel_backwards(work, zero)

        total = 0.0
        max_coeff = -1.0
        dn_row = dn_col = 0
        dn_location = first_nonfounder
        stats.node_mu1p = np.zeros(work.num_nodes)
        for i in range(first_nonfounder, work.num_nodes):
            buf = np.outer(work.super_[i], work.lower[i]) * one[i]
            row, col = np.unravel_index(np.argmax(buf), buf.shape)
            if buf[row, col] > max_coeff:
                max_coeff = float(buf[row, col])
                dn_row, dn_col, dn_location = int(row), int(col), i
            stats.node_mu1p[i] = buf.sum()
            total += float(stats.node_mu1p[i])

        # total = P(1 mutation | D) / P(0 mutations | D)
        stats.mu1p = total * (1.0 - mup)
        if not total > 0.0:
            # no single-mutation explanation of the data
            stats.dnq = 0
            stats.dnl = ""
            stats.dnt = ""
            return True

        stats.node_mu1p[first_nonfounder:] /= total
        stats.dnq = lphred(1.0 - max_coeff / total, 255)
        stats.dnl = graph.labels[dn_location]

        if subsets is not None:
            rows, cols = subset_indices(graph, alleles)[dn_location]
            dn_row, dn_col = rows[dn_row], cols[dn_col]
        transition = graph.transitions[dn_location]
        parent_ploidies = tuple(graph.ploidies[p] for p in transition.parents)
        stats.dnt = mutation_label(parent_ploidies, transition.ploidy, dn_row, dn_col)
        return True
