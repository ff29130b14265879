"""
Per-node mutation matrices of a relationship graph.

Every non-founder node gets one transition matrix from its parent(s) to
itself. Rows are parent genotypes (``dad * n_mom + mom`` for trios) and
columns are the node's genotypes.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..core.graph import RelationshipGraph, Transition, TransitionType
from ..core.matrix import (
    MUTATIONS_ALL,
    collapse_counts,
    f81_matrix,
    gamete_counts,
    genotype_label,
    meiosis_counts,
    mitosis_diploid_counts,
    mitosis_haploid_counts,
    num_genotypes,
    subset_genotypes,
)

TransitionMatrixVector = List[Optional[np.ndarray]]


def _transition_counts(transition: Transition, ploidies: Sequence[int],
                       nuc_freq) -> np.ndarray:
    if transition.type is TransitionType.GERMLINE:
        dad = gamete_counts(f81_matrix(transition.length1, nuc_freq),
                            ploidies[transition.parent1])
        if not transition.is_trio:
            return dad
        mom = gamete_counts(f81_matrix(transition.length2, nuc_freq),
                            ploidies[transition.parent2])
        return meiosis_counts(dad, mom)

    m = f81_matrix(transition.length1, nuc_freq)
    if transition.ploidy == 2:
        return mitosis_diploid_counts(m)
    return mitosis_haploid_counts(m)


def create_mutation_matrices(graph: RelationshipGraph, nuc_freq,
                             mutype: int = MUTATIONS_ALL) -> TransitionMatrixVector:
    """
    Build the transition matrix of every node.

    Parameters
    ----------
    graph : RelationshipGraph
        Constructed relationship graph
    nuc_freq : array-like, shape (4,)
        Equilibrium nucleotide frequencies
    mutype : int
        MUTATIONS_ALL, MUTATIONS_MEAN or an exact number of mutations

    Returns
    -------
    list
        Matrix per node, None for founders
    """
    matrices: TransitionMatrixVector = []
    for transition in graph.transitions:
        if transition.type is TransitionType.FOUNDER:
            matrices.append(None)
            continue
        counts = _transition_counts(transition, graph.ploidies, nuc_freq)
        matrices.append(collapse_counts(counts, mutype))
    return matrices


def subset_indices(graph: RelationshipGraph, alleles: Tuple[int, ...]
                   ) -> List[Tuple[List[int], List[int]]]:
    """Row and column indices that restrict each node's matrix to `alleles`."""
    out = []
    for node, transition in enumerate(graph.transitions):
        cols = subset_genotypes(graph.ploidies[node], alleles)
        if transition.type is TransitionType.FOUNDER:
            out.append(([], cols))
        elif transition.is_trio:
            n_mom = num_genotypes(graph.ploidies[transition.parent2])
            dads = subset_genotypes(graph.ploidies[transition.parent1], alleles)
            moms = subset_genotypes(graph.ploidies[transition.parent2], alleles)
            out.append(([d * n_mom + m for d in dads for m in moms], cols))
        else:
            rows = subset_genotypes(graph.ploidies[transition.parent1], alleles)
            out.append((rows, cols))
    return out


def create_mutation_matrices_subset(full: TransitionMatrixVector,
                                    indices: Sequence[Tuple[List[int], List[int]]]
                                    ) -> TransitionMatrixVector:
    """Restrict full matrices to the genotypes built from a set of alleles."""
    return [None if m is None else m[np.ix_(rows, cols)]
            for m, (rows, cols) in zip(full, indices)]


class MutationMatrices:
    """
    Full matrices of one mutation type plus cached allele subsets.

    Subtracting two sets subtracts their matrices node by node, e.g.
    ``full - zero`` gives the one-or-more mutation matrices.
    """

    def __init__(self, graph: RelationshipGraph, full: TransitionMatrixVector):
        self.graph = graph
        self.full = full
        self._subsets: Dict[Tuple[int, ...], TransitionMatrixVector] = {}

    @classmethod
    def create(cls, graph: RelationshipGraph, nuc_freq,
               mutype: int = MUTATIONS_ALL) -> "MutationMatrices":
        return cls(graph, create_mutation_matrices(graph, nuc_freq, mutype))

    def subset(self, alleles: Tuple[int, ...]) -> TransitionMatrixVector:
        alleles = tuple(alleles)
        if alleles not in self._subsets:
            indices = subset_indices(self.graph, alleles)
            self._subsets[alleles] = create_mutation_matrices_subset(self.full, indices)
        return self._subsets[alleles]

    def __sub__(self, other: "MutationMatrices") -> "MutationMatrices":
        diff = [None if a is None else a - b for a, b in zip(self.full, other.full)]
        return MutationMatrices(self.graph, diff)


def _label_table(parent_ploidies: Tuple[int, ...], child_ploidy: int) -> List[List[str]]:
    rows = [""]
    for ploidy in parent_ploidies:
        labels = [genotype_label(ploidy, g) for g in range(num_genotypes(ploidy))]
        rows = [f"{r}x{g}" if r else g for r in rows for g in labels]
    cols = [genotype_label(child_ploidy, g) for g in range(num_genotypes(child_ploidy))]
    return [[f"{r}>{c}" for c in cols] for r in rows]


MITOTIC_DIPLOID_MUTATION_LABELS = _label_table((2,), 2)
MEIOTIC_DIPLOID_MUTATION_LABELS = _label_table((2, 2), 2)


def mutation_label(parent_ploidies: Tuple[int, ...], child_ploidy: int,
                   row: int, col: int) -> str:
    """
    Label of a genotype transition, e.g. 'AAxAC>AC' or 'A>C'.

    Rows index the parents' genotypes (``dad * n_mom + mom`` for two
    parents) and columns the child's genotype.
    """
    if child_ploidy == 2 and parent_ploidies == (2, 2):
        return MEIOTIC_DIPLOID_MUTATION_LABELS[row][col]
    if child_ploidy == 2 and parent_ploidies == (2,):
        return MITOTIC_DIPLOID_MUTATION_LABELS[row][col]
    labels = []
    for ploidy in reversed(parent_ploidies):
        n = num_genotypes(ploidy)
        labels.append(genotype_label(ploidy, row % n))
        row //= n
    return "x".join(reversed(labels)) + ">" + genotype_label(child_ploidy, col)
