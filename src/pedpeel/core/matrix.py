"""
Matrix operations for genotype transition probabilities.

This module provides the genotype tables and the count-resolved transition
matrices used to build per-node mutation matrices for a pedigree.
"""

import numpy as np

NUCLEOTIDES = "ACGT"

# Unordered diploid genotypes: AA AC AG AT CC CG CT GG GT TT
DIPLOID_GENOTYPES = [(a, b) for a in range(4) for b in range(a, 4)]
HAPLOID_GENOTYPES = [(a,) for a in range(4)]

# FOLD[a, b] is the index of the unordered genotype {a, b}
FOLD = np.zeros((4, 4), dtype=int)
for _index, (_a, _b) in enumerate(DIPLOID_GENOTYPES):
    FOLD[_a, _b] = _index
    FOLD[_b, _a] = _index

# Maps an ordered pair index (4*a + b) onto its unordered genotype column
FOLD_MATRIX = np.zeros((16, 10))
for _a in range(4):
    for _b in range(4):
        FOLD_MATRIX[4 * _a + _b, FOLD[_a, _b]] = 1.0

MUTATIONS_ALL = -1
MUTATIONS_MEAN = -2


def num_genotypes(ploidy: int) -> int:
    """Number of genotype states for a ploidy (10 diploid, 4 haploid)."""
    if ploidy == 2:
        return 10
    if ploidy == 1:
        return 4
    raise ValueError(f"Unsupported ploidy: {ploidy}")


def genotypes(ploidy: int) -> list[tuple[int, ...]]:
    """Allele tuples of every genotype for a ploidy, in index order."""
    return DIPLOID_GENOTYPES if ploidy == 2 else HAPLOID_GENOTYPES


def genotype_label(ploidy: int, index: int) -> str:
    """Text label of a genotype, e.g. 'AC' or 'T'."""
    return "".join(NUCLEOTIDES[a] for a in genotypes(ploidy)[index])


def subset_genotypes(ploidy: int, alleles: tuple[int, ...]) -> list[int]:
    """
    Indices of the genotypes made only of `alleles`.

    Genotypes are listed in the order the alleles are given, so the first
    allele (the reference) contributes the first genotype.
    """
    if ploidy == 1:
        return list(alleles)
    return [FOLD[a, b] for i, a in enumerate(alleles) for b in alleles[i:]]


def f81_matrix(mu: float, nuc_freq) -> np.ndarray:
    """
    Closed-form F81 nucleotide transition matrix.

    Parameters
    ----------
    mu : float
        Expected number of nucleotide changes along the edge
    nuc_freq : array-like, shape (4,)
        Equilibrium nucleotide frequencies

    Returns
    -------
    np.ndarray, shape (4, 4)
        P[i, j] = (1 - p) * delta_ij + p * pi_j with
        p = 1 - exp(-mu / (1 - sum(pi^2)))

    Notes
    -----
    Equals the matrix exponential of the normalized F81 rate matrix, but
    is computed with ``expm1`` so that tiny rates keep full precision.
    """
    pi = np.asarray(nuc_freq, dtype=float)
    beta = 1.0 - np.sum(pi * pi)
    p = -np.expm1(-mu / beta)
    P = np.tile(pi * p, (4, 1))
    P[np.diag_indices(4)] += 1.0 - p
    return P


def mitosis_haploid_counts(m: np.ndarray) -> np.ndarray:
    """
    Split a 4x4 nucleotide matrix by number of mutations.

    Returns an array of shape (2, 4, 4): staying put, changing state.
    """
    counts = np.zeros((2, 4, 4))
    counts[0] = np.diag(np.diag(m))
    counts[1] = m - counts[0]
    return counts


def gamete_counts(m: np.ndarray, ploidy: int) -> np.ndarray:
    """
    Probability of transmitting each haploid allele from a parent.

    For a diploid parent each allele is transmitted with probability 1/2
    and then passes through `m`.

    Returns an array of shape (2, n_parent_genotypes, 4).
    """
    haploid = mitosis_haploid_counts(m)
    if ploidy == 1:
        return haploid

    counts = np.zeros((2, 10, 4))
    for g, (a, b) in enumerate(DIPLOID_GENOTYPES):
        counts[:, g, :] = 0.5 * (haploid[:, a, :] + haploid[:, b, :])
    return counts


def _combine_alleles(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    """
    Combine two independent allele transmissions into a diploid child.

    `first` and `second` have shape (n_counts, rows_1, 4) and
    (n_counts, rows_2, 4). The result has shape
    (n_counts_1 + n_counts_2 - 1, rows_1 * rows_2, 10); mutation counts add.
    """
    n1, r1, _ = first.shape
    n2, r2, _ = second.shape
    out = np.zeros((n1 + n2 - 1, r1 * r2, 10))
    for i in range(n1):
        for j in range(n2):
            # ordered[x, y, a, b] = first[x, a] * second[y, b]
            ordered = np.einsum("xa,yb->xyab", first[i], second[j])
            out[i + j] += ordered.reshape(r1 * r2, 16) @ FOLD_MATRIX
    return out


def mitosis_diploid_counts(m: np.ndarray) -> np.ndarray:
    """
    Mitotic transition of a diploid genotype, split by number of mutations.

    Both alleles of the parent pass independently through `m`.
    Returns an array of shape (3, 10, 10).
    """
    haploid = mitosis_haploid_counts(m)
    counts = np.zeros((3, 10, 10))
    for g, (a, b) in enumerate(DIPLOID_GENOTYPES):
        first = haploid[:, a:a + 1, :]
        second = haploid[:, b:b + 1, :]
        counts[:, g, :] = _combine_alleles(first, second)[:, 0, :]
    return counts


def meiosis_counts(dad: np.ndarray, mom: np.ndarray) -> np.ndarray:
    """
    Meiotic transition from a pair of parents, split by number of mutations.

    Parameters
    ----------
    dad, mom : np.ndarray
        Gamete count arrays from :func:`gamete_counts`

    Returns
    -------
    np.ndarray, shape (3, n_dad * n_mom, 10)
        Rows are indexed ``dad_genotype * n_mom + mom_genotype``.
    """
    return _combine_alleles(dad, mom)


def collapse_counts(counts: np.ndarray, mutype: int = MUTATIONS_ALL) -> np.ndarray:
    """
    Reduce a count-resolved matrix to a single transition matrix.

    Parameters
    ----------
    counts : np.ndarray, shape (n_counts, rows, cols)
        counts[n] holds the probabilities of transitions with n mutations
    mutype : int
        MUTATIONS_ALL for the full matrix, MUTATIONS_MEAN for the expected
        number of mutations, or an exact number of mutations

    Returns
    -------
    np.ndarray, shape (rows, cols)
    """
    if mutype == MUTATIONS_ALL:
        return counts.sum(axis=0)
    if mutype == MUTATIONS_MEAN:
        weights = np.arange(counts.shape[0], dtype=float)
        return np.tensordot(weights, counts, axes=1)
    if mutype < 0:
        raise ValueError(f"Invalid mutation type: {mutype}")
    if mutype >= counts.shape[0]:
        return np.zeros(counts.shape[1:])
    return counts[mutype].copy()
