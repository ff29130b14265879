"""
Per-site read depths.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

NUCLEOTIDE_INDEX = {"A": 0, "C": 1, "G": 2, "T": 3, "N": 4}


def nucleotide_index(base: str) -> int:
    """Index of a reference base; anything unknown maps to N (4)."""
    return NUCLEOTIDE_INDEX.get(base.upper(), 4)


def raw_depths(depths) -> np.ndarray:
    """
    Validate raw depths.

    Parameters
    ----------
    depths : array-like, shape (n_libraries, 4)
        A, C, G, T read counts per library

    Returns
    -------
    np.ndarray
        Integer array of shape (n_libraries, 4)
    """
    arr = np.asarray(depths, dtype=np.int64)
    if arr.ndim != 2 or arr.shape[1] != 4:
        raise ValueError(f"Raw depths must have shape (n_libraries, 4), got {arr.shape}")
    if np.any(arr < 0):
        raise ValueError("Read depths must be non-negative")
    return arr


@dataclass
class AlleleDepths:
    """
    Depths of a site restricted to its observed alleles.

    Attributes
    ----------
    alleles : tuple[int, ...]
        Nucleotide indices of the observed alleles, reference first
    depths : np.ndarray, shape (n_libraries, len(alleles))
        Read counts per library and allele
    ref_index : Optional[int]
        Reference nucleotide index (0-3, or 4 for N). Defaults to the
        first allele.
    """

    alleles: tuple
    depths: np.ndarray
    ref_index: Optional[int] = None

    def __post_init__(self):
        self.alleles = tuple(int(a) for a in self.alleles)
        if not self.alleles or len(set(self.alleles)) != len(self.alleles):
            raise ValueError(f"Alleles must be distinct and non-empty: {self.alleles}")
        if any(a < 0 or a > 3 for a in self.alleles):
            raise ValueError(f"Allele indices must be in 0..3: {self.alleles}")
        self.depths = np.asarray(self.depths, dtype=np.int64)
        if self.depths.ndim != 2 or self.depths.shape[1] != len(self.alleles):
            raise ValueError(
                f"Allele depths must have shape (n_libraries, {len(self.alleles)}), "
                f"got {self.depths.shape}"
            )
        if self.ref_index is None:
            self.ref_index = self.alleles[0]

    @property
    def num_libraries(self) -> int:
        return self.depths.shape[0]

    def to_raw(self) -> np.ndarray:
        """Expand to (n_libraries, 4) raw depths with zeros for absent alleles."""
        raw = np.zeros((self.num_libraries, 4), dtype=np.int64)
        raw[:, list(self.alleles)] = self.depths
        return raw
