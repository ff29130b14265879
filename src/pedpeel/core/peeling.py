"""
Peeling operations over pedigree families.

Each family is one factor of the pedigree likelihood: one or two parents and
the children that share exactly those parents. Forward operations sum a
family out into its pivot; reverse operations send the pivot's complete
information back to the other members.

Per node the workspace holds
- ``lower``: likelihood of the evidence below the node, per genotype
- ``upper``: probability of the node's genotype and the evidence above it
- ``super_``: for a non-founder, the evidence over its parents' genotypes
  excluding the node's own subtree (indexed like the rows of its
  transition matrix)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .matrix import num_genotypes

# Key of the root normalization term in a node's lower terms
ROOT_TERM = -1


class PeelOp(str, Enum):
    """Which member of a family receives the forward message."""
    UP = "up"                  # pair family, pivot is the parent
    DOWN = "down"              # pair family, pivot is a child
    TO_FATHER = "to_father"    # trio family, pivot is the father
    TO_MOTHER = "to_mother"    # trio family, pivot is the mother
    TO_CHILD = "to_child"      # trio family, pivot is a child


class WorkspaceState(Enum):
    CLEAN = "clean"
    DIRTY_LOWER = "dirty_lower"


@dataclass(frozen=True)
class FamilyMembers:
    """
    Arguments of one peeling operation.

    Attributes
    ----------
    index : int
        Position of the family in the peeling program
    parents : tuple[int, ...]
        (parent,) or (dad, mom)
    children : tuple[int, ...]
        Children sharing exactly these parents
    pivot : int
        Member that receives the forward message
    fast : bool
        True when this is the first forward write to the pivot's lower
        array, which is then assigned instead of multiplied
    """

    index: int
    parents: Tuple[int, ...]
    children: Tuple[int, ...]
    pivot: int
    fast: bool = False

    @property
    def members(self) -> Tuple[int, ...]:
        return self.parents + self.children


class Workspace:
    """
    Mutable per-query state of the peeling algorithm.

    A workspace is sized for one relationship graph and reused for every
    site evaluated against it. Nodes are laid out in four contiguous bands:
    founder germline, non-founder germline, somatic, library.

    Parameters
    ----------
    ploidies : Sequence[int]
        Ploidy of every node
    founder_nodes, germline_nodes, somatic_nodes, library_nodes : tuple[int, int]
        Half-open index ranges of the node bands
    reset_nodes : Sequence[int]
        Non-library nodes whose lower array is never assigned by a fast
        forward operation and must be reset after a backward pass
    """

    def __init__(
        self,
        ploidies: Sequence[int],
        founder_nodes: Tuple[int, int],
        germline_nodes: Tuple[int, int],
        somatic_nodes: Tuple[int, int],
        library_nodes: Tuple[int, int],
        reset_nodes: Sequence[int] = (),
    ):
        self.num_nodes = len(ploidies)
        self.ploidies = list(ploidies)
        self.founder_nodes = founder_nodes
        self.germline_nodes = germline_nodes
        self.somatic_nodes = somatic_nodes
        self.library_nodes = library_nodes
        self.reset_nodes = list(reset_nodes)

        self.lower: List[np.ndarray] = [np.ones(num_genotypes(p)) for p in self.ploidies]
        self.upper: List[np.ndarray] = [np.ones(num_genotypes(p)) for p in self.ploidies]
        self.super_: List[Optional[np.ndarray]] = [None] * self.num_nodes
        self.lower_terms: List[Dict[int, np.ndarray]] = [{} for _ in range(self.num_nodes)]
        self.forward_result = 0.0
        self.state = WorkspaceState.CLEAN
        self._founder_priors: List[np.ndarray] = []

    @property
    def dirty_lower(self) -> bool:
        return self.state is WorkspaceState.DIRTY_LOWER

    def mark_dirty(self) -> None:
        self.state = WorkspaceState.DIRTY_LOWER

    def reset(self, subsets: Optional[Sequence[Sequence[int]]] = None) -> None:
        """
        Return every non-library node to a flat state.

        With `subsets`, arrays are sized for the genotypes kept at each node.
        """
        for i in range(self.library_nodes[0]):
            n = num_genotypes(self.ploidies[i]) if subsets is None else len(subsets[i])
            self.lower[i] = np.ones(n)
            self.upper[i] = np.ones(n)
            self.lower_terms[i] = {}
            self.super_[i] = None
        self.state = WorkspaceState.CLEAN

    def set_genotype_likelihoods(self, genotyper, depths, ref_index: int,
                                 subsets: Optional[Sequence[Sequence[int]]] = None) -> float:
        """
        Seed library nodes with genotype likelihoods.

        Parameters
        ----------
        genotyper : Genotyper
            Callable returning per-genotype log-likelihoods for one library
        depths : np.ndarray, shape (n_libraries, 4)
            Raw read depths, rows in library node order
        ref_index : int
            Reference nucleotide index (4 for N)
        subsets : sequence of index lists, optional
            Genotype indices to keep for each node (subset evaluation)

        Returns
        -------
        float
            Sum of the log-scale factors removed from the likelihoods
        """
        first, last = self.library_nodes
        if len(depths) != last - first:
            raise ValueError(
                f"Expected depths for {last - first} libraries, got {len(depths)}"
            )
        self.reset(subsets)
        scale = 0.0
        for u, pos in enumerate(range(first, last)):
            loglike = genotyper(depths[u], ref_index, self.ploidies[pos])
            if subsets is not None:
                loglike = loglike[subsets[pos]]
            top = np.max(loglike)
            self.lower[pos] = np.exp(loglike - top)
            scale += top
        return scale

    def set_founders(self, diploid_prior: np.ndarray, haploid_prior: np.ndarray) -> None:
        """Set the upper arrays of founders to the population priors."""
        first, last = self.founder_nodes
        self._founder_priors = []
        for i in range(first, last):
            prior = diploid_prior if self.ploidies[i] == 2 else haploid_prior
            self._founder_priors.append(np.array(prior, dtype=float))
            self.upper[i] = self._founder_priors[-1].copy()

    def cleanup_fast(self) -> None:
        """
        Undo what a backward pass left in the arrays a forward pass reads.

        Only valid after a backward pass. Resets the lower arrays that no
        fast operation reassigns and restores the founder priors.
        """
        if self.state is not WorkspaceState.DIRTY_LOWER:
            raise RuntimeError("cleanup_fast() requires a workspace with dirty lower arrays")
        for i in self.reset_nodes:
            self.lower[i] = np.ones_like(self.lower[i])
            self.lower_terms[i] = {}
        first, _ = self.founder_nodes
        for offset, prior in enumerate(self._founder_priors):
            self.upper[first + offset] = prior.copy()
        self.state = WorkspaceState.CLEAN

    def multiply_lower(self, node: int, key: int, message, assign: bool = False) -> None:
        """Combine a message into a node's lower array, remembering it by key."""
        if assign:
            self.lower[node] = np.array(message, dtype=float)
            self.lower_terms[node] = {key: message}
        else:
            self.lower[node] = self.lower[node] * message
            self.lower_terms[node][key] = message

    def lower_excluding(self, node: int, key: int) -> np.ndarray:
        """Product of every message in a node's lower array except one."""
        out = np.ones_like(self.lower[node])
        for k, message in self.lower_terms[node].items():
            if k != key:
                out = out * message
        return out


PeelFunction = Callable[[Workspace, FamilyMembers, Sequence[np.ndarray]], None]


def _parent_shape(work: Workspace, family: FamilyMembers) -> Tuple[int, ...]:
    return tuple(len(work.lower[p]) for p in family.parents)


def _children_product(work, family, mat, skip: Optional[int] = None) -> np.ndarray:
    """Product of the children's messages over the parents' genotypes."""
    shape = _parent_shape(work, family)
    buf = np.ones(shape)
    for c in family.children:
        if c == skip:
            continue
        buf *= (mat[c] @ work.lower[c]).reshape(shape)
    return buf


def _parents_product(evidence: Sequence[np.ndarray]) -> np.ndarray:
    if len(evidence) == 1:
        return evidence[0]
    return np.outer(evidence[0], evidence[1])


def up(work: Workspace, family: FamilyMembers, mat) -> None:
    """Pair family: pull the children's evidence into the parent."""
    parent = family.pivot
    work.multiply_lower(parent, family.index, _children_product(work, family, mat),
                        assign=family.fast)


def to_father(work: Workspace, family: FamilyMembers, mat) -> None:
    """Trio family: sum out the mother and children into the father."""
    dad, mom = family.parents
    buf = _children_product(work, family, mat)
    message = buf @ (work.upper[mom] * work.lower[mom])
    work.multiply_lower(dad, family.index, message, assign=family.fast)


def to_mother(work: Workspace, family: FamilyMembers, mat) -> None:
    """Trio family: sum out the father and children into the mother."""
    dad, mom = family.parents
    buf = _children_product(work, family, mat)
    message = (work.upper[dad] * work.lower[dad]) @ buf
    work.multiply_lower(mom, family.index, message, assign=family.fast)


def _push_down(work: Workspace, family: FamilyMembers, mat) -> None:
    child = family.pivot
    evidence = [work.upper[p] * work.lower[p] for p in family.parents]
    buf = _parents_product(evidence) * _children_product(work, family, mat, skip=child)
    work.super_[child] = buf.ravel()
    work.upper[child] = work.super_[child] @ mat[child]


def down(work: Workspace, family: FamilyMembers, mat) -> None:
    """Pair family: push the parent's evidence into one child."""
    _push_down(work, family, mat)


def to_child(work: Workspace, family: FamilyMembers, mat) -> None:
    """Trio family: push both parents' evidence into one child."""
    _push_down(work, family, mat)


def reverse(work: Workspace, family: FamilyMembers, mat) -> None:
    """
    Send the family's information to every member except the pivot.

    The pivot's arrays are complete when this runs. Children get their
    ``super_`` and (non-pivot children) ``upper`` arrays; non-pivot parents
    receive a message in their lower array.
    """
    shape = _parent_shape(work, family)
    evidence = []
    for p in family.parents:
        if p == family.pivot:
            evidence.append(work.upper[p] * work.lower_excluding(p, family.index))
        else:
            evidence.append(work.upper[p] * work.lower[p])
    parents = _parents_product(evidence)

    messages = {c: (mat[c] @ work.lower[c]).reshape(shape) for c in family.children}

    for c in family.children:
        buf = parents.copy()
        for other, message in messages.items():
            if other != c:
                buf *= message
        work.super_[c] = buf.ravel()
        if c != family.pivot:
            work.upper[c] = work.super_[c] @ mat[c]

    children = np.ones(shape)
    for message in messages.values():
        children *= message

    delivered = []
    for axis, p in enumerate(family.parents):
        if p == family.pivot:
            continue
        if len(family.parents) == 1:
            delivered.append((p, children))
        elif axis == 0:
            delivered.append((p, children @ evidence[1]))
        else:
            delivered.append((p, evidence[0] @ children))
    for p, message in delivered:
        work.multiply_lower(p, family.index, message)


FORWARD_FUNCTIONS: Dict[PeelOp, PeelFunction] = {
    PeelOp.UP: up,
    PeelOp.DOWN: down,
    PeelOp.TO_FATHER: to_father,
    PeelOp.TO_MOTHER: to_mother,
    PeelOp.TO_CHILD: to_child,
}

REVERSE_FUNCTIONS: Dict[PeelOp, PeelFunction] = {op: reverse for op in PeelOp}
