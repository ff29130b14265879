"""
Relationship graph of a sequenced pedigree.

A pedigree description and its sequencing libraries are turned into a graph
of germline, somatic and library nodes, and compiled into a peeling program:
an ordered list of family operations that evaluates the likelihood of the
whole pedigree (forward) and hands every node its posterior inputs
(backward).

Construction is a pipeline of pure functions over :class:`PedigreeGraph`
values; :meth:`RelationshipGraph.construct` runs them in order.
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, TextIO, Tuple

import numpy as np

from ..io.pedigree import Pedigree, ReadGroups, Sex
from .matrix import genotype_label, num_genotypes
from .peeling import (
    FORWARD_FUNCTIONS,
    REVERSE_FUNCTIONS,
    ROOT_TERM,
    FamilyMembers,
    PeelOp,
    Workspace,
)

logger = logging.getLogger(__name__)


class PedigreeError(ValueError):
    """A pedigree cannot be turned into a valid relationship graph."""


class InheritanceModel(Enum):
    """How the modelled locus is transmitted from parents to children."""
    UNKNOWN = -1
    AUTOSOMAL = 0     # default option
    MITOCHONDRIA = 1  # transmitted by mother to child
    MATERNAL = 1      # alias of MITOCHONDRIA
    PATERNAL = 2      # transmitted by father to child
    X_LINKED = 3      # females have 2 copies, males have 1; males transmit to daughters, not to sons
    Y_LINKED = 4      # males have 1 copy, only transmits it to sons
    W_LINKED = 5      # females have 1 copy, only transmitted to daughters
    Z_LINKED = 6      # males have 2 copies, females have 1; females transmit to sons, not to daughters


_MODEL_NAMES = {
    "autosomal": InheritanceModel.AUTOSOMAL,
    "mitochondria": InheritanceModel.MITOCHONDRIA,
    "mitochondrial": InheritanceModel.MITOCHONDRIA,
    "maternal": InheritanceModel.MATERNAL,
    "paternal": InheritanceModel.PATERNAL,
    "xlinked": InheritanceModel.X_LINKED,
    "ylinked": InheritanceModel.Y_LINKED,
    "wlinked": InheritanceModel.W_LINKED,
    "zlinked": InheritanceModel.Z_LINKED,
}


def inheritance_model(pattern: str) -> InheritanceModel:
    """
    Parse an inheritance model name.

    Case, dashes and underscores are ignored ("X-linked", "x_linked",
    "XLINKED" are the same). Unrecognized names give UNKNOWN.
    """
    key = pattern.lower().replace("-", "").replace("_", "").strip()
    return _MODEL_NAMES.get(key, InheritanceModel.UNKNOWN)


class VertexType(str, Enum):
    GERMLINE = "germline"
    SOMATIC = "somatic"
    LIBRARY = "library"


EdgeType = VertexType


class TransitionType(str, Enum):
    FOUNDER = "founder"
    GERMLINE = "germline"
    SOMATIC = "somatic"
    LIBRARY = "library"


DAD, MOM = 0, 1


@dataclass(frozen=True)
class Vertex:
    label: str
    kind: VertexType
    individual: str
    sex: Sex = Sex.UNKNOWN
    ploidy: int = 2
    sample: Optional[str] = None


@dataclass(frozen=True)
class Edge:
    """Transmission from `parent` to `child`; `slot` is DAD or MOM for germline edges."""
    parent: int
    child: int
    kind: EdgeType
    length: float
    slot: int = DAD


@dataclass(frozen=True)
class PedigreeGraph:
    """Immutable snapshot of the pedigree graph between construction steps."""

    vertices: Mapping[int, Vertex]
    edges: Tuple[Edge, ...]

    def in_edges(self, v: int) -> List[Edge]:
        return [e for e in self.edges if e.child == v]

    def out_edges(self, v: int) -> List[Edge]:
        return [e for e in self.edges if e.parent == v]

    def without(self, removed) -> "PedigreeGraph":
        """Copy with the given vertices and all their edges removed."""
        removed = set(removed)
        return PedigreeGraph(
            vertices={k: v for k, v in self.vertices.items() if k not in removed},
            edges=tuple(e for e in self.edges if e.parent not in removed and e.child not in removed),
        )

    def of_kind(self, kind: VertexType) -> List[int]:
        return [k for k, v in self.vertices.items() if v.kind is kind]


@dataclass(frozen=True)
class Transition:
    """
    How a node inherits its genotype.

    `parent1` is the father (or the only parent) and `parent2` the mother of
    a trio; founders have no parents. Lengths are expected numbers of
    mutations along each edge.
    """

    type: TransitionType
    parent1: Optional[int] = None
    parent2: Optional[int] = None
    length1: float = 0.0
    length2: float = 0.0
    sex: Sex = Sex.UNKNOWN
    ploidy: int = 2

    @property
    def is_trio(self) -> bool:
        return self.parent2 is not None

    @property
    def parents(self) -> Tuple[int, ...]:
        return tuple(p for p in (self.parent1, self.parent2) if p is not None)


# Construction pipeline

def parse_pedigree(pedigree: Pedigree) -> PedigreeGraph:
    """
    Build the germline and somatic part of the graph.

    Every member gets a germline vertex ``GL/<name>`` with edges of length
    1 from each listed parent, and one somatic vertex per node of its sample
    tree (``SM/<sample>``), the root attached to the germline vertex.
    """
    try:
        pedigree.validate()
    except ValueError as e:
        raise PedigreeError(str(e)) from e

    vertices: Dict[int, Vertex] = {}
    germline: Dict[str, int] = {}
    for m in pedigree:
        germline[m.name] = len(vertices)
        vertices[len(vertices)] = Vertex(f"GL/{m.name}", VertexType.GERMLINE, m.name, m.sex)

    edges = []
    samples = set()
    for m in pedigree:
        for slot, parent in ((DAD, m.dad), (MOM, m.mom)):
            if parent is None:
                continue
            expected = Sex.MALE if slot == DAD else Sex.FEMALE
            sex = pedigree.member(parent).sex
            if sex not in (expected, Sex.UNKNOWN):
                raise PedigreeError(
                    f"'{parent}' is listed as {'father' if slot == DAD else 'mother'} "
                    f"of '{m.name}' but is {sex.value}"
                )
            edges.append(Edge(germline[parent], germline[m.name], EdgeType.GERMLINE, 1.0, slot))

        try:
            tree = m.sample_tree()
        except ValueError as e:
            raise PedigreeError(f"Invalid sample tree for '{m.name}': {e}") from e
        ids = {}
        for node in tree.preorder():
            vid = len(vertices)
            ids[node.id] = vid
            if node.name is not None:
                if node.name in samples:
                    raise PedigreeError(f"Duplicate sample name: {node.name}")
                samples.add(node.name)
                label = f"SM/{node.name}"
            else:
                label = f"SM/{m.name}/{node.id}"
            vertices[vid] = Vertex(label, VertexType.SOMATIC, m.name, m.sex, sample=node.name)
            parent_vid = germline[m.name] if node.parent is None else ids[node.parent.id]
            edges.append(Edge(parent_vid, vid, EdgeType.SOMATIC, node.branch_length))

    return PedigreeGraph(vertices, tuple(edges))


def ploidy_for(model: InheritanceModel, sex: Sex) -> int:
    """Number of copies of the locus an individual carries under a model."""
    if model is InheritanceModel.AUTOSOMAL:
        return 2
    if model in (InheritanceModel.MATERNAL, InheritanceModel.PATERNAL):
        return 1
    if model is InheritanceModel.X_LINKED:
        return 2 if sex is Sex.FEMALE else 1
    if model is InheritanceModel.Z_LINKED:
        return 2 if sex is Sex.MALE else 1
    return 1


def prune_for_model(graph: PedigreeGraph, model: InheritanceModel) -> PedigreeGraph:
    """
    Remove what the inheritance model does not transmit through.

    Assigns every vertex its ploidy. Sex-linked models need the sex of every
    individual.
    """
    if model is InheritanceModel.UNKNOWN:
        raise PedigreeError("Unknown inheritance model")

    sex_linked = model in (InheritanceModel.X_LINKED, InheritanceModel.Y_LINKED,
                           InheritanceModel.W_LINKED, InheritanceModel.Z_LINKED)
    if sex_linked:
        unknown = sorted({v.individual for v in graph.vertices.values() if v.sex is Sex.UNKNOWN})
        if unknown:
            raise PedigreeError(
                f"{model.name} inheritance requires the sex of every member; unknown for: "
                + ", ".join(unknown)
            )

    removed = []
    if model is InheritanceModel.Y_LINKED:
        removed = [k for k, v in graph.vertices.items() if v.sex is Sex.FEMALE]
    elif model is InheritanceModel.W_LINKED:
        removed = [k for k, v in graph.vertices.items() if v.sex is Sex.MALE]
    graph = graph.without(removed)

    def transmits(e: Edge) -> bool:
        if e.kind is not EdgeType.GERMLINE:
            return True
        child_sex = graph.vertices[e.child].sex
        if model in (InheritanceModel.MATERNAL, InheritanceModel.W_LINKED):
            return e.slot == MOM
        if model in (InheritanceModel.PATERNAL, InheritanceModel.Y_LINKED):
            return e.slot == DAD
        if model is InheritanceModel.X_LINKED:
            return not (e.slot == DAD and child_sex is Sex.MALE)
        if model is InheritanceModel.Z_LINKED:
            return not (e.slot == MOM and child_sex is Sex.FEMALE)
        return True

    vertices = {k: replace(v, ploidy=ploidy_for(model, v.sex)) for k, v in graph.vertices.items()}
    return PedigreeGraph(vertices, tuple(e for e in graph.edges if transmits(e)))


def add_phantom_parents(graph: PedigreeGraph, model: InheritanceModel) -> PedigreeGraph:
    """
    Give a diploid child with a single parent an unsequenced second parent.

    A diploid genotype is made of one gamete from each parent, so the
    missing parent becomes a founder with no data.
    """
    vertices = dict(graph.vertices)
    edges = list(graph.edges)
    for k in graph.of_kind(VertexType.GERMLINE):
        v = graph.vertices[k]
        parents = [e for e in graph.in_edges(k) if e.kind is EdgeType.GERMLINE]
        if v.ploidy != 2 or len(parents) != 1:
            continue
        slot = MOM if parents[0].slot == DAD else DAD
        sex = Sex.MALE if slot == DAD else Sex.FEMALE
        vid = max(vertices) + 1
        role = "dad" if slot == DAD else "mom"
        vertices[vid] = Vertex(f"GL/{v.individual}/{role}", VertexType.GERMLINE,
                               f"{v.individual}/{role}", sex, ploidy_for(model, sex))
        edges.append(Edge(vid, k, EdgeType.GERMLINE, 1.0, slot))
        logger.debug("Added unsequenced %s for %s", role, v.label)
    return PedigreeGraph(vertices, tuple(edges))


def add_libraries(graph: PedigreeGraph, read_groups: ReadGroups) -> Tuple[PedigreeGraph, List[str]]:
    """
    Attach a library vertex ``LB/<name>`` below the sample of each library.

    Returns
    -------
    graph : PedigreeGraph
        Graph with library vertices
    missing : list[str]
        Libraries whose sample is not in the graph
    """
    samples = {v.sample: k for k, v in graph.vertices.items()
               if v.kind is VertexType.SOMATIC and v.sample is not None}
    vertices = dict(graph.vertices)
    edges = list(graph.edges)
    missing = []
    for lib in read_groups:
        parent = samples.get(lib.sample)
        if parent is None:
            missing.append(lib.name)
            continue
        owner = graph.vertices[parent]
        vid = max(vertices) + 1
        vertices[vid] = Vertex(f"LB/{lib.name}", VertexType.LIBRARY, owner.individual,
                               owner.sex, owner.ploidy, sample=lib.sample)
        edges.append(Edge(parent, vid, EdgeType.LIBRARY, 1.0))
    return PedigreeGraph(vertices, tuple(edges)), missing


def update_edge_lengths(graph: PedigreeGraph, mu: float, mu_somatic: float,
                        mu_library: float) -> PedigreeGraph:
    """Scale edge lengths into expected numbers of mutations."""
    rates = {EdgeType.GERMLINE: mu, EdgeType.SOMATIC: mu_somatic, EdgeType.LIBRARY: mu_library}
    return PedigreeGraph(
        graph.vertices,
        tuple(replace(e, length=e.length * rates[e.kind]) for e in graph.edges),
    )


def simplify_pedigree(graph: PedigreeGraph) -> PedigreeGraph:
    """
    Remove vertices that do not change the likelihood.

    Repeats until nothing changes:
    - vertices without data below them are dropped
    - a somatic vertex reached by a zero-length somatic edge is merged
      into its parent
    - a somatic vertex with a single child edge is bypassed; edge lengths add
    """
    changed = True
    while changed:
        changed = False

        leaves = [k for k, v in graph.vertices.items()
                  if v.kind is not VertexType.LIBRARY and not graph.out_edges(k)]
        if leaves:
            graph = graph.without(leaves)
            changed = True
            continue

        for k in graph.of_kind(VertexType.SOMATIC):
            (up_edge,) = graph.in_edges(k)
            below = graph.out_edges(k)
            if up_edge.kind is EdgeType.SOMATIC and up_edge.length == 0.0:
                moved = [replace(e, parent=up_edge.parent) for e in below]
            elif len(below) == 1:
                moved = [replace(below[0], parent=up_edge.parent,
                                 length=up_edge.length + below[0].length)]
            else:
                continue
            rest = graph.without([k])
            graph = PedigreeGraph(rest.vertices, rest.edges + tuple(moved))
            changed = True
            break

    return graph


def _topological(graph: PedigreeGraph, nodes: Sequence[int]) -> List[int]:
    """Order `nodes` so that parents come before children (ties by id)."""
    pending = set(nodes)
    indegree = {k: sum(1 for e in graph.in_edges(k) if e.parent in pending) for k in nodes}
    ready = sorted(k for k in nodes if indegree[k] == 0)
    order = []
    while ready:
        k = ready.pop(0)
        order.append(k)
        for e in graph.out_edges(k):
            if e.child in indegree:
                indegree[e.child] -= 1
                if indegree[e.child] == 0:
                    ready.append(e.child)
                    ready.sort()
    if len(order) != len(nodes):
        raise PedigreeError("Pedigree contains a cycle: an individual is their own ancestor")
    return order


@dataclass(frozen=True)
class NodeLayout:
    """Final node numbering with the four contiguous bands."""
    labels: Tuple[str, ...]
    ploidies: Tuple[int, ...]
    transitions: Tuple[Transition, ...]
    first_nonfounder: int
    first_somatic: int
    first_library: int

    @property
    def num_nodes(self) -> int:
        return len(self.labels)


def number_nodes(graph: PedigreeGraph, library_order: Sequence[str]) -> NodeLayout:
    """
    Assign final node indices.

    Bands, in order: founder germline, non-founder germline, somatic,
    library. Germline and somatic nodes are topologically ordered;
    libraries follow `library_order`.
    """
    if not graph.of_kind(VertexType.LIBRARY):
        raise PedigreeError("No sequenced library is attached to the pedigree")

    germline = _topological(graph, graph.of_kind(VertexType.GERMLINE))
    founders = [k for k in germline if not graph.in_edges(k)]
    nonfounders = [k for k in germline if graph.in_edges(k)]
    somatic = _topological(graph, graph.of_kind(VertexType.SOMATIC))
    by_label = {graph.vertices[k].label: k for k in graph.of_kind(VertexType.LIBRARY)}
    libraries = [by_label[f"LB/{name}"] for name in library_order if f"LB/{name}" in by_label]

    order = founders + nonfounders + somatic + libraries
    node_id = {k: i for i, k in enumerate(order)}

    transitions = []
    for k in order:
        v = graph.vertices[k]
        parents = sorted(graph.in_edges(k), key=lambda e: e.slot)
        if not parents:
            transitions.append(Transition(TransitionType.FOUNDER, sex=v.sex, ploidy=v.ploidy))
        elif len(parents) == 1:
            (e,) = parents
            transitions.append(Transition(TransitionType(e.kind.value), node_id[e.parent],
                                          length1=e.length, sex=v.sex, ploidy=v.ploidy))
        else:
            dad, mom = parents
            transitions.append(Transition(TransitionType.GERMLINE, node_id[dad.parent],
                                          node_id[mom.parent], dad.length, mom.length,
                                          sex=v.sex, ploidy=v.ploidy))

    return NodeLayout(
        labels=tuple(graph.vertices[k].label for k in order),
        ploidies=tuple(graph.vertices[k].ploidy for k in order),
        transitions=tuple(transitions),
        first_nonfounder=len(founders),
        first_somatic=len(founders) + len(nonfounders),
        first_library=len(founders) + len(nonfounders) + len(somatic),
    )


def create_families(transitions: Sequence[Transition]) -> List[Tuple[Tuple[int, ...], Tuple[int, ...]]]:
    """
    Group children that share exactly the same parents.

    Returns
    -------
    list of (parents, children)
        Families ordered by their first child
    """
    families: Dict[Tuple[int, ...], List[int]] = {}
    for child, t in enumerate(transitions):
        if t.type is TransitionType.FOUNDER:
            continue
        families.setdefault(t.parents, []).append(child)
    return [(parents, tuple(children)) for parents, children in families.items()]


def create_peeling_ops(families: Sequence[Tuple[Tuple[int, ...], Tuple[int, ...]]]
                       ) -> Tuple[List[PeelOp], List[FamilyMembers], List[int]]:
    """
    Order the families into a peeling program.

    A family can be peeled once at most one of its members still belongs to
    an unprocessed family; that member is its pivot. A family with no such
    member is the last one of its connected component and its first parent
    becomes a root.

    Returns
    -------
    ops : list[PeelOp]
    members : list[FamilyMembers]
    roots : list[int]
    """
    remaining = list(range(len(families)))
    ops: List[PeelOp] = []
    members: List[FamilyMembers] = []
    roots: List[int] = []
    written = set()

    def shared(f: int) -> List[int]:
        parents, children = families[f]
        others = set()
        for g in remaining:
            if g != f:
                others.update(families[g][0] + families[g][1])
        return [m for m in parents + children if m in others]

    while remaining:
        for f in remaining:
            links = shared(f)
            if len(links) <= 1:
                break
        else:
            raise PedigreeError("Pedigree contains a loop; no peeling order exists")

        parents, children = families[f]
        if links:
            pivot = links[0]
        else:
            pivot = parents[0]
            roots.append(pivot)

        if pivot in children:
            op = PeelOp.DOWN if len(parents) == 1 else PeelOp.TO_CHILD
        elif len(parents) == 1:
            op = PeelOp.UP
        else:
            op = PeelOp.TO_FATHER if pivot == parents[0] else PeelOp.TO_MOTHER

        fast = op in (PeelOp.UP, PeelOp.TO_FATHER, PeelOp.TO_MOTHER) and pivot not in written
        if fast:
            written.add(pivot)
        ops.append(op)
        members.append(FamilyMembers(len(members), parents, children, pivot, fast))
        remaining.remove(f)

    return ops, members, roots


class RelationshipGraph:
    """
    Compiled peeling machine of a sequenced pedigree.

    Examples
    --------
    >>> graph = RelationshipGraph()
    >>> ok = graph.construct(pedigree, read_groups, InheritanceModel.AUTOSOMAL,
    ...                      mu=1e-8, mu_somatic=0.0, mu_library=0.0)
    >>> work = graph.create_workspace()
    """

    def __init__(self):
        self._reset()

    def _reset(self) -> None:
        self.num_nodes = 0
        self.first_founder = 0
        self.first_nonfounder = 0
        self.first_somatic = 0
        self.first_library = 0
        self.roots: List[int] = []
        self.labels: List[str] = []
        self.ploidies: List[int] = []
        self.transitions: List[Transition] = []
        self.peeling_ops: List[PeelOp] = []
        self.family_members: List[FamilyMembers] = []
        self.keep_library_index: List[int] = []
        self.reset_nodes: List[int] = []
        self.error: Optional[str] = None
        self.constructed = False
        self._peeling_functions = []
        self._peeling_reverse_functions = []

    def construct(self, pedigree: Pedigree, read_groups: ReadGroups,
                  inheritance_model: InheritanceModel = InheritanceModel.AUTOSOMAL,
                  mu: float = 1e-8, mu_somatic: float = 0.0, mu_library: float = 0.0) -> bool:
        """
        Build the graph and its peeling program.

        Parameters
        ----------
        pedigree : Pedigree
            Individuals, parents, sexes and sample trees
        read_groups : ReadGroups
            Sequencing libraries. On success it is pruned in place to the
            libraries attached to the graph.
        inheritance_model : InheritanceModel
            Transmission model of the locus
        mu, mu_somatic, mu_library : float
            Mutation rates of germline, somatic and library edges

        Returns
        -------
        bool
            False if no valid graph exists; the reason is in ``error``.
        """
        self._reset()
        for name, rate in (("mu", mu), ("mu_somatic", mu_somatic), ("mu_library", mu_library)):
            if not rate >= 0.0:
                self.error = f"{name} must be non-negative, got {rate}"
                logger.warning("Relationship graph construction failed: %s", self.error)
                return False
        try:
            graph = parse_pedigree(pedigree)
            logger.debug("Parsed pedigree: %d vertices", len(graph.vertices))
            graph = prune_for_model(graph, inheritance_model)
            graph = add_phantom_parents(graph, inheritance_model)
            graph, missing = add_libraries(graph, read_groups)
            if missing:
                logger.info("Libraries without a sample in the pedigree: %s", ", ".join(missing))
            graph = update_edge_lengths(graph, mu, mu_somatic, mu_library)
            graph = simplify_pedigree(graph)
            logger.debug("Simplified pedigree: %d vertices", len(graph.vertices))
            layout = number_nodes(graph, read_groups.names)
            families = create_families(layout.transitions)
            ops, members, roots = create_peeling_ops(families)
        except PedigreeError as e:
            self.error = str(e)
            logger.warning("Relationship graph construction failed: %s", e)
            return False

        self.num_nodes = layout.num_nodes
        self.first_nonfounder = layout.first_nonfounder
        self.first_somatic = layout.first_somatic
        self.first_library = layout.first_library
        self.labels = list(layout.labels)
        self.ploidies = list(layout.ploidies)
        self.transitions = list(layout.transitions)
        self.peeling_ops = ops
        self.family_members = members
        self.roots = roots
        self._peeling_functions = [FORWARD_FUNCTIONS[op] for op in ops]
        self._peeling_reverse_functions = [REVERSE_FUNCTIONS[op] for op in ops]

        assigned = {f.pivot for f in members if f.fast}
        self.reset_nodes = [i for i in range(self.first_library) if i not in assigned]

        attached = [label[len("LB/"):] for label in self.labels[self.first_library:]]
        self.keep_library_index = read_groups.retain(attached)
        self.constructed = True
        logger.debug("Peeling program: %d operations, roots %s", len(ops), roots)
        return True

    @property
    def families(self) -> List[Tuple[Tuple[int, ...], Tuple[int, ...]]]:
        return [(f.parents, f.children) for f in self.family_members]

    @property
    def founder_nodes(self) -> Tuple[int, int]:
        return (self.first_founder, self.first_nonfounder)

    @property
    def germline_nodes(self) -> Tuple[int, int]:
        return (self.first_founder, self.first_somatic)

    @property
    def somatic_nodes(self) -> Tuple[int, int]:
        return (self.first_somatic, self.first_library)

    @property
    def library_nodes(self) -> Tuple[int, int]:
        return (self.first_library, self.num_nodes)

    def create_workspace(self) -> Workspace:
        """Allocate a workspace laid out like this graph."""
        if not self.constructed:
            raise RuntimeError("Relationship graph has not been constructed")
        return Workspace(
            self.ploidies,
            founder_nodes=self.founder_nodes,
            germline_nodes=self.germline_nodes,
            somatic_nodes=self.somatic_nodes,
            library_nodes=self.library_nodes,
            reset_nodes=self.reset_nodes,
        )

    def peel_forwards(self, work: Workspace, mat: Sequence[Optional[np.ndarray]]) -> float:
        """
        Run the forward peeling program.

        Returns
        -------
        float
            Natural log-likelihood of the data, summed over roots
        """
        if work.dirty_lower:
            work.cleanup_fast()

        for function, family in zip(self._peeling_functions, self.family_members):
            function(work, family, mat)

        ret = 0.0
        with np.errstate(divide="ignore"):
            for r in self.roots:
                ret += float(np.log(np.sum(work.lower[r] * work.upper[r])))

        work.forward_result = ret
        return ret

    def peel_backwards(self, work: Workspace, mat: Sequence[Optional[np.ndarray]]) -> float:
        """
        Run the reverse peeling program after a forward pass.

        The lower array of each root is divided by the root likelihood, as
        one more message, so that every posterior quantity derived from the
        workspace comes out normalized. A root can be a non-founder whose
        lower array is read without its upper array by the family above it,
        so the whole factor goes into the lower array.

        Returns
        -------
        float
            Natural log-likelihood of the data, summed over roots
        """
        ret = 0.0
        with np.errstate(divide="ignore", invalid="ignore"):
            for r in self.roots:
                total = np.sum(work.lower[r] * work.upper[r])
                ret += float(np.log(total))
                work.multiply_lower(r, ROOT_TERM, 1.0 / total)

        for i in range(len(self._peeling_reverse_functions), 0, -1):
            self._peeling_reverse_functions[i - 1](work, self.family_members[i - 1], mat)

        work.mark_dirty()
        return ret

    def print_machine(self, file: Optional[TextIO] = None) -> None:
        """Write the peeling program, one operation per line."""
        for family, op in zip(self.family_members, self.peeling_ops):
            members = " ".join(self.labels[m] for m in family.members)
            fast = " (fast)" if family.fast else ""
            print(f"{op.value}{fast}\tpivot={self.labels[family.pivot]}\t{members}", file=file)
        print("roots\t" + " ".join(self.labels[r] for r in self.roots), file=file)

    def print_table(self, file: Optional[TextIO] = None) -> None:
        """Write one line per node: index, label, transition, parents, lengths, ploidy."""
        print("node\tlabel\ttype\tparent1\tparent2\tlength1\tlength2\tploidy", file=file)
        for i, (label, t) in enumerate(zip(self.labels, self.transitions)):
            p1 = self.labels[t.parent1] if t.parent1 is not None else "."
            p2 = self.labels[t.parent2] if t.parent2 is not None else "."
            print(f"{i}\t{label}\t{t.type.value}\t{p1}\t{p2}\t{t.length1:g}\t{t.length2:g}\t{t.ploidy}",
                  file=file)

    def print_states(self, work: Workspace, file: Optional[TextIO] = None, scale: float = 0.0) -> None:
        """Write the log10 lower and upper arrays of every node."""
        with np.errstate(divide="ignore"):
            for i, label in enumerate(self.labels):
                lower = np.log10(work.lower[i]) + scale / math.log(10)
                upper = np.log10(work.upper[i])
                print(f"{label}\tlower\t" + " ".join(f"{x:.4g}" for x in lower), file=file)
                print(f"{label}\tupper\t" + " ".join(f"{x:.4g}" for x in upper), file=file)

    def genotype_labels(self, node: int) -> List[str]:
        """Genotype labels of a node in array order."""
        ploidy = self.ploidies[node]
        return [genotype_label(ploidy, g) for g in range(num_genotypes(ploidy))]
