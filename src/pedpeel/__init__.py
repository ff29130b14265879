"""
pedpeel: de novo mutation inference by peeling sequenced pedigrees.

A pedigree and its sequencing libraries are compiled once into a
relationship graph; every site is then evaluated with forward and backward
peeling passes under several mutation matrix variants.

Quick Start
-----------
>>> from pedpeel import (CallMutations, InheritanceModel, MutationStats,
...                      Pedigree, ReadGroups, RelationshipGraph)
>>> pedigree = Pedigree.from_records([
...     {"name": "dad", "sex": "male"},
...     {"name": "mom", "sex": "female"},
...     {"name": "child", "dad": "dad", "mom": "mom"},
... ])
>>> read_groups = ReadGroups.from_records([
...     {"name": "lb1", "sample": "dad"},
...     {"name": "lb2", "sample": "mom"},
...     {"name": "lb3", "sample": "child"},
... ])
>>> graph = RelationshipGraph()
>>> graph.construct(pedigree, read_groups, InheritanceModel.AUTOSOMAL, mu=1e-8)
True
>>> caller = CallMutations(0.1, graph)
>>> stats = MutationStats()
>>> found = caller([[30, 0, 0, 0], [30, 0, 0, 0], [15, 15, 0, 0]], ref_index=0, stats=stats)
"""

__version__ = "0.1.0"

from pedpeel.analysis import (
    CallMutations,
    LogProbability,
    LogProbabilityParams,
    LogProbabilityValue,
    MutationStats,
)
from pedpeel.core import InheritanceModel, PedigreeError, RelationshipGraph, inheritance_model
from pedpeel.io import AlleleDepths, Library, Member, Pedigree, ReadGroups, Sex
from pedpeel.models import GenotyperParams

__all__ = [
    "CallMutations",
    "LogProbability",
    "LogProbabilityParams",
    "LogProbabilityValue",
    "MutationStats",
    "InheritanceModel",
    "PedigreeError",
    "RelationshipGraph",
    "inheritance_model",
    "AlleleDepths",
    "Library",
    "Member",
    "Pedigree",
    "ReadGroups",
    "Sex",
    "GenotyperParams",
]
