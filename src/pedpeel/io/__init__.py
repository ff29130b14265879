"""
Structured inputs: pedigrees, read groups, somatic trees, read depths and
query files.
"""

from .depths import AlleleDepths, nucleotide_index, raw_depths
from .pedigree import Library, Member, Pedigree, ReadGroups, Sex
from .query import Query, Site, load_query
from .trees import SampleNode, SampleTree

__all__ = [
    "AlleleDepths",
    "Library",
    "Member",
    "Pedigree",
    "Query",
    "ReadGroups",
    "SampleNode",
    "SampleTree",
    "Sex",
    "Site",
    "load_query",
    "nucleotide_index",
    "raw_depths",
]
