"""
Core algorithms of pedigree peeling.

This module provides the low-level machinery:

- **Matrices**: genotype tables and mutation-count resolved transition matrices
- **Relationship graph**: pedigree compilation into a peeling program
- **Peeling**: forward and reverse family operations over a workspace

The high-level evaluations live in :mod:`pedpeel.analysis`.
"""

from pedpeel.core.graph import (
    InheritanceModel,
    PedigreeError,
    RelationshipGraph,
    inheritance_model,
)
from pedpeel.core.matrix import MUTATIONS_ALL, MUTATIONS_MEAN, f81_matrix
from pedpeel.core.peeling import PeelOp, Workspace, WorkspaceState

__all__ = [
    "InheritanceModel",
    "PedigreeError",
    "RelationshipGraph",
    "inheritance_model",
    "MUTATIONS_ALL",
    "MUTATIONS_MEAN",
    "f81_matrix",
    "PeelOp",
    "Workspace",
    "WorkspaceState",
]
