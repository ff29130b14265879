"""Helpers shared by the command implementations."""

import sys
from pathlib import Path

from pedpeel.core.graph import RelationshipGraph, inheritance_model
from pedpeel.io.query import Query, load_query


def load_or_exit(query: Path) -> Query:
    try:
        return load_query(query)
    except (OSError, ValueError, KeyError) as e:
        print(f"Error: Could not load query from {query}", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        sys.exit(1)


def construct_or_exit(data: Query, model: str, mu: float, mu_somatic: float,
                      mu_library: float) -> RelationshipGraph:
    """Construct the relationship graph of a query; exit with status 1 on failure."""
    graph = RelationshipGraph()
    ok = graph.construct(data.pedigree, data.read_groups, inheritance_model(model),
                         mu=mu, mu_somatic=mu_somatic, mu_library=mu_library)
    if not ok:
        print("Error: Could not build the relationship graph", file=sys.stderr)
        print(f"Details: {graph.error}", file=sys.stderr)
        sys.exit(1)
    return graph
