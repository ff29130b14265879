"""Graph command implementation."""

from pathlib import Path

from .common import construct_or_exit, load_or_exit


def run_graph(
    query: Path,
    model: str,
    mu: float,
    mu_somatic: float,
    mu_library: float,
):
    """Print the node table and peeling program."""
    data = load_or_exit(query)
    graph = construct_or_exit(data, model, mu, mu_somatic, mu_library)
    graph.print_table()
    print()
    graph.print_machine()
