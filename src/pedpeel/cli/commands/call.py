"""Call command implementation."""

import sys
import json
from pathlib import Path
from typing import Optional

from pedpeel.analysis import CallMutations, LogProbabilityParams, MutationStats
from .common import construct_or_exit, load_or_exit


def run_call(
    query: Path,
    model: str,
    mu: float,
    mu_somatic: float,
    mu_library: float,
    min_prob: float,
    theta: float,
    ref_weight: float,
    output: Optional[Path],
    format: str,
    quiet: bool,
):
    """Call mutations at every site of a query."""
    data = load_or_exit(query)
    n_libraries = len(data.read_groups)
    graph = construct_or_exit(data, model, mu, mu_somatic, mu_library)

    if not quiet:
        print(f"Pedigree:  {len(data.pedigree)} members, {graph.num_nodes} nodes", file=sys.stderr)
        print(f"Libraries: {len(data.read_groups)} of {n_libraries} used", file=sys.stderr)
        print(f"Sites:     {len(data.sites)}", file=sys.stderr)
        print(file=sys.stderr)

    try:
        params = LogProbabilityParams(theta=theta, ref_weight=ref_weight)
    except ValueError as e:
        print("Error: Invalid model parameters", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        sys.exit(1)
    caller = CallMutations(min_prob, graph, params)

    calls = []
    for site in data.sites:
        stats = MutationStats()
        depths = site.depths[graph.keep_library_index]
        if caller(depths, site.ref_index, stats):
            calls.append((site, stats))

    if format == "json":
        records = [dict(site=site.name, ref=site.ref, **stats.to_dict()) for site, stats in calls]
        output_text = json.dumps(records, indent=2)
    else:  # text
        blocks = [f"Site {site.name} (ref {site.ref})\n{stats.summary(graph.labels)}"
                  for site, stats in calls]
        output_text = "\n\n".join(blocks)

    if output:
        with open(output, 'w') as f:
            f.write(output_text + "\n")
        if not quiet:
            print(f"{len(calls)} mutations written to {output}", file=sys.stderr)
    else:
        print(output_text)
