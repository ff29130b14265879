"""
Pytest configuration and shared fixtures.
"""

import json
import pytest
from typer.testing import CliRunner

from pedpeel.analysis import LogProbabilityParams
from pedpeel.core.graph import InheritanceModel, RelationshipGraph
from pedpeel.io import Pedigree, ReadGroups
from pedpeel.models import GenotyperParams


@pytest.fixture
def trio_records():
    """Father, mother and son."""
    return [
        {"name": "dad", "sex": "male"},
        {"name": "mom", "sex": "female"},
        {"name": "child", "dad": "dad", "mom": "mom", "sex": "male"},
    ]


@pytest.fixture
def library_records():
    """One library per trio member, in dad, mom, child order."""
    return [
        {"name": "LB1", "sample": "dad"},
        {"name": "LB2", "sample": "mom"},
        {"name": "LB3", "sample": "child"},
    ]


@pytest.fixture
def trio_pedigree(trio_records):
    return Pedigree.from_records(trio_records)


@pytest.fixture
def trio_read_groups(library_records):
    return ReadGroups.from_records(library_records)


@pytest.fixture
def trio_graph(trio_pedigree, trio_read_groups):
    """Autosomal trio graph with germline mutations only."""
    graph = RelationshipGraph()
    assert graph.construct(trio_pedigree, trio_read_groups, InheritanceModel.AUTOSOMAL,
                           mu=1e-8, mu_somatic=0.0, mu_library=0.0)
    return graph


@pytest.fixture
def sharp_params():
    """Model parameters with a single, low-noise genotyper component."""
    return LogProbabilityParams(
        params_a=GenotyperParams(pi=1.0, phi=0.0005, epsilon=0.0005, omega=1.0),
        params_b=GenotyperParams(pi=0.0, phi=0.05, epsilon=0.005, omega=1.0),
    )


@pytest.fixture
def cli_runner():
    """CLI test runner for Typer apps."""
    return CliRunner()


@pytest.fixture
def query_file(tmp_path, trio_records, library_records):
    """Query with one de novo site and one uninformative site."""
    query = {
        "pedigree": trio_records,
        "libraries": library_records,
        "sites": [
            {"name": "chr1:100", "ref": "A",
             "depths": [[40, 0, 0, 0], [40, 0, 0, 0], [20, 20, 0, 0]]},
            {"name": "chr1:200", "ref": "A",
             "depths": [[40, 0, 0, 0], [40, 0, 0, 0], [40, 0, 0, 0]]},
        ],
    }
    path = tmp_path / "trio.json"
    path.write_text(json.dumps(query))
    return path
