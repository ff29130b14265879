"""Main CLI application for pedpeel."""

import logging
import typer
from pathlib import Path
from typing import Optional
from enum import Enum

app = typer.Typer(
    name="pedpeel",
    help="De novo mutation calling on sequenced pedigrees",
    no_args_is_help=True,
)


class Model(str, Enum):
    """Inheritance model of the locus."""
    AUTOSOMAL = "autosomal"
    MITOCHONDRIA = "mitochondria"
    MATERNAL = "maternal"
    PATERNAL = "paternal"
    X_LINKED = "x-linked"
    Y_LINKED = "y-linked"
    W_LINKED = "w-linked"
    Z_LINKED = "z-linked"


class OutputFormat(str, Enum):
    """Output format."""
    TEXT = "text"
    JSON = "json"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def call(
    query: Path = typer.Argument(
        ...,
        help="Query file (JSON with pedigree, libraries and sites)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    model: Model = typer.Option(
        Model.AUTOSOMAL,
        "--model", "-m",
        help="Inheritance model",
    ),
    mu: float = typer.Option(
        1e-8,
        "--mu",
        help="Germline mutation rate",
        min=0.0,
    ),
    mu_somatic: float = typer.Option(
        0.0,
        "--mu-somatic",
        help="Somatic mutation rate",
        min=0.0,
    ),
    mu_library: float = typer.Option(
        0.0,
        "--mu-library",
        help="Library preparation mutation rate",
        min=0.0,
    ),
    min_prob: float = typer.Option(
        0.1,
        "--min-prob",
        help="Minimum mutation probability for a site to be reported",
        min=0.0,
        max=1.0,
    ),
    theta: float = typer.Option(
        0.001,
        "--theta",
        help="Population diversity of founder genotypes",
        min=0.0,
    ),
    ref_weight: float = typer.Option(
        1.0,
        "--ref-weight",
        help="Prior weight of the reference allele",
        min=0.0,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Output file (default: stdout)",
    ),
    format: OutputFormat = typer.Option(
        OutputFormat.TEXT,
        "--format",
        help="Output format",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show construction details",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet", "-q",
        help="Minimal output",
    ),
):
    """
    Call de novo mutations at every site of a query.

    Example:
        pedpeel call trio.json
        pedpeel call trio.json --mu 1e-6 --min-prob 0.5 --format json
    """
    from .commands.call import run_call

    _configure_logging(verbose)
    run_call(
        query=query,
        model=model.value,
        mu=mu,
        mu_somatic=mu_somatic,
        mu_library=mu_library,
        min_prob=min_prob,
        theta=theta,
        ref_weight=ref_weight,
        output=output,
        format=format.value,
        quiet=quiet,
    )


@app.command()
def graph(
    query: Path = typer.Argument(
        ...,
        help="Query file (JSON with pedigree, libraries and sites)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    model: Model = typer.Option(
        Model.AUTOSOMAL,
        "--model", "-m",
        help="Inheritance model",
    ),
    mu: float = typer.Option(
        1e-8,
        "--mu",
        help="Germline mutation rate",
        min=0.0,
    ),
    mu_somatic: float = typer.Option(
        0.0,
        "--mu-somatic",
        help="Somatic mutation rate",
        min=0.0,
    ),
    mu_library: float = typer.Option(
        0.0,
        "--mu-library",
        help="Library preparation mutation rate",
        min=0.0,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show construction details",
    ),
):
    """
    Print the node table and peeling program of a pedigree.

    Example:
        pedpeel graph trio.json --model x-linked
    """
    from .commands.graph import run_graph

    _configure_logging(verbose)
    run_graph(
        query=query,
        model=model.value,
        mu=mu,
        mu_somatic=mu_somatic,
        mu_library=mu_library,
    )


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
