"""
JSON query files: a pedigree, its libraries and the sites to evaluate.

Example::

    {
      "pedigree": [
        {"name": "dad", "sex": "male"},
        {"name": "mom", "sex": "female"},
        {"name": "child", "dad": "dad", "mom": "mom", "sex": "female"}
      ],
      "libraries": [
        {"name": "dad-lb", "sample": "dad"},
        {"name": "mom-lb", "sample": "mom"},
        {"name": "child-lb", "sample": "child"}
      ],
      "sites": [
        {"name": "chr1:100", "ref": "A", "depths": [[30, 0, 0, 0], [30, 0, 0, 0], [15, 15, 0, 0]]}
      ]
    }
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from .depths import nucleotide_index, raw_depths
from .pedigree import Pedigree, ReadGroups


@dataclass
class Site:
    """Raw depths of one site, rows in the order of the query's libraries."""
    name: str
    ref: str
    depths: np.ndarray

    @property
    def ref_index(self) -> int:
        return nucleotide_index(self.ref)


@dataclass
class Query:
    pedigree: Pedigree
    read_groups: ReadGroups
    sites: List[Site] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Query":
        """
        Build a query from parsed JSON.

        Raises
        ------
        ValueError
            If a section is missing or a site does not have one row of
            depths per library
        """
        for key in ("pedigree", "libraries"):
            if key not in data:
                raise ValueError(f"Query is missing the '{key}' section")
        pedigree = Pedigree.from_records(data["pedigree"])
        read_groups = ReadGroups.from_records(data["libraries"])

        sites = []
        for i, record in enumerate(data.get("sites", [])):
            depths = raw_depths(record["depths"])
            if depths.shape[0] != len(read_groups):
                raise ValueError(
                    f"Site {i} has depths for {depths.shape[0]} libraries, "
                    f"expected {len(read_groups)}"
                )
            sites.append(Site(str(record.get("name", i + 1)), str(record.get("ref", "N")), depths))
        return cls(pedigree, read_groups, sites)


def load_query(path: Union[str, Path]) -> Query:
    """Read a JSON query file."""
    with open(path, 'r') as f:
        data = json.load(f)
    return Query.from_dict(data)
