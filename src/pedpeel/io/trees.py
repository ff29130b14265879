"""
Somatic sample tree parsing.

An individual's tissues and samples are described by a small Newick tree
whose root hangs off the individual's germline.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_BRANCH_LENGTH = 1.0


@dataclass
class SampleNode:
    """
    Somatic tree node.

    Attributes
    ----------
    id : int
        Node identifier (pre-order position)
    name : Optional[str]
        Sample name, None for anonymous internal nodes
    parent : Optional[SampleNode]
        Parent node
    children : list[SampleNode]
        Child nodes
    branch_length : float
        Length of the edge to the parent (somatic mutation units)
    """

    id: int
    name: Optional[str] = None
    parent: Optional["SampleNode"] = None
    children: list["SampleNode"] = field(default_factory=list)
    branch_length: float = DEFAULT_BRANCH_LENGTH

    @property
    def is_leaf(self) -> bool:
        """Check if node is a leaf."""
        return len(self.children) == 0


@dataclass
class SampleTree:
    """
    Rooted somatic tree of one individual.

    Attributes
    ----------
    root : SampleNode
        Root node, attached to the germline by its branch length
    n_nodes : int
        Total number of nodes
    sample_names : list[str]
        Names of all named nodes in pre-order
    """

    root: SampleNode
    n_nodes: int
    sample_names: list[str]

    @classmethod
    def single(cls, name: str) -> "SampleTree":
        """Tree with a single sample directly below the germline."""
        return cls(root=SampleNode(id=0, name=name), n_nodes=1, sample_names=[name])

    @classmethod
    def from_newick(cls, newick_string: str) -> "SampleTree":
        """
        Parse a Newick description of a somatic tree.

        Parameters
        ----------
        newick_string : str
            Newick format tree, e.g. ``"(blood:0.5,(skin,hair):0.2)soma;"``.
            The trailing semicolon is optional.

        Returns
        -------
        SampleTree
            Parsed tree
        """
        newick = re.sub(r'\s+', '', newick_string)
        if newick.endswith(';'):
            newick = newick[:-1]
        if not newick:
            raise ValueError("Invalid Newick format: empty tree")

        node_id_counter = [0]

        def parse_node(s: str, start: int, parent: Optional[SampleNode] = None) -> tuple[SampleNode, int]:
            """Parse a node from position start in string s."""
            node = SampleNode(id=node_id_counter[0], parent=parent)
            node_id_counter[0] += 1
            pos = start

            if pos < len(s) and s[pos] == '(':
                pos += 1
                while True:
                    child, pos = parse_node(s, pos, node)
                    node.children.append(child)
                    if pos < len(s) and s[pos] == ',':
                        pos += 1
                        continue
                    elif pos < len(s) and s[pos] == ')':
                        pos += 1
                        break
                    else:
                        raise ValueError(f"Expected ',' or ')' at position {pos}")

            name_start = pos
            while pos < len(s) and s[pos] not in ',:();':
                pos += 1
            if pos > name_start:
                node.name = s[name_start:pos]

            if pos < len(s) and s[pos] == ':':
                pos += 1
                length_start = pos
                while pos < len(s) and s[pos] not in ',();':
                    pos += 1
                try:
                    node.branch_length = float(s[length_start:pos])
                except ValueError:
                    raise ValueError(f"Invalid branch length: {s[length_start:pos]}")
                if node.branch_length < 0:
                    raise ValueError(f"Negative branch length: {s[length_start:pos]}")

            if node.is_leaf and node.name is None:
                raise ValueError(f"Unnamed sample at position {name_start}")

            return node, pos

        root, pos = parse_node(newick, 0, None)
        if pos != len(newick):
            raise ValueError(f"Unexpected characters after position {pos}")

        tree = cls(root=root, n_nodes=node_id_counter[0], sample_names=[])
        tree.sample_names = [node.name for node in tree.preorder() if node.name is not None]
        if len(set(tree.sample_names)) != len(tree.sample_names):
            raise ValueError(f"Duplicate sample names in tree: {newick_string}")
        return tree

    def preorder(self) -> list[SampleNode]:
        """
        Return nodes in pre-order traversal (root to leaves).

        Returns
        -------
        list[SampleNode]
            Nodes in pre-order
        """
        result = []

        def traverse(node: SampleNode) -> None:
            result.append(node)
            for child in node.children:
                traverse(child)

        traverse(self.root)
        return result

    def get_branches(self) -> list[tuple[SampleNode, SampleNode]]:
        """
        Get all branches as (parent, child) pairs.

        Returns
        -------
        list[tuple[SampleNode, SampleNode]]
            List of (parent, child) tuples for each branch
        """
        return [(node.parent, node) for node in self.preorder() if node.parent is not None]
