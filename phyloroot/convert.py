"""Conversion between phyloroot trees and Biopython ``Bio.Phylo`` trees."""

from typing import List, Optional, Tuple

from Bio.Phylo.BaseTree import Clade, Tree

from phyloroot.tree import Node


def _label_to_confidence(label: str) -> Optional[float]:
    try:
        return float(label)
    except ValueError:
        return None


def format_support(confidence: float) -> str:
    """Render a support value as an integer percentage label when possible."""
    if float(confidence).is_integer():
        return str(int(confidence))
    return f"{confidence:.1f}"


def from_phylo(tree: Tree) -> Node:
    """
    Build a ``Node`` tree from a Biopython tree.

    Terminal names become leaf names. Internal clades are labelled with their
    confidence when they have one and are unlabelled otherwise, since the
    automatic names Biopython constructors give inner clades are not labels.
    """
    root = Node(name="", length=None)
    stack: List[Tuple[Clade, Node]] = [(tree.root, root)]
    while stack:
        clade, node = stack.pop()
        if clade is not tree.root:
            node.length = clade.branch_length
        if clade.is_terminal():
            node.name = clade.name or ""
        elif clade.confidence is not None:
            node.name = format_support(clade.confidence)
        for child_clade in clade.clades:
            child = Node()
            node.append_child(child)
            stack.append((child_clade, child))
    return root


def to_phylo(node: Node, rooted: bool = True) -> Tree:
    """
    Build a Biopython tree from a ``Node`` tree.

    Numeric internal labels become clade confidences; other internal labels
    are kept as clade names.
    """
    root_clade = Clade(branch_length=node.length)
    stack: List[Tuple[Node, Clade]] = [(node, root_clade)]
    while stack:
        current, clade = stack.pop()
        if current.is_leaf():
            clade.name = current.name or None
        elif current.name:
            confidence = _label_to_confidence(current.name)
            if confidence is None:
                clade.name = current.name
            else:
                clade.confidence = confidence
        for child in current.children:
            child_clade = Clade(branch_length=child.length)
            clade.clades.append(child_clade)
            stack.append((child, child_clade))
    return Tree(root=root_clade, rooted=rooted)
