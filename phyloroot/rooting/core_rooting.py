"""
Core rerooting implementation for phylogenetic trees.

This module provides fundamental rerooting operations including:
- Rerooting at an arbitrary node by flipping parent/child pointers
- Outgroup rooting with a freshly inserted root node
- Midpoint rooting
"""

import io
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from skbio import TreeNode as SkbioTreeNode  # type: ignore[import-untyped]

from phyloroot.exceptions import OutgroupError
from phyloroot.parser.newick_parser import parse_newick
from phyloroot.rooting.rebalance import find_root, rebalance_root
from phyloroot.tree import Node

logger = logging.getLogger(__name__)

# =============================================================================
# HELPER FUNCTIONS FOR TREE STRUCTURE MANIPULATION
# =============================================================================


def _collect_path_to_root(start_node: Node) -> List[Node]:
    """
    Collect all nodes from start_node up to the current root (inclusive).
    """
    path: List[Node] = []
    node: Optional[Node] = start_node
    while node is not None:
        path.append(node)
        node = node.parent
    return path


def _flip_upward(node: Node) -> Node:
    """
    Flip the tree structure upward from the given node to make it the new root.

    Every edge on the path from ``node`` to the current root is reversed. An
    edge keeps its length and, for internal nodes, its label: both move to the
    node that sits below the edge after the flip.

    Args:
        node: The node that should become the new root

    Returns:
        The new root node (same as input node)
    """
    if node.parent is None:
        return node

    path: List[Node] = _collect_path_to_root(node)

    # Edge i joins path[i] to path[i + 1]; leaves keep their taxon name
    edge_lengths = [n.length for n in path[:-1]]
    edge_labels = [n.name if n.children else "" for n in path[:-1]]

    for i in range(len(path) - 1):
        child_node = path[i]
        parent_node = path[i + 1]

        parent_node.children = [c for c in parent_node.children if c is not child_node]
        child_node.children.append(parent_node)
        parent_node.parent = child_node

        parent_node.length = edge_lengths[i]
        if parent_node.children:
            parent_node.name = edge_labels[i]

    node.parent = None
    node.length = None
    if node.children and edge_labels[0]:
        node.name = ""

    # A bifurcating old root is left with one child
    old_root = path[-1]
    if len(old_root.children) == 1:
        _splice_out(old_root)

    return node


def _splice_out(node: Node) -> None:
    """
    Remove a non-root node with exactly one child, joining its two edges.
    """
    only_child = node.children[0]
    if node.length is not None or only_child.length is not None:
        only_child.length = (node.length or 0.0) + (only_child.length or 0.0)
    # Both edges stand for the same split; keep whichever label exists
    if only_child.children and not only_child.name:
        only_child.name = node.name
    node.parent.replace_child(node, only_child)
    node.children = []


def _root_on_edge(child: Node, child_length: Optional[float]) -> Node:
    """
    Insert a new root on the edge above ``child``.

    ``child`` keeps ``child_length`` of the edge and its former parent the rest.
    """
    parent = child.parent
    _flip_upward(parent)

    edge_length = child.length
    parent.remove_child(child)

    new_root = Node(name="", length=None)
    new_root.append_child(child)
    new_root.append_child(parent)
    if edge_length is None:
        child.length = None
        parent.length = None
    else:
        child_length = min(max(child_length or 0.0, 0.0), edge_length)
        child.length = child_length
        parent.length = edge_length - child_length

    if len(parent.children) == 1:
        _splice_out(parent)
    return new_root


def _leaves_by_name(root: Node) -> Dict[str, Node]:
    leaves: Dict[str, Node] = {}
    for leaf in root.leaves:
        leaves.setdefault(leaf.name, leaf)
    return leaves


def _common_ancestor(nodes: Sequence[Node]) -> Node:
    ancestor = nodes[0]
    for other in nodes[1:]:
        found = ancestor.find_lowest_common_ancestor(other)
        if found is None:
            raise OutgroupError("Outgroup taxa do not belong to the same tree.")
        ancestor = found
    return ancestor


# =============================================================================
# CORE REROOTING OPERATIONS
# =============================================================================


def reroot_at_node(node: Node) -> Node:
    """
    Reroot the tree at the specified node.

    Args:
        node: The node to reroot at

    Returns:
        The new root node
    """
    return _flip_upward(node)


def root_with_outgroup(tree: Node, outgroup: Union[str, Iterable[str]]) -> Node:
    """
    Root the tree on the edge leading to an outgroup.

    A new root node is inserted on the outgroup's edge. The outgroup keeps the
    full length of that edge and the ingroup side gets zero, which
    ``rebalance_root`` later spreads evenly. When the outgroup is given as
    several taxa their most recent common ancestor defines the clade; if that
    ancestor is the current root the tree is first turned around so the
    outgroup forms a proper clade.

    Args:
        tree: Any node of the tree to root
        outgroup: A taxon name or a collection of taxon names

    Returns:
        The new root node

    Raises:
        OutgroupError: If a taxon is unknown, the outgroup contains every taxon
            or its taxa do not form a clade
    """
    names: List[str] = [outgroup] if isinstance(outgroup, str) else list(outgroup)
    if not names:
        raise OutgroupError("No outgroup taxa given.")

    root = find_root(tree)
    leaves = _leaves_by_name(root)
    missing = [name for name in names if name not in leaves]
    if missing:
        raise OutgroupError(f"Outgroup taxa not found in tree: {', '.join(missing)}")

    ingroup = [leaf for name, leaf in leaves.items() if name not in set(names)]
    if not ingroup:
        raise OutgroupError("Outgroup contains every taxon of the tree.")

    outgroup_node = _common_ancestor([leaves[name] for name in names])
    if outgroup_node is root:
        # Outgroup straddles the current root: hang the tree from an ingroup
        # leaf so the outgroup taxa share a proper ancestor
        root = _flip_upward(ingroup[0])
        outgroup_node = _common_ancestor([leaves[name] for name in names])

    if set(outgroup_node.get_current_order()) != set(names):
        raise OutgroupError(f"Outgroup {names} is not monophyletic.")

    new_root = _root_on_edge(outgroup_node, outgroup_node.length)
    logger.debug("Rooted tree on outgroup %s", names)
    return new_root


def pretty_root(tree: Node, outgroup: Union[str, Iterable[str]]) -> Node:
    """
    Root on the outgroup, split the root edge evenly and clear the root label.
    """
    return rebalance_root(root_with_outgroup(tree, outgroup))


# =============================================================================
# MIDPOINT ROOTING
# =============================================================================


def path_between(node1: Node, node2: Node) -> List[Tuple[Node, float]]:
    """
    Find the path between two nodes in the tree.

    Returns:
        List of (node, edge_weight) tuples representing the path.
        The first tuple has edge_weight=0 for the starting node.
    """
    lca = node1.find_lowest_common_ancestor(node2)
    if lca is None:
        raise ValueError("Nodes do not belong to the same tree")

    result: List[Tuple[Node, float]] = [(node1, 0.0)]
    current = node1
    while current is not lca:
        weight = current.length if current.length is not None else 0.0
        current = current.parent
        result.append((current, weight))

    down_path = node2.path_to_ancestor(lca)
    for node in reversed(down_path):
        weight = node.length if node.length is not None else 0.0
        result.append((node, weight))

    return result


def find_farthest_leaves(root: Node) -> Tuple[Node, Node, float]:
    """
    Find the two leaves that are farthest apart in the tree.

    Brute force approach: calculate distance between all pairs of leaves
    and return the pair with maximum distance.
    """
    leaves: List[Node] = root.leaves

    if len(leaves) < 2:
        raise ValueError("Tree must have at least 2 leaves for midpoint rooting")

    max_distance = 0.0
    farthest_pair = (leaves[0], leaves[1])

    for i in range(len(leaves)):
        for j in range(i + 1, len(leaves)):
            leaf1, leaf2 = leaves[i], leaves[j]
            distance = sum(weight for _, weight in path_between(leaf1, leaf2))
            if distance > max_distance:
                max_distance = distance
                farthest_pair = (leaf1, leaf2)

    return farthest_pair[0], farthest_pair[1], max_distance


def _find_midpoint_edge(
    leaf1: Node, leaf2: Node, total_distance: float
) -> Tuple[Node, float]:
    """
    Locate the midpoint of the path between two leaves.

    Returns:
        The node below the edge holding the midpoint and the distance from
        that node up to the midpoint
    """
    target_distance = total_distance / 2.0
    path = path_between(leaf1, leaf2)
    current_distance = 0.0
    for (prev_node, _), (next_node, edge_weight) in zip(path, path[1:]):
        if current_distance + edge_weight >= target_distance:
            offset = target_distance - current_distance
            # Path edges run up towards the LCA, then down again
            if next_node.parent is prev_node:
                return next_node, edge_weight - offset
            return prev_node, offset
        current_distance += edge_weight

    return leaf2, 0.0


def midpoint_root(tree: Node) -> Node:
    """
    Reroot the tree at the midpoint of its longest leaf-to-leaf path.

    The new root is inserted inside the edge holding the midpoint, so both
    farthest leaves end up at the same distance from it.
    """
    leaf1, leaf2, total_distance = find_farthest_leaves(find_root(tree))
    child, distance = _find_midpoint_edge(leaf1, leaf2, total_distance)
    return _root_on_edge(child, distance)


def midpoint_root_trees(trees: List[Node]) -> List[Node]:
    """
    Apply midpoint rooting to all trees using scikit-bio.

    Each tree goes through Newick into a scikit-bio TreeNode and back.

    Returns:
        List of midpoint-rooted trees (new copies, originals unchanged)
    """
    rooted_newick_strings: List[str] = []
    for tree in trees:
        skbio_tree: SkbioTreeNode = SkbioTreeNode.read(  # type: ignore[assignment]
            io.StringIO(tree.to_newick())
        )
        rooted_skbio_tree: SkbioTreeNode = skbio_tree.root_at_midpoint(  # type: ignore[assignment]
            reset=True, branch_attrs=[], root_name=""
        )
        rooted_newick_strings.append(str(rooted_skbio_tree).strip())

    if not rooted_newick_strings:
        return []
    rooted_trees: List[Node] = parse_newick(  # type: ignore[assignment]
        "\n".join(rooted_newick_strings), force_list=True
    )
    logger.info("Midpoint-rooted %d tree(s)", len(rooted_trees))
    return rooted_trees
