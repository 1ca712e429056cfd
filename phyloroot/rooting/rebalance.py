"""
Root edge rebalancing for rooted phylogenetic trees.

After a tree has been rooted on an outgroup, the split of the original edge
between the two sides of the new root is arbitrary. ``rebalance_root`` spreads
the combined length of the root's child edges evenly over them and clears the
root label, since a support value has no meaning at the root.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Set

from phyloroot.exceptions import InvalidTreeError
from phyloroot.tree import Node

logger = logging.getLogger(__name__)


# =============================================================================
# VALIDATION HELPERS
# =============================================================================


def find_root(node: Node) -> Node:
    """
    Walk parent pointers from ``node`` up to the unique node without a parent.

    Raises:
        InvalidTreeError: If the parent chain is cyclic or a parent does not
            list the node among its children.
    """
    seen: Set[int] = set()
    current = node
    while current.parent is not None:
        if id(current) in seen:
            InvalidTreeError.raise_cycle(node.name)
        seen.add(id(current))
        parent = current.parent
        if not any(child is current for child in parent.children):
            raise InvalidTreeError(
                f"Node '{current.name}' points to a parent that does not list it "
                f"as a child; the tree is not connected."
            )
        current = parent
    return current


def _root_edge_lengths(root: Node) -> List[float]:
    """Return the lengths of the root-adjacent edges, validated."""
    if not root.children:
        raise InvalidTreeError(
            "Root has no adjacent edges; a single-node tree cannot be rebalanced."
        )

    lengths: List[float] = []
    for child in root.children:
        if child.parent is not root:
            raise InvalidTreeError(
                f"Child '{child.name}' of the root does not point back to it."
            )
        length = 0.0 if child.length is None else float(child.length)
        if not math.isfinite(length) or length < 0:
            raise InvalidTreeError(
                f"Root edge to '{child.name}' has invalid length {child.length!r}."
            )
        lengths.append(length)
    return lengths


# =============================================================================
# REBALANCING
# =============================================================================


def rebalance_root(tree: Node) -> Node:
    """
    Split the root-adjacent branch length evenly and clear the root label.

    The root is located from any node of the tree. Every edge leaving the root
    gets ``total / k`` where ``total`` is the summed length of the ``k`` root
    edges, so the total is conserved. A missing length counts as zero.

    The new lengths are computed before anything is written, so the tree is
    left untouched when an error is raised.

    Args:
        tree: Any node of a rooted tree

    Returns:
        The root of the same tree, mutated in place

    Raises:
        InvalidTreeError: If no root can be identified, the root has no
            children or a root edge length is negative or not finite
    """
    root = find_root(tree)
    lengths = _root_edge_lengths(root)

    total = math.fsum(lengths)
    if all(length == lengths[0] for length in lengths):
        # Already balanced; keeps repeated calls bit-identical
        share = lengths[0]
    else:
        share = total / len(lengths)

    for child in root.children:
        child.length = share
    root.name = ""

    logger.debug(
        "Rebalanced %d root edges: total %.6g, %.6g each", len(lengths), total, share
    )
    return root


def _rebalance_indexed(index: int, tree: Node) -> Node:
    try:
        return rebalance_root(tree)
    except InvalidTreeError as e:
        raise InvalidTreeError(f"Tree {index}: {e}") from e


def rebalance_trees(
    trees: Sequence[Node], max_workers: Optional[int] = None
) -> List[Node]:
    """
    Apply ``rebalance_root`` to every tree of a collection independently.

    Trees must not share nodes, so a tree listed twice (or through two of its
    nodes) is rejected. With ``max_workers > 1`` they are processed on a
    thread pool. The returned list mirrors the input order.

    Args:
        trees: Trees to rebalance, mutated in place
        max_workers: Number of worker threads; None or 1 runs sequentially

    Returns:
        The rebalanced roots, in input order

    Raises:
        InvalidTreeError: For the first malformed or repeated tree, with its
            index
    """
    # Validate everything first so a bad tree leaves the whole batch untouched
    seen_roots: Dict[int, int] = {}
    for index, tree in enumerate(trees):
        try:
            root = find_root(tree)
            _root_edge_lengths(root)
        except InvalidTreeError as e:
            raise InvalidTreeError(f"Tree {index}: {e}") from e
        if id(root) in seen_roots:
            raise InvalidTreeError(
                f"Tree {index}: same tree as tree {seen_roots[id(root)]}; "
                f"each tree may appear only once in a batch."
            )
        seen_roots[id(root)] = index

    if max_workers is None or max_workers <= 1 or len(trees) <= 1:
        results = [_rebalance_indexed(i, tree) for i, tree in enumerate(trees)]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            # map returns results in the order of the input iterable
            results = list(executor.map(_rebalance_indexed, range(len(trees)), trees))

    logger.info("Rebalanced the roots of %d tree(s)", len(results))
    return results
