"""
Rooting module for phylogenetic trees.

- rebalance: even split of the root edges and root label clearing
- core_rooting: rerooting, outgroup rooting and midpoint rooting
"""

from .rebalance import find_root, rebalance_root, rebalance_trees
from .core_rooting import (
    reroot_at_node,
    root_with_outgroup,
    pretty_root,
    find_farthest_leaves,
    path_between,
    midpoint_root,
    midpoint_root_trees,
)

__all__ = [
    "find_root",
    "rebalance_root",
    "rebalance_trees",
    "reroot_at_node",
    "root_with_outgroup",
    "pretty_root",
    "find_farthest_leaves",
    "path_between",
    "midpoint_root",
    "midpoint_root_trees",
]
