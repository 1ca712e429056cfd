"""
Newick format parser module for phylogenetic trees.

This module provides functionality to parse Newick format strings into tree structures.
"""

from .newick_parser import (
    parse_newick,
    parse_metadata,
    split_token,
    get_linear_order,
)

__all__ = [
    "parse_newick",
    "parse_metadata",
    "split_token",
    "get_linear_order",
]
