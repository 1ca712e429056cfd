"""
Custom exceptions for phyloroot.
"""

from __future__ import annotations
from typing import NoReturn


class PhyloRootError(Exception):
    """Base exception for phyloroot errors."""

    pass


class InvalidTreeError(PhyloRootError):
    """Raised when a tree is malformed or cannot be rooted."""

    @staticmethod
    def raise_cycle(node_name: str) -> NoReturn:
        """
        Raises an InvalidTreeError for a parent chain that loops back on itself.

        Args:
            node_name: Name of the node where the loop was detected

        Raises:
            InvalidTreeError: Always raised
        """
        raise InvalidTreeError(
            f"Parent pointers starting at node '{node_name}' form a cycle; "
            f"no root can be identified."
        )


class OutgroupError(InvalidTreeError):
    """Raised when an outgroup cannot be placed on a tree."""

    pass


class NewickParseError(PhyloRootError):
    """Raised when a Newick string cannot be parsed."""

    pass


class CharacterMatrixError(PhyloRootError):
    """Raised when a character matrix is unreadable or inconsistent."""

    pass
