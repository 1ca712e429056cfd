from __future__ import annotations
import json
import math
from typing import Optional, Any, Dict, FrozenSet, List, Set

try:
    from typing import Self
except ImportError:
    from typing_extensions import Self

# Characters that force a taxon name to be quoted in Newick output
_NEWICK_SPECIAL = set("()[]':;, \t")


def _format_name(name: str) -> str:
    if any(ch in _NEWICK_SPECIAL for ch in name):
        return "'" + name.replace("'", "''") + "'"
    return name


def _format_length(length: float, precision: Optional[int]) -> str:
    if precision is None:
        return repr(length)
    return f"{length:.{precision}g}"


class Node:
    """
    Node of a rooted phylogenetic tree.

    A tree is represented by its root node. Every node stores the length of the
    edge leading to it from its parent; the root's length is usually None.
    Leaves carry the taxon name in ``name``. For internal nodes ``name`` is the
    node label, typically a support value, and is also reachable as ``label``.
    """

    __slots__ = (
        "children",
        "parent",
        "name",
        "length",
        "values",
        "list_index",
    )

    children: List[Self]
    parent: Optional[Self]
    name: str
    length: Optional[float]
    values: Dict[str, Any]
    list_index: Optional[int]

    def __init__(
        self,
        children: Optional[List[Self]] = None,
        name: str = "",
        length: Optional[float] = None,
        values: Optional[Dict[str, Any]] = None,
    ):
        # Avoid mutable default arguments; create fresh containers
        self.children = list(children) if children is not None else []
        for child in self.children:
            child.parent = self
        self.parent = None
        self.name = name
        self.length = length
        self.values = dict(values) if values is not None else {}
        self.list_index = None

    # ------------------------------------------------------------------------
    # Labels & leaves
    # ------------------------------------------------------------------------
    @property
    def label(self) -> str:
        """Label of an internal node (alias of ``name``)."""
        return self.name

    @label.setter
    def label(self, value: str) -> None:
        self.name = value

    @property
    def leaves(self) -> List[Self]:
        """
        Get all leaf nodes in the subtree rooted at this node, left to right.

        Returns:
            List[Node]: List of all leaf nodes in this subtree.
        """
        return [node for node in self.traverse() if not node.children]

    def get_current_order(self) -> tuple[str, ...]:
        """
        Return the current order of taxa in the tree as a tuple.
        """
        return tuple(str(leaf.name) for leaf in self.leaves)

    def __repr__(self) -> str:
        return f"Node('{self.name}')"

    def __str__(self):
        return str(tuple(sorted(self.get_current_order())))

    # ------------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------------
    def append_child(self, node: Self) -> None:
        node.parent = self
        self.children.append(node)

    def remove_child(self, node: Self) -> None:
        """Detach ``node`` from this node's children (identity comparison)."""
        remaining = [c for c in self.children if c is not node]
        if len(remaining) == len(self.children):
            raise ValueError("node is not a child of this node.")
        self.children = remaining
        node.parent = None

    def replace_child(self, old_child: Self, new_child: Self) -> None:
        """Replaces an existing child node with a new one."""
        for index, child in enumerate(self.children):
            if child is old_child:
                break
        else:
            raise ValueError("old_child is not a child of this node.")

        self.children[index] = new_child
        old_child.parent = None
        new_child.parent = self

    def deep_copy(self) -> Self:
        """Copy the subtree rooted at this node. The copy has no parent."""
        new_node = object.__new__(type(self))
        new_node.name = self.name
        new_node.length = self.length
        new_node.values = dict(self.values)
        new_node.parent = None
        new_node.list_index = self.list_index
        new_node.children = [child.deep_copy() for child in self.children]
        for child in new_node.children:
            child.parent = new_node
        return new_node

    def get_root(self) -> Self:
        cur = self
        while cur.parent is not None:
            cur = cur.parent
        return cur

    def is_leaf(self) -> bool:
        return len(self.children) == 0

    def is_internal(self) -> bool:
        return bool(self.children)

    def is_root(self) -> bool:
        return self.parent is None

    # ------------------------------------------------------------------------
    # Traversal & lookup
    # ------------------------------------------------------------------------
    def traverse(self) -> List[Self]:
        """
        Return a list of all nodes in the subtree rooted at this node (pre-order).
        Uses an iterative stack to avoid recursion depth issues on deep trees.
        """
        nodes: List[Self] = []
        stack: List[Self] = [self]

        while stack:
            current = stack.pop()
            nodes.append(current)
            # Reverse keeps the left-to-right visit order
            for child in reversed(current.children):
                stack.append(child)

        return nodes

    def find_leaf(self, name: str) -> Optional[Self]:
        """Return the first leaf called ``name`` or None."""
        for leaf in self.leaves:
            if leaf.name == name:
                return leaf
        return None

    def find_lowest_common_ancestor(self, other: "Node") -> Optional["Node"]:
        """
        Find the lowest common ancestor (LCA) of this node and another node.

        Args:
            other: The other node to find LCA with

        Returns:
            Node representing the LCA, or None if no common ancestor exists
        """
        if self is other:
            return self

        self_ancestors: Set[int] = set()
        current = self
        while current is not None:
            self_ancestors.add(id(current))
            current = current.parent

        current = other
        while current is not None:
            if id(current) in self_ancestors:
                return current
            current = current.parent

        return None

    def path_to_ancestor(self, ancestor: "Node") -> List["Node"]:
        """
        Get the path from this node up to (but excluding) the specified ancestor.

        Returns:
            List[Node] from self up to (excluding) ancestor, empty if ancestor not found
        """
        path: List["Node"] = []
        current = self

        while current is not None and current is not ancestor:
            path.append(current)
            current = current.parent

        return path if current is ancestor else []

    # ------------------------------------------------------------------------
    # Splits
    # ------------------------------------------------------------------------
    def to_splits(self, unrooted: bool = False) -> Set[FrozenSet[str]]:
        """
        Return the clades of this tree as frozensets of leaf names.

        The root clade and single leaves are left out. With ``unrooted=True``
        every clade is replaced by the side of its bipartition that does not
        contain the alphabetically first taxon, so trees differing only in
        their root placement compare equal.
        """
        all_taxa = frozenset(self.get_current_order())
        anchor = min(all_taxa) if all_taxa else None
        splits: Set[FrozenSet[str]] = set()
        for node in self.traverse():
            if node is self or not node.children:
                continue
            clade = frozenset(node.get_current_order())
            if unrooted:
                if anchor in clade:
                    clade = all_taxa - clade
                if len(clade) < 2 or len(all_taxa - clade) < 2:
                    continue
            splits.add(clade)
        return splits

    def same_topology(self, other: "Node", unrooted: bool = False) -> bool:
        """Compare the leaf set and the clades of two trees."""
        if set(self.get_current_order()) != set(other.get_current_order()):
            return False
        return self.to_splits(unrooted) == other.to_splits(unrooted)

    def branch_lengths(self) -> List[Optional[float]]:
        """Edge lengths of every non-root node in pre-order."""
        return [node.length for node in self.traverse() if node is not self]

    def total_length(self) -> float:
        return sum(length for length in self.branch_lengths() if length is not None)

    # ------------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------------
    def to_newick(self, lengths: bool = True, precision: Optional[int] = None) -> str:
        """
        Serialise the tree as Newick.

        Lengths are written in the shortest form that parses back to the same
        float; ``precision`` caps them at that many significant digits.
        """
        return self._to_newick(lengths=lengths, precision=precision) + ";"

    def _to_newick(self, lengths: bool = True, precision: Optional[int] = None) -> str:
        meta = ""
        if self.values:
            meta = "[" + ",".join(f"{k}={v}" for k, v in self.values.items()) + "]"

        child_str = ""
        if self.children:
            child_str = (
                "("
                + ",".join(ch._to_newick(lengths, precision) for ch in self.children)
                + ")"
            )

        length_str = ""
        if lengths and self.length is not None and math.isfinite(self.length):
            length_str = ":" + _format_length(float(self.length), precision)

        return f"{child_str}{_format_name(self.name or '')}{meta}{length_str}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "length": self.length,
            "values": dict(self.values),
            "children": [child.to_dict() for child in self.children],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=4)
