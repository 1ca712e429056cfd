import pytest

from phyloroot.parser.newick_parser import parse_newick
from phyloroot.rooting.core_rooting import (
    find_farthest_leaves,
    midpoint_root,
    midpoint_root_trees,
    path_between,
)


def leaf_depths(root):
    depths = {}
    stack = [(root, 0.0)]
    while stack:
        node, depth = stack.pop()
        if node.is_leaf():
            depths[node.name] = depth
        for child in node.children:
            stack.append((child, depth + (child.length or 0.0)))
    return depths


def test_find_farthest_leaves():
    tree = parse_newick("((A:1,B:1):1,(C:1,D:1):1);")
    leaf1, leaf2, distance = find_farthest_leaves(tree)
    assert distance == 4.0
    assert {leaf1.name, leaf2.name} in ({"A", "C"}, {"A", "D"}, {"B", "C"}, {"B", "D"})


def test_find_farthest_leaves_needs_two_leaves():
    with pytest.raises(ValueError):
        find_farthest_leaves(parse_newick("A;"))


def test_path_between():
    tree = parse_newick("((A:1,B:2):3,C:4);")
    a = tree.find_leaf("A")
    c = tree.find_leaf("C")
    path = path_between(a, c)
    assert [node.name for node, _ in path][0] == "A"
    assert path[-1][0] is c
    assert sum(weight for _, weight in path) == 8.0


def test_midpoint_inside_long_edge():
    tree = parse_newick("((A:2,B:2):2,C:6);")

    root = midpoint_root(tree)

    lengths = {
        tuple(sorted(child.get_current_order())): child.length
        for child in root.children
    }
    assert lengths == {("C",): 5.0, ("A", "B"): 3.0}
    depths = leaf_depths(root)
    assert depths["A"] == depths["C"] == 5.0


def test_midpoint_keeps_taxa_and_length():
    tree = parse_newick("(A:1,B:2,C:3,D:4);")
    total = tree.total_length()

    root = midpoint_root(tree)

    assert sorted(root.get_current_order()) == ["A", "B", "C", "D"]
    assert root.total_length() == pytest.approx(total)
    depths = leaf_depths(root)
    assert depths["C"] == pytest.approx(depths["D"])


def test_midpoint_root_trees_batch():
    trees = parse_newick("((A:2,B:2):2,C:6);\n(A:1,(B:1,C:7):1);", force_list=True)

    rooted = midpoint_root_trees(trees)

    assert len(rooted) == 2
    for original, result in zip(trees, rooted):
        assert sorted(result.get_current_order()) == sorted(original.get_current_order())
        assert result.total_length() == pytest.approx(original.total_length())
    depths = leaf_depths(rooted[0])
    assert depths["A"] == pytest.approx(depths["C"])


def test_midpoint_root_trees_empty():
    assert midpoint_root_trees([]) == []
