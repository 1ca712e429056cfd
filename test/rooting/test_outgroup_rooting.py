import pytest

from phyloroot.exceptions import OutgroupError
from phyloroot.parser.newick_parser import parse_newick
from phyloroot.rooting.core_rooting import pretty_root, root_with_outgroup


def leaf_sets(node):
    return [set(child.get_current_order()) for child in node.children]


def child_with_leaves(node, names):
    for child in node.children:
        if set(child.get_current_order()) == set(names):
            return child
    raise AssertionError(f"No child with leaves {names}")


def test_root_on_single_leaf():
    tree = parse_newick("((A:1,B:1):0.5,(C:1,D:1):0.5);")

    root = root_with_outgroup(tree, "A")

    assert root.parent is None
    assert leaf_sets(root) == [{"A"}, {"B", "C", "D"}]
    a, ingroup = root.children
    assert a.length == 1.0
    assert ingroup.length == 0.0
    # The old bifurcating root is spliced out and its two edges joined
    cd = child_with_leaves(ingroup, ["C", "D"])
    assert cd.length == 1.0
    assert root.total_length() == pytest.approx(5.0)


def test_pretty_root_splits_root_edge():
    tree = parse_newick("((A:1,B:1):0.5,(C:1,D:1):0.5);")
    root = pretty_root(tree, "A")
    assert [child.length for child in root.children] == [0.5, 0.5]
    assert root.name == ""
    assert root.total_length() == pytest.approx(5.0)


def test_support_labels_follow_their_edges():
    tree = parse_newick("(((A:1,B:1)90:1,C:1)80:1,D:1,E:1);")
    splits_before = tree.to_splits(unrooted=True)

    root = root_with_outgroup(tree, "A")

    ingroup = child_with_leaves(root, ["B", "C", "D", "E"])
    cde = child_with_leaves(ingroup, ["C", "D", "E"])
    de = child_with_leaves(cde, ["D", "E"])
    assert cde.name == "90"
    assert de.name == "80"
    assert cde.length == 1.0
    assert de.length == 1.0
    assert root.to_splits(unrooted=True) == splits_before


def test_multi_taxon_outgroup_straddling_root():
    tree = parse_newick("((A:1,B:1):1,(C:1,D:1):1);")

    root = root_with_outgroup(tree, ["B", "C", "D"])

    assert sorted(map(sorted, leaf_sets(root))) == [["A"], ["B", "C", "D"]]
    a = child_with_leaves(root, ["A"])
    assert a.is_leaf()
    assert a.name == "A"
    assert root.total_length() == pytest.approx(6.0)
    assert sorted(root.get_current_order()) == ["A", "B", "C", "D"]


def test_outgroup_clade_below_root():
    tree = parse_newick("((A:1,B:1)70:0.5,(C:1,D:1)80:0.5,E:1);")

    root = pretty_root(tree, "E")

    e = child_with_leaves(root, ["E"])
    rest = child_with_leaves(root, ["A", "B", "C", "D"])
    assert e.length == 0.5
    assert rest.length == 0.5
    assert child_with_leaves(rest, ["A", "B"]).name == "70"
    assert child_with_leaves(rest, ["C", "D"]).name == "80"


def test_already_rooted_on_outgroup():
    tree = parse_newick("((A,B):1,O:2);")

    root = root_with_outgroup(tree, "O")
    assert child_with_leaves(root, ["O"]).length == 2.0
    assert child_with_leaves(root, ["A", "B"]).length == 1.0

    root = pretty_root(root, "O")
    assert [child.length for child in root.children] == [1.5, 1.5]
    assert child_with_leaves(root, ["A", "B"]).length == 1.5


def test_pretty_root_is_idempotent():
    tree = parse_newick("((A:1,B:2)60:3,(C:1,(D:2,O:4)75:1)85:2);")
    once = pretty_root(tree, "O").to_newick(precision=17)
    twice = pretty_root(parse_newick(once), "O").to_newick(precision=17)
    assert twice == once


def test_accepts_any_node_of_the_tree():
    tree = parse_newick("((A:1,B:1):1,(C:1,D:1):1);")
    root = pretty_root(tree.find_leaf("C"), "D")
    assert leaf_sets(root)[0] == {"D"}


def test_unknown_outgroup_raises():
    tree = parse_newick("((A,B),(C,D));")
    with pytest.raises(OutgroupError, match="not found"):
        root_with_outgroup(tree, "Z")


def test_empty_outgroup_raises():
    tree = parse_newick("((A,B),(C,D));")
    with pytest.raises(OutgroupError):
        root_with_outgroup(tree, [])


def test_outgroup_with_every_taxon_raises():
    tree = parse_newick("((A,B),(C,D));")
    with pytest.raises(OutgroupError, match="every taxon"):
        root_with_outgroup(tree, ["A", "B", "C", "D"])


def test_non_monophyletic_outgroup_raises():
    tree = parse_newick("((A,B),(C,D));")
    with pytest.raises(OutgroupError, match="monophyletic"):
        root_with_outgroup(tree, ["A", "C"])
