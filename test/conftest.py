import logging
import random

import pytest

from phyloroot.tree import Node


def pytest_configure(config):
    """Set up test environment before tests run."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_random_tree(seed: int, n_leaves: int = 8, root_degree: int = 2) -> Node:
    """
    Random tree with ``root_degree`` root children and random branch lengths.

    Leaves are called T0..T{n-1}; internal nodes carry numeric labels.
    """
    rng = random.Random(seed)
    nodes = [
        Node(name=f"T{i}", length=round(rng.uniform(0.01, 2.0), 4))
        for i in range(n_leaves)
    ]
    while len(nodes) > root_degree:
        a = nodes.pop(rng.randrange(len(nodes)))
        b = nodes.pop(rng.randrange(len(nodes)))
        parent = Node(
            children=[a, b],
            name=str(rng.randint(50, 100)),
            length=round(rng.uniform(0.01, 2.0), 4),
        )
        nodes.append(parent)
    return Node(children=nodes, name=str(rng.randint(50, 100)))


@pytest.fixture
def random_tree_factory():
    return build_random_tree


# Six taxa, ten binary characters. O is the outgroup; {A,B} and {C,D} are
# supported by shared characters and B, D, E carry one autapomorphy each.
MATRIX_ROWS = {
    "O": "0000000000",
    "A": "1111000000",
    "B": "1111000001",
    "C": "1100111000",
    "D": "1100111010",
    "E": "1100000100",
}


@pytest.fixture
def matrix_rows():
    return dict(MATRIX_ROWS)


@pytest.fixture
def csv_matrix(tmp_path):
    n_chars = len(MATRIX_ROWS["O"])
    lines = ["taxon," + ",".join(f"c{i}" for i in range(n_chars))]
    for taxon, states in MATRIX_ROWS.items():
        lines.append(taxon + "," + ",".join(states))
    path = tmp_path / "matrix.csv"
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def phylip_matrix(tmp_path):
    n_chars = len(MATRIX_ROWS["O"])
    lines = [f"{len(MATRIX_ROWS)} {n_chars}"]
    lines += [f"{taxon} {states}" for taxon, states in MATRIX_ROWS.items()]
    path = tmp_path / "matrix.phy"
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def alignment(csv_matrix):
    from phyloroot.matrix import load_matrix

    return load_matrix(csv_matrix)
