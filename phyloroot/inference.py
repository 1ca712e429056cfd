"""
Seeded tree inference through external procedures.

Tree search and scoring are delegated to Biopython (parsimony) and to the
FastTree binary (maximum likelihood). This module only prepares their inputs,
drives them with an explicit random seed and converts the results into
``Node`` trees.
"""

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

import numpy as np
from Bio.Align import MultipleSeqAlignment
from Bio.Phylo.BaseTree import Tree
from Bio.Phylo.TreeConstruction import (
    DistanceCalculator,
    DistanceTreeConstructor,
    NNITreeSearcher,
    ParsimonyScorer,
)
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from phyloroot.convert import format_support, from_phylo, to_phylo
from phyloroot.exceptions import CharacterMatrixError
from phyloroot.parser.newick_parser import parse_newick
from phyloroot.tree import Node

logger = logging.getLogger(__name__)

SeedLike = Union[int, np.random.Generator, None]


@dataclass
class SearchResult:
    """Equally scored trees returned by a parsimony search."""

    trees: List[Node]
    """Distinct topologies tied at the best score."""

    score: int
    """Parsimony score (number of changes) of every tree in ``trees``."""

    scores: List[int] = field(default_factory=list)
    """Score reached from each starting tree, in search order."""


def _rng(seed: SeedLike) -> np.random.Generator:
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def resample_columns(
    alignment: MultipleSeqAlignment, rng: np.random.Generator
) -> MultipleSeqAlignment:
    """Return a bootstrap replicate: columns drawn with replacement."""
    n_chars = alignment.get_alignment_length()
    columns = rng.integers(0, n_chars, size=n_chars)
    records = []
    for record in alignment:
        sequence = str(record.seq)
        records.append(
            SeqRecord(
                Seq("".join(sequence[i] for i in columns)),
                id=record.id,
                description="",
            )
        )
    return MultipleSeqAlignment(records)


def build_starting_tree(alignment: MultipleSeqAlignment, method: str = "upgma") -> Tree:
    """Distance tree (UPGMA or NJ) on identity distances, as a search start."""
    constructor = DistanceTreeConstructor(DistanceCalculator("identity"), method)
    return constructor.build_tree(alignment)


def parsimony_score(tree: Node, alignment: MultipleSeqAlignment) -> int:
    """Fitch parsimony score of ``tree`` for ``alignment``."""
    return int(ParsimonyScorer().get_score(to_phylo(tree), alignment))


def parsimony_search(
    alignment: MultipleSeqAlignment,
    n_starts: int = 10,
    seed: SeedLike = None,
) -> SearchResult:
    """
    Search for most parsimonious trees from several starting points.

    The first start is a UPGMA tree of the full matrix, the others UPGMA trees
    of column-resampled matrices drawn from ``seed``. Each start is improved by
    Biopython's NNI searcher on the full matrix. All distinct topologies
    reaching the best score are returned.

    Raises:
        CharacterMatrixError: If the matrix has fewer than four taxa
    """
    if len(alignment) < 4:
        raise CharacterMatrixError(
            f"Parsimony search needs at least four taxa, got {len(alignment)}"
        )
    if n_starts < 1:
        raise ValueError("n_starts must be at least 1")

    rng = _rng(seed)
    scorer = ParsimonyScorer()
    searcher = NNITreeSearcher(scorer)

    best_score: Optional[int] = None
    best_trees: List[Node] = []
    scores: List[int] = []

    for start in range(n_starts):
        source = alignment if start == 0 else resample_columns(alignment, rng)
        starting_tree = build_starting_tree(source)
        searched = searcher.search(starting_tree, alignment)
        score = int(scorer.get_score(searched, alignment))
        scores.append(score)
        candidate = from_phylo(searched)
        logger.debug("Start %d reached parsimony score %d", start, score)

        if best_score is None or score < best_score:
            best_score = score
            best_trees = [candidate]
        elif score == best_score and not any(
            candidate.same_topology(tree, unrooted=True) for tree in best_trees
        ):
            best_trees.append(candidate)

    for index, tree in enumerate(best_trees):
        tree.list_index = index

    logger.info(
        "Parsimony search: %d start(s), best score %d, %d equally scored tree(s)",
        n_starts,
        best_score,
        len(best_trees),
    )
    return SearchResult(trees=best_trees, score=int(best_score), scores=scores)


def _default_replicate_builder(alignment: MultipleSeqAlignment) -> Node:
    result = parsimony_search(alignment, n_starts=1)
    return result.trees[0]


def bootstrap_trees(
    alignment: MultipleSeqAlignment,
    replicates: int = 100,
    seed: SeedLike = None,
    builder: Optional[Callable[[MultipleSeqAlignment], Node]] = None,
) -> List[Node]:
    """
    Build one tree per bootstrap replicate of ``alignment``.

    ``builder`` turns a matrix into a tree; by default a single-start
    parsimony search.
    """
    rng = _rng(seed)
    build = builder or _default_replicate_builder
    trees = [build(resample_columns(alignment, rng)) for _ in range(replicates)]
    logger.info("Built %d bootstrap tree(s)", len(trees))
    return trees


def _bipartition(clade: frozenset, all_taxa: frozenset, anchor: str) -> frozenset:
    return all_taxa - clade if anchor in clade else clade


def annotate_support(tree: Node, replicate_trees: List[Node]) -> Node:
    """
    Label internal nodes with the percentage of replicates containing their split.

    Splits are compared unrooted, so replicates rooted anywhere count. The
    root itself is left alone; ``rebalance_root`` clears its label. A node
    whose split separates a single taxon (such as the ingroup next to a
    one-taxon outgroup) says nothing about the topology and is unlabelled.
    """
    if not replicate_trees:
        raise ValueError("No replicate trees given")

    all_taxa = frozenset(tree.get_current_order())
    anchor = min(all_taxa)
    counts = {}
    for replicate in replicate_trees:
        for split in replicate.to_splits(unrooted=True):
            counts[split] = counts.get(split, 0) + 1

    for node in tree.traverse():
        if node.parent is None or node.is_leaf():
            continue
        split = _bipartition(frozenset(node.get_current_order()), all_taxa, anchor)
        if len(split) < 2 or len(all_taxa - split) < 2:
            node.name = ""
            continue
        support = 100.0 * counts.get(split, 0) / len(replicate_trees)
        node.name = format_support(round(support))
    return tree


def bootstrap_support(
    tree: Node,
    alignment: MultipleSeqAlignment,
    replicates: int = 100,
    seed: SeedLike = None,
    builder: Optional[Callable[[MultipleSeqAlignment], Node]] = None,
) -> Node:
    """Bootstrap ``alignment`` and write the support values onto ``tree``."""
    trees = bootstrap_trees(alignment, replicates, seed=seed, builder=builder)
    return annotate_support(tree, trees)


def run_fasttree(
    alignment_file: Union[str, Path],
    seed: Optional[int] = None,
    nucleotide: bool = True,
    executable: str = "fasttree",
) -> Node:
    """
    Run FastTree on an alignment file and return the maximum-likelihood tree.

    FastTree is forced to a single thread so several runs can share a machine.

    Raises:
        RuntimeError: If FastTree is not installed or fails
    """
    env = os.environ.copy()
    env["OMP_NUM_THREADS"] = "1"

    cmd = [executable, "-quiet"]
    if nucleotide:
        cmd.append("-nt")
    if seed is not None:
        cmd.extend(["-seed", str(seed)])
    cmd.append(str(alignment_file))

    try:
        result = subprocess.run(
            cmd, check=True, capture_output=True, text=True, env=env
        )
    except FileNotFoundError:
        raise RuntimeError(f"{executable} command not found. Please install FastTree.")
    except subprocess.CalledProcessError as e:
        raise RuntimeError(f"FastTree failed on {alignment_file}: {e.stderr}")

    logger.info("FastTree finished on %s", alignment_file)
    return parse_newick(result.stdout)  # type: ignore[return-value]
