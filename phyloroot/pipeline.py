"""
End-to-end rooting analysis of a discrete character matrix.

1. Load the matrix.
2. Run a seeded parsimony search and keep all equally scored trees.
3. Root every tree on the outgroup and rebalance its root edges.
4. Bootstrap the matrix and put support values on the first tree.
5. Write the trees (Newick, JSON) and optionally a figure.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from phyloroot.config import AnalysisConfig
from phyloroot.exceptions import OutgroupError
from phyloroot.inference import bootstrap_support, parsimony_search
from phyloroot.io import write_json, write_newick
from phyloroot.matrix import load_matrix, sanitize_taxon_name
from phyloroot.plot import draw_tree
from phyloroot.rooting.core_rooting import root_with_outgroup
from phyloroot.rooting.rebalance import rebalance_root, rebalance_trees

PARSIMONY_TREES_FILE = "parsimony_trees.newick"
SUPPORT_TREE_FILE = "support_tree.newick"
SUPPORT_JSON_FILE = "support_tree.json"


@dataclass
class AnalysisResult:
    """Result from running the rooting analysis."""

    tree_file_path: Path
    """Newick file holding every rooted, equally scored tree."""

    n_taxa: int
    n_characters: int

    parsimony_score: int
    """Score shared by all trees in ``tree_file_path``."""

    n_trees: int = 0

    support_tree_path: Optional[Path] = None
    support_json_path: Optional[Path] = None
    figure_path: Optional[Path] = None

    start_scores: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "tree_file_path": str(self.tree_file_path),
            "n_taxa": self.n_taxa,
            "n_characters": self.n_characters,
            "parsimony_score": self.parsimony_score,
            "n_trees": self.n_trees,
            "support_tree_path": str(self.support_tree_path)
            if self.support_tree_path
            else None,
            "support_json_path": str(self.support_json_path)
            if self.support_json_path
            else None,
            "figure_path": str(self.figure_path) if self.figure_path else None,
            "start_scores": self.start_scores,
        }


def run_analysis(
    matrix_path: Union[str, Path],
    output_directory: Union[str, Path],
    config: AnalysisConfig,
    format_hint: Optional[str] = None,
    transpose: bool = False,
) -> AnalysisResult:
    """
    Run the full analysis and write its outputs into ``output_directory``.

    Raises:
        CharacterMatrixError: If the matrix cannot be loaded
        OutgroupError: If an outgroup taxon is not in the matrix
    """
    logger = logging.getLogger(config.logger_name)
    output_dir = Path(output_directory)
    output_dir.mkdir(parents=True, exist_ok=True)

    alignment = load_matrix(matrix_path, format_hint=format_hint, transpose=transpose)
    taxa = {record.id for record in alignment}
    outgroup = [sanitize_taxon_name(name) for name in config.outgroup]
    missing = [name for name in outgroup if name not in taxa]
    if missing:
        raise OutgroupError(f"Outgroup taxa not in matrix: {', '.join(missing)}")

    # One generator drives every random step of the run
    rng = np.random.default_rng(config.seed)
    logger.info("Starting analysis with seed %d", config.seed)

    search = parsimony_search(alignment, n_starts=config.n_starts, seed=rng)
    rooted = [root_with_outgroup(tree, outgroup) for tree in search.trees]
    rooted = rebalance_trees(rooted, max_workers=config.max_workers)
    tree_file = write_newick(rooted, output_dir / PARSIMONY_TREES_FILE)

    result = AnalysisResult(
        tree_file_path=tree_file,
        n_taxa=len(alignment),
        n_characters=alignment.get_alignment_length(),
        parsimony_score=search.score,
        n_trees=len(rooted),
        start_scores=search.scores,
    )

    if config.bootstrap_replicates > 0:
        support_tree = bootstrap_support(
            rooted[0].deep_copy(),
            alignment,
            replicates=config.bootstrap_replicates,
            seed=rng,
        )
        rebalance_root(support_tree)
        result.support_tree_path = write_newick(
            support_tree, output_dir / SUPPORT_TREE_FILE
        )
        result.support_json_path = write_json(
            support_tree, output_dir / SUPPORT_JSON_FILE
        )
        figure_tree = support_tree
    else:
        figure_tree = rooted[0]

    if config.plot_format:
        result.figure_path = draw_tree(
            figure_tree,
            output_dir / f"tree.{config.plot_format}",
            title=f"Parsimony score {search.score}",
        )

    logger.info(
        "Analysis finished: %d tree(s) written to %s", result.n_trees, tree_file
    )
    return result
