#!/usr/bin/env python3
"""
Root phylogenetic trees inferred from a discrete character matrix.

Runs a seeded parsimony search, roots every equally scored tree on the
outgroup with an evenly split root edge, adds bootstrap support and writes
the trees as Newick and JSON.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from phyloroot.config import AnalysisConfig, Config
from phyloroot.exceptions import PhyloRootError
from phyloroot.logging_config import configure_logging
from phyloroot.pipeline import run_analysis

logger = logging.getLogger("phyloroot")


def setup_argument_parser() -> argparse.ArgumentParser:
    """
    Configure and return the argument parser.
    """
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-i",
        "--input",
        help="Path to the character matrix (csv/tsv table or phylip/nexus/fasta)",
        required=True,
        type=Path,
    )
    parser.add_argument(
        "-o",
        "--output-directory",
        help="Directory for the output trees and figure",
        required=True,
        type=Path,
    )
    parser.add_argument(
        "-g",
        "--outgroup",
        help="Outgroup taxon; repeat for a multi-taxon outgroup",
        required=True,
        action="append",
    )

    matrix_group = parser.add_argument_group("matrix options")
    matrix_group.add_argument(
        "--format",
        dest="format_hint",
        help="Input format (csv, tsv or a Biopython alignment format)",
    )
    matrix_group.add_argument(
        "--transpose",
        help="Tabular input has taxa as columns",
        action="store_true",
    )

    search_group = parser.add_argument_group("search options")
    search_group.add_argument(
        "--seed",
        help=f"Random seed (default: {Config.SEED})",
        default=Config.SEED,
        type=int,
    )
    search_group.add_argument(
        "--starts",
        help="Number of parsimony search starts (default: 10)",
        default=10,
        type=int,
    )
    search_group.add_argument(
        "-b",
        "--bootstrap",
        help="Bootstrap replicates, 0 to skip (default: 100)",
        default=100,
        type=int,
    )
    search_group.add_argument(
        "--workers",
        help=f"Worker threads for root rebalancing (default: {Config.WORKERS})",
        default=Config.WORKERS,
        type=int,
    )

    output_group = parser.add_argument_group("output options")
    output_group.add_argument(
        "--plot",
        help="Figure format (png, svg, pdf); 'none' to skip (default: png)",
        default="png",
    )
    output_group.add_argument(
        "--log-level",
        help=f"Console log level (default: {Config.LOG_LEVEL})",
        default=Config.LOG_LEVEL,
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = setup_argument_parser().parse_args(argv)

    try:
        configure_logging(level=args.log_level)
        config = AnalysisConfig(
            outgroup=args.outgroup,
            seed=args.seed,
            n_starts=args.starts,
            bootstrap_replicates=args.bootstrap,
            max_workers=args.workers,
            plot_format=None if args.plot.lower() == "none" else args.plot,
        )
        result = run_analysis(
            args.input,
            args.output_directory,
            config,
            format_hint=args.format_hint,
            transpose=args.transpose,
        )
    except (PhyloRootError, ValueError) as e:
        logger.error("Analysis failed: %s", e)
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
