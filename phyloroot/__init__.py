"""Outgroup rooting and root-edge rebalancing for phylogenetic trees."""

from phyloroot.exceptions import (
    CharacterMatrixError,
    InvalidTreeError,
    NewickParseError,
    OutgroupError,
    PhyloRootError,
)
from phyloroot.parser import parse_newick
from phyloroot.tree import Node

__all__ = [
    "Node",
    "parse_newick",
    "rebalance_root",
    "rebalance_trees",
    "root_with_outgroup",
    "pretty_root",
    "PhyloRootError",
    "InvalidTreeError",
    "OutgroupError",
    "NewickParseError",
    "CharacterMatrixError",
    "AnalysisConfig",
    "run_analysis",
]


def __getattr__(name):
    if name in {"rebalance_root", "rebalance_trees", "root_with_outgroup", "pretty_root"}:
        from phyloroot import rooting

        return getattr(rooting, name)
    if name in {"AnalysisConfig", "run_analysis"}:
        from phyloroot.config import AnalysisConfig
        from phyloroot.pipeline import run_analysis

        return locals()[name]
    raise AttributeError(name)
