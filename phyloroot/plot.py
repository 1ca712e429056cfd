"""Rendering trees to image files with matplotlib."""

import logging
from pathlib import Path
from typing import Optional, Union

from Bio import Phylo
from matplotlib.figure import Figure

from phyloroot.convert import to_phylo
from phyloroot.tree import Node

logger = logging.getLogger(__name__)


def draw_tree(
    tree: Node,
    path: Union[str, Path],
    title: Optional[str] = None,
    width: float = 8.0,
    height: Optional[float] = None,
    dpi: int = 150,
) -> Path:
    """
    Draw a rectangular phylogram with support labels and save it.

    The output format follows the file suffix (png, svg, pdf, ...). The figure
    height grows with the number of leaves unless given.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    if height is None:
        height = max(3.0, 0.3 * len(tree.leaves))

    fig = Figure(figsize=(width, height))
    ax = fig.add_subplot(1, 1, 1)
    Phylo.draw(to_phylo(tree), axes=ax, do_show=False)
    if title:
        ax.set_title(title)
    fig.tight_layout()
    fig.savefig(out, dpi=dpi)
    logger.info("Saved tree figure to %s", out)
    return out
