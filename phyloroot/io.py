import json
import logging
from pathlib import Path
from typing import Any, Dict, IO, List, Optional, Sequence, Union

from phyloroot.parser.newick_parser import parse_newick
from phyloroot.tree import Node

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class NodeEncoder(json.JSONEncoder):
    def default(self, o: Any):
        if isinstance(o, Node):
            return o.to_dict()
        return super().default(o)


def dump_json(tree: Union[Node, Sequence[Node]], f: IO[str]) -> None:
    json.dump(tree if isinstance(tree, Node) else list(tree), f, cls=NodeEncoder)


def read_newick(path: PathLike, force_list: bool = False) -> Union[Node, List[Node]]:
    with open(path) as f:
        newick_string: str = f.read()

    tree: Union[Node, List[Node]] = parse_newick(newick_string, force_list=force_list)
    return tree


def write_newick(
    trees: Union[Node, Sequence[Node]], path: PathLike, precision: Optional[int] = None
) -> Path:
    """Write one or more trees, one Newick string per line."""
    tree_list = [trees] if isinstance(trees, Node) else list(trees)
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, mode="w") as f:
        for tree in tree_list:
            f.write(tree.to_newick(precision=precision) + "\n")
    logger.info("Wrote %d tree(s) to %s", len(tree_list), out)
    return out


def serialize_tree_list_to_json(tree_list: Sequence[Node]) -> List[Dict[str, Any]]:
    return [tree.to_dict() for tree in tree_list]


def write_json(tree: Union[Node, Sequence[Node]], path: PathLike) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, mode="w") as f:
        dump_json(tree, f)
    return out
