import ast
import logging
import math

from typing import Optional, Union, List, Dict, Tuple, Any
from phyloroot.exceptions import NewickParseError
from phyloroot.tree import Node

logger = logging.getLogger(__name__)

# Tokens accepted after a colon that mean "length unknown"
_NULL_LENGTHS = {"", "null", "NULL", "none", "None"}


# ===================================================================
# 1. METADATA PROCESSING FUNCTIONS
# ===================================================================


def split_token(token: str) -> Tuple[str, Any]:
    """
    Split a metadata token into name and value parts.
    Handles both "name=value" and "name:value" formats.

    Args:
        token: A string token in format "name=value" or "name:value"

    Returns:
        Tuple of (name, parsed_value) where parsed_value could be string, int, or float
    """
    if "=" in token:
        name, value = token.split("=", 1)
    elif ":" in token:
        name, value = token.split(":", 1)
    else:
        return token, True

    try:
        parsed_value = ast.literal_eval(value)
    except (ValueError, SyntaxError):
        parsed_value = value

    return name, parsed_value


def parse_metadata(data: str) -> Dict[str, Any]:
    """
    Parse the content of a ``[...]`` comment into a dictionary.

    Handles NHX comments (``&&NHX:key=value:key=value``) and generic
    ``key=value`` lists separated by commas or spaces.
    """
    data = data.strip()
    if data.startswith("&&NHX:"):
        tokens = data[6:].split(":")
    else:
        tokens = data.replace(";", ",").replace(" ", ",").split(",")

    metadata: Dict[str, Any] = {}
    for token in tokens:
        if token.strip():
            name, value = split_token(token.strip())
            metadata[name] = value
    return metadata


def flush_meta_buffer(meta_buffer: List[str], stack: List[Node]) -> None:
    """
    Process the metadata buffer and merge it into the current node's values.
    """
    metadata = parse_metadata("".join(meta_buffer))
    if metadata and stack:
        stack[-1].values.update(metadata)
    meta_buffer.clear()


# ===================================================================
# 2. BUFFER PROCESSING FUNCTIONS
# ===================================================================


def flush_character_buffer(buffer: List[str], stack: List[Node]) -> None:
    """
    Assign the buffered characters as the name of the current node.
    """
    if stack and buffer:
        stack[-1].name = "".join(buffer).strip()
    buffer.clear()


def flush_length_buffer(buffer: List[str], stack: List[Node]) -> None:
    """
    Parse the buffered characters as the branch length of the current node.

    Raises:
        NewickParseError: If the buffer holds neither a number nor a null token
    """
    buffer_value = "".join(buffer).strip()
    buffer.clear()
    if not stack:
        return

    if buffer_value in _NULL_LENGTHS:
        stack[-1].length = None
        return

    try:
        parsed_number = float(buffer_value)
    except ValueError:
        raise NewickParseError(f"Invalid branch length '{buffer_value}'")
    if math.isinf(parsed_number) or math.isnan(parsed_number):
        raise NewickParseError(f"Branch length must be finite, got '{buffer_value}'")
    stack[-1].length = parsed_number


def flush_buffer(buffer: List[str], stack: List[Node], mode: str) -> None:
    """
    Process the accumulated buffer based on the current parsing mode.
    """
    if mode == "character_reader":
        flush_character_buffer(buffer, stack)
    elif mode == "length_reader":
        flush_length_buffer(buffer, stack)


# ===================================================================
# 3. NODE STACK MANAGEMENT FUNCTIONS
# ===================================================================


def init_nodestack() -> List[Node]:
    """
    Initialize the node stack with the root node of a new tree.
    """
    return [Node(name="", length=None)]


def create_new_node(stack: List[Node], default_length: Optional[float]) -> List[Node]:
    """
    Create a new child of the node on top of the stack and push it.
    """
    parent = stack[-1]
    new_node = Node(length=default_length)
    parent.append_child(new_node)
    stack.append(new_node)
    return stack


def close_node(stack: List[Node]) -> List[Node]:
    """
    Close the current node by removing it from the stack.
    """
    stack.pop()
    return stack


# ===================================================================
# 4. CORE PARSING FUNCTION
# ===================================================================


def _parse_newick(tokens: str, default_length: Optional[float]) -> List[Node]:
    """
    Return the list of trees described by ``tokens``, character by character.

    The node on top of the stack is the one currently being described: an
    opening parenthesis pushes its first child, a comma replaces the top with
    a new sibling and a closing parenthesis pops back to the parent, whose
    label and length may follow.
    """
    trees: List[Node] = []
    buffer: List[str] = []
    meta_buffer: List[str] = []
    mode: str = "character_reader"
    node_stack: List[Node] = []
    in_quotes = False
    index = 0

    while index < len(tokens):
        char = tokens[index]
        index += 1

        if in_quotes:
            if char == "'":
                # '' inside a quoted label is an escaped quote
                if index < len(tokens) and tokens[index] == "'":
                    buffer.append("'")
                    index += 1
                else:
                    in_quotes = False
            else:
                buffer.append(char)
            continue

        if mode == "metadata_reader":
            if char == "]":
                flush_meta_buffer(meta_buffer, node_stack)
                mode = "character_reader"
            else:
                meta_buffer.append(char)
            continue

        if char.isspace():
            continue

        if not node_stack and char != ";":
            node_stack = init_nodestack()

        if char == "'" and mode == "character_reader":
            in_quotes = True

        elif char == "(":
            create_new_node(node_stack, default_length)
            mode = "character_reader"

        elif char == ")":
            flush_buffer(buffer, node_stack, mode)
            if len(node_stack) < 2:
                raise NewickParseError(
                    f"Unbalanced ')' at position {index - 1} in Newick string"
                )
            close_node(node_stack)
            mode = "character_reader"

        elif char == ",":
            flush_buffer(buffer, node_stack, mode)
            if len(node_stack) < 2:
                raise NewickParseError(
                    f"Unexpected ',' outside parentheses at position {index - 1}"
                )
            close_node(node_stack)
            create_new_node(node_stack, default_length)
            mode = "character_reader"

        elif char == ":":
            flush_buffer(buffer, node_stack, mode)
            mode = "length_reader"

        elif char == "[":
            flush_buffer(buffer, node_stack, mode)
            mode = "metadata_reader"

        elif char == ";":
            if not node_stack:
                continue
            flush_buffer(buffer, node_stack, mode)
            if len(node_stack) != 1:
                raise NewickParseError(
                    f"Unbalanced '(' in tree {len(trees)}: "
                    f"{len(node_stack) - 1} parenthesis left open"
                )
            trees.append(node_stack.pop())
            node_stack = []
            mode = "character_reader"

        else:
            buffer.append(char)

    if in_quotes:
        raise NewickParseError("Unterminated quoted label in Newick string")
    if mode == "metadata_reader":
        raise NewickParseError("Unterminated '[' comment in Newick string")

    # A trailing tree without ';' is accepted as long as it is balanced
    if node_stack:
        flush_buffer(buffer, node_stack, mode)
        if len(node_stack) != 1:
            raise NewickParseError(
                f"Unbalanced '(' in tree {len(trees)}: "
                f"{len(node_stack) - 1} parenthesis left open"
            )
        trees.append(node_stack.pop())

    return trees


# ===================================================================
# 5. PUBLIC API FUNCTIONS
# ===================================================================


def parse_newick(
    tokens: str,
    default_length: Optional[float] = None,
    force_list: bool = False,
) -> Union[Node, List[Node]]:
    """
    Parse a Newick string into a tree or list of trees.

    Args:
        tokens: Newick format string, one or more trees each ending in ';'
        default_length: Branch length for nodes written without one
        force_list: Always return a list even for single trees

    Returns:
        Single Node or list of Nodes representing parsed tree(s)

    Raises:
        NewickParseError: If the string is empty or malformed
    """
    trees: List[Node] = _parse_newick(tokens, default_length=default_length)
    if not trees:
        raise NewickParseError("No tree found in Newick string")

    for idx, tree in enumerate(trees):
        tree.list_index = idx
    logger.debug("Parsed %d tree(s) from Newick input", len(trees))

    if len(trees) == 1 and not force_list:
        return trees[0]
    return trees


def get_linear_order(tree: Node) -> List[str]:
    """
    Get the linear order of taxa (leaf names) from a tree.
    """
    return [leaf.name for leaf in tree.leaves if leaf.name]
