"""Loading and validating discrete character matrices."""

import logging
from pathlib import Path
from typing import Optional

import pandas as pd
from Bio import AlignIO
from Bio.Align import MultipleSeqAlignment
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from phyloroot.exceptions import CharacterMatrixError

logger = logging.getLogger(__name__)

# Character replacement mapping for taxon ids (Newick compatibility)
ILLEGAL_ID_CHARACTERS = {
    ",": "_",
    ";": "_",
    "(": "_",
    ")": "_",
    " ": "_",
    "'": "_",
    ":": "_",
    "[": "_",
    "]": "_",
}

# Alignment formats tried in turn for non-tabular files
SUPPORTED_ALIGNMENT_FORMATS = [
    "phylip-relaxed",
    "phylip",
    "nexus",
    "fasta",
    "clustal",
]

TABULAR_SEPARATORS = {".csv": ",", ".tsv": "\t", ".tab": "\t"}

MISSING_CHARACTER = "?"


def read_table(
    file_path: Path | str, sep: str = ",", transpose: bool = False
) -> MultipleSeqAlignment:
    """
    Read a character table with one taxon per row.

    The first column holds taxon names and every further column one
    character. With ``transpose=True`` the table is read with taxa as columns
    instead. Empty cells become ``?``.

    Raises:
        CharacterMatrixError: If a cell holds more than one character
    """
    frame = pd.read_csv(file_path, sep=sep, index_col=0, dtype=str)
    if transpose:
        frame = frame.T
    frame = frame.fillna(MISSING_CHARACTER).apply(lambda column: column.str.strip())

    records = []
    for taxon, row in frame.iterrows():
        cells = row.tolist()
        bad = [cell for cell in cells if len(cell) != 1]
        if bad:
            raise CharacterMatrixError(
                f"Taxon '{taxon}' has cells that are not single characters: {bad[:5]}"
            )
        records.append(SeqRecord(Seq("".join(cells)), id=str(taxon), description=""))

    return MultipleSeqAlignment(records)


def load_alignment(
    file_path: Path | str,
    format_hint: Optional[str] = None,
) -> tuple[MultipleSeqAlignment, str]:
    """
    Load an alignment file and auto-detect its format.

    Args:
        file_path: Path to the alignment file.
        format_hint: Optional Biopython format name to skip auto-detection.

    Returns:
        Tuple of (alignment object, detected format string).

    Raises:
        CharacterMatrixError: If the file cannot be parsed in any supported format.
    """
    if format_hint:
        try:
            return AlignIO.read(file_path, format_hint), format_hint
        except ValueError as e:
            raise CharacterMatrixError(
                f"Unable to parse {file_path} as {format_hint}: {e}"
            ) from e

    for seq_format in SUPPORTED_ALIGNMENT_FORMATS:
        try:
            alignment = AlignIO.read(file_path, seq_format)
        except Exception as e:
            logger.debug("%s is not %s: %s", file_path, seq_format, e)
            continue
        return alignment, seq_format

    raise CharacterMatrixError(
        f"Unable to parse alignment file {file_path}. "
        f"Tried formats: {SUPPORTED_ALIGNMENT_FORMATS}"
    )


def sanitize_taxon_name(
    name: str, char_replacements: dict[str, str] = ILLEGAL_ID_CHARACTERS
) -> str:
    """Replace characters that are illegal in Newick labels."""
    return name.translate(str.maketrans(char_replacements))


def sanitize_sequence_ids(
    alignment: MultipleSeqAlignment,
    char_replacements: dict[str, str] = ILLEGAL_ID_CHARACTERS,
) -> None:
    """
    Replace characters that are illegal in Newick labels (in-place modification).

    Names given elsewhere for the same taxa (an outgroup, say) must go through
    ``sanitize_taxon_name`` to match.
    """
    for seq in alignment:
        seq.id = sanitize_taxon_name(seq.id, char_replacements)


def validate_matrix(alignment: MultipleSeqAlignment) -> None:
    """
    Check that the matrix is usable for tree search.

    Raises:
        CharacterMatrixError: For fewer than three taxa, no characters,
            rows of different lengths or duplicate taxon ids
    """
    if len(alignment) < 3:
        raise CharacterMatrixError(
            f"At least three taxa are needed, got {len(alignment)}"
        )
    lengths = {len(record.seq) for record in alignment}
    if len(lengths) != 1:
        raise CharacterMatrixError(f"Rows have different lengths: {sorted(lengths)}")
    if lengths == {0}:
        raise CharacterMatrixError("Matrix has no characters")

    seen: set[str] = set()
    duplicates = []
    for record in alignment:
        if record.id in seen:
            duplicates.append(record.id)
        seen.add(record.id)
    if duplicates:
        raise CharacterMatrixError(f"Duplicate taxa: {', '.join(duplicates)}")


def load_matrix(
    file_path: Path | str,
    format_hint: Optional[str] = None,
    transpose: bool = False,
) -> MultipleSeqAlignment:
    """
    Load a discrete character matrix from a table or an alignment file.

    ``.csv``/``.tsv`` files (or ``format_hint="csv"``/``"tsv"``) are read as
    tables, anything else through Biopython's AlignIO. Taxon ids are
    sanitised for Newick output and the result is validated.
    """
    path = Path(file_path)
    if not path.exists():
        raise CharacterMatrixError(f"Matrix file not found: {path}")

    if format_hint in ("csv", "tsv"):
        sep = "," if format_hint == "csv" else "\t"
        alignment, detected = read_table(path, sep=sep, transpose=transpose), format_hint
    elif format_hint is None and path.suffix.lower() in TABULAR_SEPARATORS:
        sep = TABULAR_SEPARATORS[path.suffix.lower()]
        alignment, detected = read_table(path, sep=sep, transpose=transpose), "table"
    else:
        alignment, detected = load_alignment(path, format_hint)

    sanitize_sequence_ids(alignment)
    validate_matrix(alignment)
    logger.info(
        "Loaded %d taxa x %d characters from %s (%s)",
        len(alignment),
        alignment.get_alignment_length(),
        path,
        detected,
    )
    return alignment
