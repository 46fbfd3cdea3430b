# csv_loader.py
"""
Tolerant loader for the semicolon-delimited CSV exports sent by
lost-property offices.

Exports come in three shapes, tried in this order until one yields records:

1. ``header``        - first row is the header
2. ``skip_preamble`` - a title line precedes the real header
3. ``headerless``    - plain matrix, columns are named col0, col1, ...

Ragged rows are padded with empty strings (or truncated to the header)
with pandas, every value is trimmed, and a leading ordinal column
("Lp.") is removed.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import pandas as pd

from lostfound.errors import NoRecordsError
from lostfound.schema import source_row_text

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = ";"

# "Lp." = liczba porządkowa (ordinal number)
ORDINAL_COLUMN_PREFIX = "lp"


# ============================================
# DATA STRUCTURES
# ============================================

@dataclass
class CsvTable:
    """Header plus rows, every row aligned to the header"""
    header: List[str]
    rows: List[List[str]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=self.header, dtype=object)

    def to_csv_text(self, delimiter: str = DEFAULT_DELIMITER) -> str:
        """Re-serialize the table (header + rows) for the model prompt"""
        return self.to_frame().to_csv(sep=delimiter, index=False)

    def source_row(self, position: int) -> str:
        """Comma-joined non-empty cells of the row at 0-based ``position``"""
        return source_row_text(self.rows[position])


# ============================================
# PARSE STRATEGIES
# ============================================

def _read_matrix(text: str, delimiter: str) -> List[List[str]]:
    """Strict tokenizing for header detection, skipping blank lines"""
    reader = csv.reader(io.StringIO(text), delimiter=delimiter, strict=True)
    matrix = []
    for row in reader:
        if not row or all(cell.strip() == "" for cell in row):
            continue
        matrix.append(row)
    return matrix


def _shape(rows: List[List[str]], width: int) -> List[List[str]]:
    """Pad short rows with "" and cut long ones to ``width`` columns"""
    if not rows:
        return []
    frame = pd.DataFrame(rows, dtype=object).reindex(columns=range(width))
    frame = frame.fillna("").astype(str)
    return frame.values.tolist()


def _parse_with_header(text: str, delimiter: str) -> Optional[Tuple[List[str], List[List[str]]]]:
    matrix = _read_matrix(text, delimiter)
    if len(matrix) < 2:
        return None
    header = matrix[0]
    return header, _shape(matrix[1:], len(header))


def _parse_skipping_preamble(text: str, delimiter: str) -> Optional[Tuple[List[str], List[List[str]]]]:
    remainder = "\n".join(text.split("\n")[1:])
    return _parse_with_header(remainder, delimiter)


def _read_ragged_frame(text: str, delimiter: str) -> pd.DataFrame:
    """Lenient pandas read of rows with differing widths, every cell as text"""
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        return pd.DataFrame()
    # upper bound, quoted delimiters only add empty trailing columns
    width = max(line.count(delimiter) for line in lines) + 1
    frame = pd.read_csv(
        io.StringIO("\n".join(lines)),
        sep=delimiter,
        header=None,
        names=list(range(width)),
        index_col=False,
        dtype=str,
        keep_default_na=False,
        engine="python",
    )
    frame = frame.fillna("")
    frame = frame[~frame.apply(lambda column: column.str.strip() == "").all(axis=1)]
    used = [i for i in frame.columns if (frame[i] != "").any()]
    return frame.iloc[:, : used[-1] + 1] if used else pd.DataFrame()


def _parse_headerless(text: str, delimiter: str) -> Optional[Tuple[List[str], List[List[str]]]]:
    frame = _read_ragged_frame(text, delimiter)
    if frame.empty:
        return None
    header = [f"col{i}" for i in range(frame.shape[1])]
    return header, frame.astype(str).values.tolist()


ParseStrategy = Callable[[str, str], Optional[Tuple[List[str], List[List[str]]]]]

PARSE_STRATEGIES: Tuple[Tuple[str, ParseStrategy], ...] = (
    ("header", _parse_with_header),
    ("skip_preamble", _parse_skipping_preamble),
    ("headerless", _parse_headerless),
)


# ============================================
# HEADER CLEANUP
# ============================================

def _unique_header(header: List[str]) -> List[str]:
    """Name blank columns colN and suffix duplicates with .1, .2, ..."""
    seen = {}
    result = []
    for position, name in enumerate(header):
        name = name or f"col{position}"
        if name in seen:
            seen[name] += 1
            candidate = f"{name}.{seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name}.{seen[name]}"
            seen[candidate] = 0
            name = candidate
        else:
            seen[name] = 0
        result.append(name)
    return result


def _is_ordinal_column(name: str) -> bool:
    return name.strip().lower().startswith(ORDINAL_COLUMN_PREFIX)


# ============================================
# MAIN LOADING FUNCTION
# ============================================

def load_csv(text: str, delimiter: str = DEFAULT_DELIMITER) -> CsvTable:
    """
    Parse raw CSV text into a rectangular CsvTable.

    Args:
        text: Raw file content
        delimiter: Field separator (semicolon for office exports)

    Returns:
        CsvTable with trimmed header and cells

    Raises:
        NoRecordsError: if no strategy extracts at least one record
    """
    text = (text or "").lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")

    parsed = None
    for name, strategy in PARSE_STRATEGIES:
        try:
            parsed = strategy(text, delimiter)
        except (csv.Error, pd.errors.ParserError) as exc:
            logger.debug("CSV strategy '%s' failed: %s", name, exc)
            parsed = None
        if parsed and parsed[1]:
            logger.info("CSV parsed with strategy '%s' (%d rows)", name, len(parsed[1]))
            break
        parsed = None

    if parsed is None:
        raise NoRecordsError()

    header, rows = parsed
    header = [str(h).strip() for h in header]
    rows = [[str(cell).strip() for cell in row] for row in rows]

    if header and _is_ordinal_column(header[0]):
        logger.debug("Dropping ordinal column '%s'", header[0])
        header = header[1:]
        rows = [row[1:] for row in rows]

    if not header:
        raise NoRecordsError()

    return CsvTable(header=_unique_header(header), rows=rows)
