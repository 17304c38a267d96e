"""Sheet names and cell references."""

from dataclasses import dataclass

FORBIDDEN_CHARS = frozenset("\\/?*[]:")
DEFAULT_MAX_LEN = 31


def sanitize(text: str) -> str:
    """Replace characters hosts reject in sheet names with '-'."""
    return "".join("-" if ch in FORBIDDEN_CHARS else ch for ch in text)


def derive_name(
    left: str,
    right: str,
    max_len: int = DEFAULT_MAX_LEN,
    separator: str = "-",
) -> str:
    """
    Build "left-right" within max_len characters.

    The right part is kept whole and the left part is shortened. Only when
    right alone does not fit is it cut, and it then makes up the whole name.

    Args:
        left: Prefix that may be truncated (usually the instance name)
        right: Suffix that is kept intact (report kind, asset name)
        max_len: Maximum name length
        separator: Joiner between the parts

    Returns:
        Sanitized name of at most max_len characters
    """
    left = sanitize(left or "")
    right = sanitize(right or "")
    separator = sanitize(separator)

    if not right:
        return left[:max_len]
    if not left or len(right) + len(separator) >= max_len:
        return right[:max_len]

    room = max_len - len(separator) - len(right)
    return f"{left[:room]}{separator}{right}"


def column_letter(index: int) -> str:
    """Column letters for a 0-based index: 0 -> A, 25 -> Z, 26 -> AA."""
    if index < 0:
        raise ValueError(f"column index must be >= 0, got {index}")
    letters = ""
    n = index + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def cell_ref(row: int, col: int) -> str:
    """A1-style reference for 0-based row and column."""
    return f"{column_letter(col)}{row + 1}"


def range_ref(row: int, col: int, row_span: int, col_span: int) -> str:
    """A1:B2-style reference for a 0-based block."""
    end = cell_ref(row + row_span - 1, col + col_span - 1)
    return f"{cell_ref(row, col)}:{end}"


@dataclass(frozen=True)
class CellRange:
    """A 0-based rectangular block of cells."""

    row_start: int
    col_start: int
    row_span: int
    col_span: int

    @property
    def row_end(self) -> int:
        """Exclusive end row."""
        return self.row_start + self.row_span

    @property
    def col_end(self) -> int:
        """Exclusive end column."""
        return self.col_start + self.col_span

    @property
    def ref(self) -> str:
        return range_ref(self.row_start, self.col_start, self.row_span, self.col_span)
