"""Column-width calculation for terminal tables."""

from __future__ import annotations


class TableCalculator:
    """Compute column widths from the widest cell in each column, plus padding.

    A positive ``max_width`` caps each column's content width at
    ``max_width - padding``.
    """

    def __init__(self, padding: int = 0, max_width: int = 0) -> None:
        self.padding = padding
        self.max_width = max_width
        self._cell_sizes_by_col: list[list[int]] = []

    def add_row_sizes(self, *sizes: int) -> None:
        """Register a row whose cells have the given visual widths."""
        while len(self._cell_sizes_by_col) < len(sizes):
            self._cell_sizes_by_col.append([])
        for column, size in zip(self._cell_sizes_by_col, sizes):
            column.append(size)

    def column_widths(self) -> list[int]:
        """Return the width of each column registered so far."""
        limit = self.max_width - self.padding
        widths = []
        for sizes in self._cell_sizes_by_col:
            width = max(sizes, default=0)
            if limit > 0 and width > limit:
                width = limit
            widths.append(width + self.padding)
        return widths