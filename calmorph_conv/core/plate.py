"""
Plate geometry and microscope scan-path indexing.

Two indices address a well and they must never be mixed up:

- grid index: row-major position (row * cols + col), used for the plate
  table and genotype occurrence ranks
- scan ordinal: position in the microscope's physical acquisition order,
  used only to locate input frames on disk
"""
import string
from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

from .errors import UnsupportedPlateSize


# well count -> (rows, cols)
PLATE_SIZES = {
    96: (8, 12),
    384: (16, 24),
}

ROW_NAMES = string.ascii_uppercase


@dataclass(frozen=True)
class PlateLayout:
    rows: int
    cols: int

    @property
    def well_count(self) -> int:
        return self.rows * self.cols

    def wells(self) -> Iterator[Tuple[int, int]]:
        """Iterate (row, col) in row-major order"""
        for row in range(self.rows):
            for col in range(self.cols):
                yield row, col

    def grid_index(self, row: int, col: int) -> int:
        return grid_index(row, col, self.cols)

    def scan_ordinal(self, row: int, col: int) -> int:
        return scan_ordinal(row, col, self.rows, self.cols)

    def scan_map(self) -> np.ndarray:
        return scan_ordinal_grid(self.rows, self.cols)


def plate_layout(well_count: int) -> PlateLayout:
    """
    Convert a well count into a plate layout.

    Args:
        well_count: Number of wells on the plate (96 or 384)

    Returns:
        PlateLayout with rows and columns

    Raises:
        UnsupportedPlateSize: For any other well count
    """
    try:
        rows, cols = PLATE_SIZES[int(well_count)]
    except (KeyError, TypeError, ValueError):
        supported = ' or '.join(str(n) for n in PLATE_SIZES)
        raise UnsupportedPlateSize(
            f"Unknown number of wells {well_count!r}. Expecting {supported}."
        ) from None
    return PlateLayout(rows=rows, cols=cols)


def grid_index(row: int, col: int, cols: int) -> int:
    """Row-major index of a well"""
    return row * cols + col


def well_name(row: int, col: int) -> str:
    """Human-readable well name, e.g. (0, 0) -> 'A1'"""
    return f"{ROW_NAMES[row]}{col + 1}"


def scan_ordinal(row: int, col: int, rows: int, cols: int) -> int:
    """
    Number of wells the microscope visits before (row, col).

    The microscope images the entire first column top to bottom, then
    snakes through the remaining columns row by row, starting at the
    bottom row. Rows are assumed to come in pairs so the bottom row
    (odd, 0-indexed) is scanned left to right and even rows right to left.
    """
    if not (0 <= row < rows and 0 <= col < cols):
        raise ValueError(f"Well ({row}, {col}) outside {rows}x{cols} plate")

    if col == 0:
        return row

    ordinal = rows + (rows - row - 1) * (cols - 1)
    if row % 2 == 0:
        ordinal += cols - col - 1
    else:
        ordinal += col - 1
    return ordinal


def scan_ordinal_grid(rows: int, cols: int) -> np.ndarray:
    """Scan ordinal for every well as a (rows, cols) array"""
    row, col = np.indices((rows, cols))
    snake = rows + (rows - row - 1) * (cols - 1)
    snake += np.where(row % 2 == 0, cols - col - 1, col - 1)
    return np.where(col == 0, row, snake)
