"""Grid layout: source size + density → square cells centred in the source."""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass

from shape_mosaic.errors import InvalidDimensionsError

Cell = tuple[int, int]


@dataclass(frozen=True)
class GridGeometry:
    """Uniform square grid placed inside a ``width x height`` source.

    Attributes:
        cols, rows: Cell counts, both >= 1.
        cell_size:  Side of one cell in source pixels.
        offset_x:   Left margin that centres the mosaic horizontally.
        offset_y:   Top margin that centres the mosaic vertically.
    """

    cols: int
    rows: int
    cell_size: float
    offset_x: float
    offset_y: float

    @property
    def cell_count(self) -> int:
        return self.cols * self.rows


def round_half_up(value: float) -> int:
    """Round like ``Math.round``: halves go towards +inf, not to even."""
    return math.floor(value + 0.5)


def compute_grid(width: int, height: int, base_density: int) -> GridGeometry:
    """Lay out the grid for a source of *width* x *height* pixels.

    The longer side gets *base_density* cells and the shorter side is scaled
    by the aspect ratio (minimum 1). The cell size is the tighter of the two
    fits, so the mosaic never exceeds the source; any slack is split evenly
    into margins.

    Raises:
        InvalidDimensionsError: for non-positive dimensions or density.
    """
    if width <= 0 or height <= 0:
        msg = f"Source has no area: {width}x{height}"
        raise InvalidDimensionsError(msg)
    if base_density < 1:
        msg = f"Grid density must be >= 1, got {base_density}"
        raise InvalidDimensionsError(msg)

    aspect = width / height
    if aspect >= 1:
        cols = base_density
        rows = round_half_up(base_density / aspect)
    else:
        rows = base_density
        cols = round_half_up(base_density * aspect)
    cols = max(1, cols)
    rows = max(1, rows)

    cell_size = min(width / cols, height / rows)
    return GridGeometry(
        cols=cols,
        rows=rows,
        cell_size=cell_size,
        offset_x=(width - cols * cell_size) / 2,
        offset_y=(height - rows * cell_size) / 2,
    )


def iter_cells(geometry: GridGeometry) -> Iterator[Cell]:
    """Yield ``(gx, gy)`` in row-major order."""
    for gy in range(geometry.rows):
        for gx in range(geometry.cols):
            yield gx, gy


def cell_bounds(geometry: GridGeometry, gx: int, gy: int) -> tuple[int, int, int, int]:
    """Integer source bounds ``(x0, y0, x1, y1)`` of a cell, end-exclusive.

    Recomputed from the float cell size for every cell so neighbours share
    their edge exactly.
    """
    size = geometry.cell_size
    return (
        math.floor(gx * size),
        math.floor(gy * size),
        math.floor((gx + 1) * size),
        math.floor((gy + 1) * size),
    )


def cell_center(geometry: GridGeometry, gx: int, gy: int) -> tuple[float, float]:
    size = geometry.cell_size
    return (
        geometry.offset_x + gx * size + size / 2,
        geometry.offset_y + gy * size + size / 2,
    )
