"""Cell renderer: average colour + style → one draw command."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from shape_mosaic.color_utils import brightness
from shape_mosaic.grid import GridGeometry, cell_center

if TYPE_CHECKING:
    from shape_mosaic.config import StyleConfig
    from shape_mosaic.sampling import CellSample


class Shape(str, Enum):
    SQUARE = "square"
    CIRCLE = "circle"
    DIAMOND = "diamond"


@dataclass(frozen=True)
class DrawCommand:
    """One filled shape centred on a cell.

    ``size`` is the side (square), diameter (circle) or diagonal (diamond).
    Sizes <= 0 are valid and draw nothing.
    """

    shape: Shape
    center_x: float
    center_y: float
    size: float
    color: tuple[float, float, float]

    @property
    def visible(self) -> bool:
        return self.size > 0

    def bbox(self) -> tuple[float, float, float, float]:
        """``(left, top, right, bottom)`` of the shape."""
        half = self.size / 2
        return (
            self.center_x - half,
            self.center_y - half,
            self.center_x + half,
            self.center_y + half,
        )

    def polygon(self) -> list[tuple[float, float]]:
        """Outline vertices, clockwise from the top (squares and diamonds)."""
        half = self.size / 2
        cx, cy = self.center_x, self.center_y
        if self.shape is Shape.DIAMOND:
            return [(cx, cy - half), (cx + half, cy), (cx, cy + half), (cx - half, cy)]
        left, top, right, bottom = self.bbox()
        return [(left, top), (right, top), (right, bottom), (left, bottom)]


def shape_size(sample: CellSample, cell_size: float, size_multiplier: float) -> float:
    """Darker cells get larger shapes: white → 0, black → full cell."""
    level = brightness(sample.avg_r, sample.avg_g, sample.avg_b)
    return (1 - level / 255) * cell_size * size_multiplier


def render_cell(
    sample: CellSample,
    style: StyleConfig,
    geometry: GridGeometry,
    gx: int,
    gy: int,
) -> DrawCommand:
    cx, cy = cell_center(geometry, gx, gy)
    color = style.mono_color if style.monochrome else sample.as_tuple()
    return DrawCommand(
        shape=style.shape,
        center_x=cx,
        center_y=cy,
        size=shape_size(sample, geometry.cell_size, style.size_multiplier),
        color=tuple(float(c) for c in color),
    )
