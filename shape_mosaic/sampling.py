"""Source frames and per-cell colour sampling."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from PIL import Image

from shape_mosaic.errors import InvalidDimensionsError
from shape_mosaic.grid import GridGeometry, cell_bounds


@dataclass(frozen=True, eq=False)
class SourceFrame:
    """One decoded RGBA raster, immutable once captured.

    Attributes:
        width:  Pixels per row, > 0.
        height: Rows, > 0.
        pixels: (height, width, 4) uint8, read-only.
    """

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            msg = f"Frame has no area: {self.width}x{self.height}"
            raise InvalidDimensionsError(msg)
        if self.pixels.shape != (self.height, self.width, 4):
            msg = (
                f"Pixel buffer shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )
            raise InvalidDimensionsError(msg)

    @classmethod
    def from_array(cls, array: np.ndarray) -> SourceFrame:
        """Wrap an (H, W, 3) RGB or (H, W, 4) RGBA array (copied)."""
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            msg = f"Expected (H, W, 3|4) pixels, got shape {array.shape}"
            raise InvalidDimensionsError(msg)
        h, w = array.shape[:2]
        rgba = np.empty((h, w, 4), dtype=np.uint8)
        rgba[..., :3] = array[..., :3]
        rgba[..., 3] = array[..., 3] if array.shape[2] == 4 else 255
        rgba.setflags(write=False)
        return cls(width=w, height=h, pixels=rgba)

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> SourceFrame:
        """Wrap a flat RGBA byte buffer of ``width * height * 4`` bytes."""
        if width <= 0 or height <= 0 or len(data) != width * height * 4:
            msg = f"{len(data)} bytes cannot hold a {width}x{height} RGBA frame"
            raise InvalidDimensionsError(msg)
        array = np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4)
        return cls.from_array(array)

    @classmethod
    def from_image(cls, image: Image.Image) -> SourceFrame:
        return cls.from_array(np.asarray(image.convert("RGBA"), dtype=np.uint8))


@dataclass(frozen=True)
class CellSample:
    """Average colour of one cell, channels in [0, 255]."""

    avg_r: float
    avg_g: float
    avg_b: float

    def as_tuple(self) -> tuple[float, float, float]:
        return self.avg_r, self.avg_g, self.avg_b


def _clamp_span(start: int, end: int, limit: int) -> tuple[int, int]:
    """Keep a [start, end) span inside [0, limit) and at least one pixel wide."""
    start = min(max(start, 0), limit - 1)
    end = min(max(end, start + 1), limit)
    return start, end


def sample_cell(
    frame: SourceFrame,
    geometry: GridGeometry,
    gx: int,
    gy: int,
) -> CellSample:
    """Average the RGB channels of every pixel inside cell ``(gx, gy)``.

    A cell whose bounds floor to zero width or height (``cell_size < 1``)
    samples the single pixel at its origin instead.
    """
    x0, y0, x1, y1 = cell_bounds(geometry, gx, gy)
    x0, x1 = _clamp_span(x0, x1, frame.width)
    y0, y1 = _clamp_span(y0, y1, frame.height)
    block = frame.pixels[y0:y1, x0:x1, :3].reshape(-1, 3).astype(np.float64)
    r, g, b = block.mean(axis=0)
    return CellSample(float(r), float(g), float(b))


def _edges(count: int, size: float, limit: int) -> tuple[np.ndarray, np.ndarray]:
    starts = np.array([math.floor(i * size) for i in range(count)], dtype=np.int64)
    ends = np.array([math.floor((i + 1) * size) for i in range(count)], dtype=np.int64)
    starts = np.clip(starts, 0, limit - 1)
    ends = np.minimum(np.maximum(ends, starts + 1), limit)
    return starts, ends


def sample_grid(frame: SourceFrame, geometry: GridGeometry) -> np.ndarray:
    """Sample every cell at once.

    Uses a summed-area table so the cost is one pass over the frame plus
    O(1) per cell; results match :func:`sample_cell` cell for cell.

    Returns:
        (rows, cols, 3) float64 average colours.
    """
    rgb = frame.pixels[..., :3].astype(np.float64)
    table = np.zeros((frame.height + 1, frame.width + 1, 3), dtype=np.float64)
    table[1:, 1:] = rgb.cumsum(axis=0).cumsum(axis=1)

    x0, x1 = _edges(geometry.cols, geometry.cell_size, frame.width)
    y0, y1 = _edges(geometry.rows, geometry.cell_size, frame.height)

    total = (
        table[y1][:, x1]
        - table[y0][:, x1]
        - table[y1][:, x0]
        + table[y0][:, x0]
    )
    count = (y1 - y0)[:, np.newaxis] * (x1 - x0)[np.newaxis, :]
    return total / count[..., np.newaxis]
