"""
Shape Mosaic
============

Partition an image or live camera frame into a square grid and draw one
square, circle or diamond per cell, sized by how dark the cell is.

- **Still images** assemble through a short randomized reveal.
- **Live streams** render every frame immediately, rate limited.
"""

__version__ = "1.0.0"

from shape_mosaic.config import MosaicConfig, StyleConfig
from shape_mosaic.engine import Mode, MosaicEngine
from shape_mosaic.errors import (
    InvalidDimensionsError,
    MosaicError,
    StreamUnavailableError,
)
from shape_mosaic.grid import GridGeometry, compute_grid
from shape_mosaic.image_io import fit_to_height, load_frame
from shape_mosaic.render import DrawCommand, Shape, render_cell
from shape_mosaic.sampling import CellSample, SourceFrame, sample_cell, sample_grid
from shape_mosaic.scheduler import RevealScheduler, TaskQueue
from shape_mosaic.surface import ImageSurface

__all__ = [
    "CellSample",
    "DrawCommand",
    "GridGeometry",
    "ImageSurface",
    "InvalidDimensionsError",
    "Mode",
    "MosaicConfig",
    "MosaicEngine",
    "MosaicError",
    "RevealScheduler",
    "Shape",
    "SourceFrame",
    "StreamUnavailableError",
    "StyleConfig",
    "TaskQueue",
    "compute_grid",
    "fit_to_height",
    "load_frame",
    "render_cell",
    "sample_cell",
    "sample_grid",
]
