"""Frame pipeline: grid → sample → render, immediately or as a reveal."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from shape_mosaic.config import StyleConfig
from shape_mosaic.grid import Cell, GridGeometry, compute_grid, iter_cells
from shape_mosaic.render import DrawCommand, render_cell
from shape_mosaic.sampling import CellSample, SourceFrame, sample_grid
from shape_mosaic.scheduler import RevealScheduler
from shape_mosaic.surface import ImageSurface

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class RenderPass:
    """Everything one pass needs: layout, samples and a style snapshot."""

    frame: SourceFrame
    geometry: GridGeometry
    samples: np.ndarray  # (rows, cols, 3)
    style: StyleConfig

    def cells(self) -> list[Cell]:
        return list(iter_cells(self.geometry))

    def command(self, cell: Cell) -> DrawCommand:
        gx, gy = cell
        r, g, b = self.samples[gy, gx]
        return render_cell(
            CellSample(float(r), float(g), float(b)),
            self.style, self.geometry, gx, gy,
        )

    def commands(self) -> list[DrawCommand]:
        return [self.command(cell) for cell in iter_cells(self.geometry)]


class FramePipeline:
    """Paints frames onto one shared surface.

    Every new pass cancels a running reveal before touching the surface.
    """

    def __init__(
        self,
        surface: ImageSurface,
        reveal: RevealScheduler,
        reveal_duration_ms: float = 1000.0,
        tick_ms: float = 16.0,
    ) -> None:
        self.surface = surface
        self.reveal = reveal
        self.reveal_duration_ms = reveal_duration_ms
        self.tick_ms = tick_ms

    def prepare(
        self,
        frame: SourceFrame,
        base_density: int,
        style: StyleConfig,
    ) -> RenderPass:
        """Lay out and sample *frame*.

        Raises:
            InvalidDimensionsError: for an unusable frame or density.
        """
        geometry = compute_grid(frame.width, frame.height, base_density)
        return RenderPass(frame, geometry, sample_grid(frame, geometry), style)

    def _begin(self, render_pass: RenderPass) -> None:
        self.reveal.cancel_reveal()
        self.surface.reset(render_pass.frame.width, render_pass.frame.height)

    def render_immediate(self, render_pass: RenderPass) -> int:
        """Draw every cell now. Returns the number of commands issued."""
        self._begin(render_pass)
        commands = render_pass.commands()
        for command in commands:
            self.surface.draw(command)
        logger.debug(
            "Rendered %dx%d cells at %.2f px",
            render_pass.geometry.cols, render_pass.geometry.rows,
            render_pass.geometry.cell_size,
        )
        return len(commands)

    def render_gradual(self, render_pass: RenderPass) -> None:
        """Start a reveal of *render_pass*; the first slice is drawn at once."""
        self._begin(render_pass)
        self.reveal.start_reveal(
            render_pass.cells(),
            lambda cell: self.surface.draw(render_pass.command(cell)),
            total_duration_ms=self.reveal_duration_ms,
            tick_ms=self.tick_ms,
        )
