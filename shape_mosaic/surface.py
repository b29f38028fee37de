"""Output raster surface backed by a Pillow image."""

from __future__ import annotations

import logging

from PIL import Image, ImageDraw

from shape_mosaic.grid import round_half_up
from shape_mosaic.render import DrawCommand, Shape

logger = logging.getLogger(__name__)

BACKGROUND = (255, 255, 255, 255)
TRANSPARENT = (0, 0, 0, 0)


def _rgba(color: tuple[float, float, float]) -> tuple[int, int, int, int]:
    r, g, b = (min(255, max(0, round_half_up(c))) for c in color)
    return r, g, b, 255


class ImageSurface:
    """RGBA canvas the engine paints draw commands onto.

    Sized to the current source on every render pass; starts out 1x1 and
    transparent until the first pass.
    """

    def __init__(self, width: int = 1, height: int = 1) -> None:
        self._image = Image.new("RGBA", (max(1, width), max(1, height)), TRANSPARENT)
        self._draw = ImageDraw.Draw(self._image)
        self.commands_drawn = 0
        self.passes = 0

    @property
    def size(self) -> tuple[int, int]:
        return self._image.size

    def reset(self, width: int, height: int) -> None:
        """Resize to *width* x *height* and fill with the white background."""
        self._image = Image.new("RGBA", (width, height), BACKGROUND)
        self._draw = ImageDraw.Draw(self._image)
        self.commands_drawn = 0
        self.passes += 1

    def clear(self) -> None:
        """Erase everything to transparent, keeping the current size."""
        self._draw.rectangle([(0, 0), self._image.size], fill=TRANSPARENT)
        self.commands_drawn = 0

    def draw(self, command: DrawCommand) -> None:
        self.commands_drawn += 1
        if not command.visible:
            return
        fill = _rgba(command.color)
        if command.shape is Shape.CIRCLE:
            self._draw.ellipse(command.bbox(), fill=fill)
        elif command.shape is Shape.SQUARE:
            self._draw.rectangle(command.bbox(), fill=fill)
        else:
            self._draw.polygon(command.polygon(), fill=fill)

    def to_image(self, mode: str = "RGB") -> Image.Image:
        """Snapshot of the canvas; transparent areas become white in RGB."""
        if mode == "RGBA":
            return self._image.copy()
        flat = Image.new("RGBA", self._image.size, BACKGROUND)
        flat.alpha_composite(self._image)
        return flat.convert(mode)
