"""Centralised configuration via frozen dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from shape_mosaic.color_utils import RGB, hex_to_rgb
from shape_mosaic.render import Shape


@dataclass(frozen=True)
class MosaicConfig:
    """Engine and shell parameters.

    Attributes:
        base_density:       Cells along the longer side of the source.
        fps:                Render rate of the live stream loop.
        reveal_duration_ms: Total length of the gradual reveal of a still image.
        tick_ms:            Interval between two reveal slices.
        frame_interval_ms:  Display refresh cadence that drives the stream loop.
        fit_height:         Scale sources to this height first (None = as is).
        camera_index:       OpenCV device index for the live stream.
        output_format:      Image format for saved files.
        save_comparison:    Write an Original | Mosaic sheet in batch mode.
        input_dir:          Folder to scan for source images.
        output_dir:         Folder for results.
    """

    # Grid
    base_density: int = 40

    # Timing
    fps: float = 12.0
    reveal_duration_ms: float = 1000.0
    tick_ms: float = 16.0
    frame_interval_ms: float = 1000.0 / 60

    # Sources
    fit_height: int | None = None
    camera_index: int = 0

    # Output
    output_format: str = "png"
    save_comparison: bool = True

    # Paths
    input_dir: Path = field(default_factory=lambda: Path("images"))
    output_dir: Path = field(default_factory=lambda: Path("output"))

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif"}
    )


@dataclass(frozen=True)
class StyleConfig:
    """How each cell is drawn. Read fresh at the start of every render pass."""

    monochrome: bool = False
    mono_color: RGB = (0, 0, 0)
    shape: Shape = Shape.CIRCLE
    size_multiplier: float = 1.0

    def __post_init__(self) -> None:
        if self.size_multiplier <= 0:
            msg = f"size_multiplier must be > 0, got {self.size_multiplier}"
            raise ValueError(msg)

    @classmethod
    def from_ui(
        cls,
        monochrome: bool = False,
        mono_color: str = "#000000",
        shape: str = "circle",
        size_multiplier: float = 1.0,
    ) -> StyleConfig:
        """Build a style from raw control values (hex colour, shape name)."""
        return cls(
            monochrome=monochrome,
            mono_color=hex_to_rgb(mono_color),
            shape=Shape(shape),
            size_multiplier=size_multiplier,
        )
