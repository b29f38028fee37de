"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import typer
from PIL import Image
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from shape_mosaic.color_utils import hex_to_rgb
from shape_mosaic.config import MosaicConfig, StyleConfig
from shape_mosaic.engine import Mode, MosaicEngine
from shape_mosaic.errors import InvalidDimensionsError, StreamUnavailableError
from shape_mosaic.image_io import load_frame, make_comparison_grid, save_image
from shape_mosaic.pipeline import FramePipeline
from shape_mosaic.render import Shape
from shape_mosaic.sampling import SourceFrame
from shape_mosaic.scheduler import RevealScheduler, TaskQueue
from shape_mosaic.surface import ImageSurface

app = typer.Typer(
    name="shape-mosaic",
    help="Turn images and live camera frames into shape mosaics.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()

_SHAPES = list(Shape)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _validate_hex(value: str) -> str:
    try:
        hex_to_rgb(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return value


def _validate_size(value: float) -> float:
    if value <= 0:
        raise typer.BadParameter("must be greater than 0")
    return value


def _collect_images(folder: Path, extensions: frozenset[str]) -> list[Path]:
    if not folder.exists():
        return []
    return sorted(
        f for f in folder.iterdir()
        if f.is_file() and f.suffix.lower() in extensions
    )


def render_still(frame: SourceFrame, density: int, style: StyleConfig) -> Image.Image:
    """Render *frame* in one pass (no reveal) and return the RGB result."""
    surface = ImageSurface()
    pipeline = FramePipeline(surface, RevealScheduler(TaskQueue()))
    pipeline.render_immediate(pipeline.prepare(frame, density, style))
    return surface.to_image()


# Defaults come from MosaicConfig / StyleConfig - single source of truth
_DEFAULTS = MosaicConfig()
_STYLE = StyleConfig()

_density_opt = typer.Option(
    _DEFAULTS.base_density, "--density", "-d", min=1,
    help="Cells along the longer side",
)
_shape_opt = typer.Option(_STYLE.shape, "--shape", help="Shape drawn per cell")
_size_opt = typer.Option(
    _STYLE.size_multiplier, "--size", callback=_validate_size,
    help="Shape size multiplier (1 = darkest cell fills its square)",
)
_mono_opt = typer.Option(
    _STYLE.monochrome, "--mono/--no-mono", help="Draw every shape in one colour",
)
_mono_color_opt = typer.Option(
    "#000000", "--mono-color", callback=_validate_hex, help="Colour for --mono",
)
_fit_height_opt = typer.Option(
    _DEFAULTS.fit_height, "--fit-height", min=1,
    help="Scale the source to this height first",
)


# -- single-image command ----------------------------------------------

@app.command()
def single(
    image: Path = typer.Argument(..., exists=True, dir_okay=False, help="Source image"),
    output: Path = typer.Option(Path("output/mosaic.png"), "--output", "-o"),
    density: int = _density_opt,
    shape: Shape = _shape_opt,
    size: float = _size_opt,
    mono: bool = _mono_opt,
    mono_color: str = _mono_color_opt,
    fit_height: int | None = _fit_height_opt,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Render a single image."""
    _setup_logging(verbose)
    style = StyleConfig.from_ui(mono, mono_color, shape.value, size)

    output.parent.mkdir(parents=True, exist_ok=True)
    frame = load_frame(image, fit_height)
    t0 = time.perf_counter()
    result = render_still(frame, density, style)
    save_image(result, output)

    console.print(
        f"[green]✓[/green] Saved to {output}  "
        f"[dim]{frame.width}x{frame.height}  "
        f"time={time.perf_counter() - t0:.2f}s[/dim]"
    )


# -- batch command -----------------------------------------------------

@app.command()
def batch(
    input_dir: Path = typer.Option(
        _DEFAULTS.input_dir, "--input", "-i", help="Folder with source images",
    ),
    output_dir: Path = typer.Option(
        _DEFAULTS.output_dir, "--output", "-o", help="Results folder",
    ),
    density: int = _density_opt,
    shape: Shape = _shape_opt,
    size: float = _size_opt,
    mono: bool = _mono_opt,
    mono_color: str = _mono_color_opt,
    fit_height: int | None = _fit_height_opt,
    comparison: bool = typer.Option(
        _DEFAULTS.save_comparison, "--comparison/--no-comparison",
        help="Also save an Original | Mosaic sheet",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Render every image in INPUT_DIR into OUTPUT_DIR."""
    _setup_logging(verbose)
    logger = logging.getLogger("shape_mosaic")
    style = StyleConfig.from_ui(mono, mono_color, shape.value, size)
    cfg = MosaicConfig(
        base_density=density,
        fit_height=fit_height,
        save_comparison=comparison,
        input_dir=input_dir,
        output_dir=output_dir,
    )

    images = _collect_images(input_dir, cfg.SUPPORTED_EXTENSIONS)
    if not images:
        console.print(f"\n[yellow]No images found in {input_dir}/[/yellow]")
        console.print("Place .jpg / .png / ... files there and re-run.\n")
        raise typer.Exit(0)
    output_dir.mkdir(parents=True, exist_ok=True)

    console.print(Panel.fit(
        f"[bold]SHAPE MOSAIC[/bold]\n"
        f"Density: {cfg.base_density}  |  Shape: {style.shape.value}\n"
        f"Size: {style.size_multiplier}  |  Mono: {style.monochrome}\n"
        f"Images: {len(images)}",
        border_style="cyan",
    ))

    for idx, img_path in enumerate(images, 1):
        console.rule(f"[bold cyan][{idx}/{len(images)}] {img_path.name}[/bold cyan]")
        t0 = time.perf_counter()
        try:
            frame = load_frame(img_path, cfg.fit_height)
            result = render_still(frame, cfg.base_density, style)
        except (OSError, InvalidDimensionsError) as exc:
            logger.warning("Skipping %s: %s", img_path.name, exc)
            continue

        out_path = output_dir / f"{img_path.stem}_mosaic.{cfg.output_format}"
        save_image(result, out_path)
        if cfg.save_comparison:
            with Image.open(img_path) as original:
                make_comparison_grid(
                    original, result,
                    output_dir / f"{img_path.stem}_comparison.{cfg.output_format}",
                    label=f"{style.shape.value} x{cfg.base_density}",
                )

        console.print(
            f"  [green]✓[/green] {out_path.name}  "
            f"[dim]{frame.width}x{frame.height}  "
            f"time={time.perf_counter() - t0:.2f}s[/dim]"
        )

    console.print(Panel.fit(
        f"[bold green]ALL DONE[/bold green] - results in [bold]{output_dir}/[/bold]",
        border_style="green",
    ))


# -- live camera command -----------------------------------------------

@app.command()
def camera(
    index: int = typer.Option(_DEFAULTS.camera_index, "--index", help="Camera device"),
    fps: float = typer.Option(_DEFAULTS.fps, "--fps", min=1, help="Mosaic frames per second"),
    density: int = _density_opt,
    shape: Shape = _shape_opt,
    size: float = _size_opt,
    mono: bool = _mono_opt,
    mono_color: str = _mono_color_opt,
    fit_height: int | None = _fit_height_opt,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Live mosaic of a camera in a window.

    Keys: [bold]q[/bold]/Esc quit, [bold]+[/bold]/[bold]-[/bold] density,
    [bold]s[/bold] next shape, [bold]m[/bold] toggle monochrome.
    """
    import cv2
    import numpy as np

    from shape_mosaic.camera import CameraSource

    _setup_logging(verbose)
    cfg = MosaicConfig(base_density=density, fps=fps, camera_index=index,
                       fit_height=fit_height)
    engine = MosaicEngine(
        stream_factory=lambda: CameraSource(cfg.camera_index, cfg.fit_height),
        config=cfg,
        style=StyleConfig.from_ui(mono, mono_color, shape.value, size),
    )
    window = "shape-mosaic"
    state = {"quit": False, "shown": -1}

    def handle_key(key: int) -> None:
        if key in (ord("q"), 27):
            state["quit"] = True
            return
        if key in (ord("+"), ord("=")):
            engine.base_density += 1
        elif key == ord("-"):
            engine.base_density = max(1, engine.base_density - 1)
        elif key == ord("s"):
            nxt = _SHAPES[(_SHAPES.index(engine.style.shape) + 1) % len(_SHAPES)]
            engine.style = StyleConfig(
                engine.style.monochrome, engine.style.mono_color,
                nxt, engine.style.size_multiplier,
            )
        elif key == ord("m"):
            engine.style = StyleConfig(
                not engine.style.monochrome, engine.style.mono_color,
                engine.style.shape, engine.style.size_multiplier,
            )
        else:
            return
        engine.redraw()

    def show() -> None:
        if engine.surface.passes != state["shown"]:
            state["shown"] = engine.surface.passes
            rgb = np.asarray(engine.surface.to_image("RGB"))
            cv2.imshow(window, cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))
        key = cv2.waitKey(1) & 0xFF
        if key != 0xFF:
            handle_key(key)

    try:
        engine.init(Mode.STREAM)
    except StreamUnavailableError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(1) from exc

    console.print(Panel.fit(
        f"[bold]LIVE MOSAIC[/bold]  camera {cfg.camera_index} @ {cfg.fps:g} fps\n"
        "q / Esc to quit",
        border_style="cyan",
    ))
    try:
        engine.queue.run_realtime(until=lambda: state["quit"], after_step=show)
    except KeyboardInterrupt:
        console.print("[dim]Interrupted[/dim]")
    finally:
        engine.dispose()
        cv2.destroyAllWindows()


if __name__ == "__main__":
    app()
