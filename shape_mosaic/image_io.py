"""Image loading, saving, and comparison-sheet generation."""

from __future__ import annotations

from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from shape_mosaic.grid import round_half_up
from shape_mosaic.sampling import SourceFrame


def fit_to_height(width: int, height: int, target_height: int) -> tuple[int, int]:
    """Scale (w, h) so the height becomes *target_height*, aspect preserved.

    The width is rounded to the nearest integer (minimum 1).
    """
    scale = target_height / height
    return max(1, round_half_up(width * scale)), max(1, target_height)


def load_frame(path: str | Path, fit_height: int | None = None) -> SourceFrame:
    """Decode an image file into a frame, optionally scaled to *fit_height*."""
    with Image.open(path) as img:
        img = img.convert("RGBA")
        if fit_height:
            img = img.resize(fit_to_height(img.width, img.height, fit_height), Image.LANCZOS)
        return SourceFrame.from_image(img)


def save_image(image: Image.Image, path: str | Path) -> None:
    path = Path(path)
    if path.suffix.lower() in {".jpg", ".jpeg", ".jfif", ".bmp"}:
        image = image.convert("RGB")
    image.save(path)


def make_comparison_grid(
    original: Image.Image,
    mosaic: Image.Image,
    output_path: str | Path,
    label: str = "Mosaic",
) -> None:
    """Save a 2-panel sheet: Original | Mosaic, both at the mosaic's size."""
    panel_w, panel_h = mosaic.size
    label_height = 36
    gap = 8

    panels = [
        original.convert("RGB").resize((panel_w, panel_h), Image.LANCZOS),
        mosaic.convert("RGB"),
    ]
    labels = ["Original", label]

    canvas = Image.new(
        "RGB", (2 * panel_w + gap, panel_h + label_height), (30, 30, 30),
    )
    draw = ImageDraw.Draw(canvas)

    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 18,
        )
    except OSError:
        font = ImageFont.load_default()

    for i, (panel, text) in enumerate(zip(panels, labels, strict=True)):
        x = i * (panel_w + gap)
        canvas.paste(panel, (x, label_height))
        bbox = draw.textbbox((0, 0), text, font=font)
        draw.text((x + (panel_w - (bbox[2] - bbox[0])) // 2, 6), text,
                  fill=(220, 220, 220), font=font)

    canvas.save(output_path)
