"""Hex colour parsing and brightness."""

from __future__ import annotations

import string

RGB = tuple[int, int, int]

_HEX_DIGITS = frozenset(string.hexdigits)


def hex_to_rgb(value: str) -> RGB:
    """Parse ``"#RRGGBB"`` into an ``(r, g, b)`` tuple of ints in [0, 255].

    Channels are read from the two-digit slices at offsets 1-3, 3-5 and 5-7.

    Raises:
        ValueError: if *value* is not exactly ``#`` followed by six hex digits.
    """
    if (
        len(value) != 7
        or not value.startswith("#")
        or not _HEX_DIGITS.issuperset(value[1:])
    ):
        msg = f"Expected a colour like '#RRGGBB', got {value!r}"
        raise ValueError(msg)
    return int(value[1:3], 16), int(value[3:5], 16), int(value[5:7], 16)


def brightness(r: float, g: float, b: float) -> float:
    """Unweighted channel mean."""
    return (r + g + b) / 3
