"""Error taxonomy for the mosaic engine."""

from __future__ import annotations


class MosaicError(Exception):
    """Base class for every error raised by :mod:`shape_mosaic`."""


class InvalidDimensionsError(MosaicError):
    """A source, grid or surface has no usable area.

    This is the normal state before a source is ready (e.g. a camera that has
    not produced its first frame), so the engine skips the render instead of
    letting it escape.
    """


class StreamUnavailableError(MosaicError):
    """The live frame source could not be acquired.

    The only engine error that reaches the caller: the UI decides whether to
    prompt the user, the engine does not retry.
    """
