"""OpenCV camera adapter for the live stream."""

from __future__ import annotations

import logging

import cv2
import numpy as np

from shape_mosaic.errors import StreamUnavailableError
from shape_mosaic.image_io import fit_to_height
from shape_mosaic.sampling import SourceFrame

logger = logging.getLogger(__name__)


class CameraSource:
    """OpenCV capture device producing RGBA :class:`SourceFrame` objects.

    Args:
        index:       Device index passed to ``cv2.VideoCapture``.
        fit_height:  Scale every frame to this height (aspect preserved).

    Raises:
        StreamUnavailableError: if the device cannot be opened.
    """

    def __init__(self, index: int = 0, fit_height: int | None = None) -> None:
        self._index = index
        self._fit_height = fit_height
        self._width = 0
        self._height = 0
        self._capture: cv2.VideoCapture | None = cv2.VideoCapture(index)
        if not self._capture.isOpened():
            self._capture.release()
            self._capture = None
            msg = f"Camera {index} is unavailable or access was denied"
            raise StreamUnavailableError(msg)
        logger.info("Camera %d opened", index)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def released(self) -> bool:
        return self._capture is None

    def read(self) -> SourceFrame | None:
        if self._capture is None:
            return None
        ok, bgr = self._capture.read()
        if not ok or bgr is None or bgr.size == 0:
            return None
        h, w = bgr.shape[:2]
        if self._fit_height:
            w, h = fit_to_height(w, h, self._fit_height)
            bgr = cv2.resize(bgr, (w, h), interpolation=cv2.INTER_AREA)
        self._width, self._height = w, h
        rgba: np.ndarray = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGBA)
        return SourceFrame.from_array(rgba)

    def release(self) -> None:
        if self._capture is None:
            return
        self._capture.release()
        self._capture = None
        self._width = self._height = 0
        logger.info("Camera %d released", self._index)

    def __enter__(self) -> CameraSource:
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()

