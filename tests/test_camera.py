"""Tests for the OpenCV camera adapter, with the capture device faked."""

from __future__ import annotations

import numpy as np
import pytest

pytest.importorskip("cv2")

from shape_mosaic import camera  # noqa: E402
from shape_mosaic.camera import CameraSource  # noqa: E402
from shape_mosaic.errors import StreamUnavailableError  # noqa: E402
from shape_mosaic.stream import FrameSource  # noqa: E402


class FakeCapture:
    def __init__(self, index: int, opened: bool = True, frame: np.ndarray | None = None) -> None:
        self.index = index
        self.opened = opened
        self.frame = frame
        self.released = 0

    def isOpened(self) -> bool:  # noqa: N802
        return self.opened

    def read(self) -> tuple[bool, np.ndarray | None]:
        if self.frame is None:
            return False, None
        return True, self.frame.copy()

    def release(self) -> None:
        self.released += 1


@pytest.fixture
def bgr() -> np.ndarray:
    """40x20 frame, pure blue in BGR order."""
    frame = np.zeros((20, 40, 3), dtype=np.uint8)
    frame[..., 0] = 255
    return frame


def _patch(monkeypatch: pytest.MonkeyPatch, capture: FakeCapture) -> None:
    monkeypatch.setattr(camera.cv2, "VideoCapture", lambda index: capture)


class TestCameraSource:
    def test_unavailable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        capture = FakeCapture(0, opened=False)
        _patch(monkeypatch, capture)
        with pytest.raises(StreamUnavailableError):
            CameraSource(0)
        assert capture.released == 1

    def test_read_converts_to_rgba(
        self, monkeypatch: pytest.MonkeyPatch, bgr: np.ndarray,
    ) -> None:
        _patch(monkeypatch, FakeCapture(0, frame=bgr))
        source = CameraSource(0)
        assert (source.width, source.height) == (0, 0)
        frame = source.read()
        assert frame is not None
        assert (source.width, source.height) == (40, 20)
        assert tuple(int(v) for v in frame.pixels[0, 0]) == (0, 0, 255, 255)
        assert isinstance(source, FrameSource)

    def test_fit_height(self, monkeypatch: pytest.MonkeyPatch, bgr: np.ndarray) -> None:
        _patch(monkeypatch, FakeCapture(0, frame=bgr))
        frame = CameraSource(0, fit_height=10).read()
        assert frame is not None
        assert (frame.width, frame.height) == (20, 10)

    def test_no_frame_yet(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _patch(monkeypatch, FakeCapture(0, frame=None))
        assert CameraSource(0).read() is None

    def test_release_is_idempotent(
        self, monkeypatch: pytest.MonkeyPatch, bgr: np.ndarray,
    ) -> None:
        capture = FakeCapture(0, frame=bgr)
        _patch(monkeypatch, capture)
        with CameraSource(0) as source:
            source.read()
        source.release()
        assert capture.released == 1
        assert source.released
        assert source.read() is None
