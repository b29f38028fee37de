"""Live frame source contract and the rate-limited stream loop."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from shape_mosaic.sampling import SourceFrame
from shape_mosaic.scheduler import RepeatingTask, TaskQueue

logger = logging.getLogger(__name__)


@runtime_checkable
class FrameSource(Protocol):
    """A live stream the engine holds while in stream mode.

    ``width``/``height`` are 0 until the source produces frames, and
    ``read()`` returns None while nothing is available.
    """

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def read(self) -> SourceFrame | None: ...

    def release(self) -> None: ...


class StreamLoop:
    """Pull frames from a source at most *fps* times per second.

    Ticks at the display cadence (*frame_interval_ms*); a tick only renders
    when more than ``1000 / fps`` ms have passed since the last render,
    otherwise it just waits for the next one.
    """

    def __init__(
        self,
        queue: TaskQueue,
        source: FrameSource,
        on_frame: Callable[[SourceFrame], object],
        fps: float = 12.0,
        frame_interval_ms: float = 1000.0 / 60,
    ) -> None:
        self._queue = queue
        self._source = source
        self._on_frame = on_frame
        self._min_gap = 1000.0 / fps
        self._last_render: float | None = None
        self._task = RepeatingTask(queue, frame_interval_ms, self._tick)
        self.frames_rendered = 0

    @property
    def running(self) -> bool:
        return self._task.running

    def start(self) -> None:
        self._last_render = None
        self._task.start(immediate=True)

    def stop(self) -> None:
        self._task.stop()

    def _tick(self) -> bool:
        now = self._queue.now
        if self._last_render is not None and now - self._last_render <= self._min_gap:
            return True
        frame = self._source.read()
        if frame is None:
            logger.debug("Stream has no frame yet, skipping")
            return True
        self._last_render = now
        self.frames_rendered += 1
        self._on_frame(frame)
        return True
