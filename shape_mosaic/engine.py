"""Mode controller: owns the source, the surface and the two schedulers.

The engine is either streaming live frames (rendered immediately, rate
limited) or showing a still image (rendered through the gradual reveal).
Switching modes or receiving new input cancels whatever the other mode had
scheduled before anything is drawn.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

import numpy as np

from shape_mosaic.config import MosaicConfig, StyleConfig
from shape_mosaic.errors import InvalidDimensionsError, StreamUnavailableError
from shape_mosaic.pipeline import FramePipeline
from shape_mosaic.sampling import SourceFrame
from shape_mosaic.scheduler import RevealScheduler, TaskQueue
from shape_mosaic.stream import FrameSource, StreamLoop
from shape_mosaic.surface import ImageSurface

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    STREAM = "stream"
    STATIC = "static"


class MosaicEngine:
    """Engine state with an explicit lifecycle.

    ``init`` → any number of ``set_mode`` / ``on_new_static_buffer`` /
    ``on_stream_frame`` / ``redraw`` → ``dispose``.

    Args:
        surface:        Output canvas (a fresh :class:`ImageSurface` by default).
        stream_factory: Acquires the live source; may raise
                        :class:`StreamUnavailableError`.
        config:         Timing and density defaults.
        style:          Initial style; the UI replaces ``engine.style`` and
                        ``engine.base_density`` then calls :meth:`redraw`.
        queue:          Timer queue shared by the reveal and the stream loop.
        rng:            Shuffle source for the reveal order.
    """

    def __init__(
        self,
        surface: ImageSurface | None = None,
        stream_factory: Callable[[], FrameSource] | None = None,
        config: MosaicConfig | None = None,
        style: StyleConfig | None = None,
        queue: TaskQueue | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.config = config or MosaicConfig()
        self.style = style or StyleConfig()
        self.base_density = self.config.base_density
        self.surface = surface or ImageSurface()
        self.queue = queue or TaskQueue()
        self.pipeline = FramePipeline(
            self.surface,
            RevealScheduler(self.queue, rng),
            reveal_duration_ms=self.config.reveal_duration_ms,
            tick_ms=self.config.tick_ms,
        )
        self._stream_factory = stream_factory
        self._mode = Mode.STREAM
        self._stream: FrameSource | None = None
        self._loop: StreamLoop | None = None
        self._static_frame: SourceFrame | None = None
        self._last_stream_frame: SourceFrame | None = None
        self._disposed = False

    # -- state ---------------------------------------------------------

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def streaming(self) -> bool:
        return self._loop is not None and self._loop.running

    @property
    def reveal_active(self) -> bool:
        return self.pipeline.reveal.active

    @property
    def static_frame(self) -> SourceFrame | None:
        return self._static_frame

    # -- lifecycle -----------------------------------------------------

    def init(self, mode: Mode = Mode.STREAM) -> None:
        """Enter the initial mode (stream unless told otherwise).

        Raises:
            StreamUnavailableError: when starting in stream mode fails.
        """
        logger.info("Engine starting in %s mode", mode.value)
        self.set_mode(mode)

    def set_mode(self, mode: Mode) -> None:
        """Switch between stream and static mode.

        Raises:
            StreamUnavailableError: if the live source cannot be acquired. The
                engine then stays in stream mode, idle, without retrying.
        """
        if mode is not self._mode:
            logger.info("Mode %s -> %s", self._mode.value, mode.value)
        self.pipeline.reveal.cancel_reveal()
        if mode is Mode.STREAM:
            self.surface.clear()
            self._mode = Mode.STREAM
            self._start_stream()
        else:
            self._stop_stream()
            self.surface.clear()
            self._mode = Mode.STATIC

    def dispose(self) -> None:
        self.pipeline.reveal.cancel_reveal()
        self._stop_stream()
        if not self._disposed:
            logger.info("Engine disposed")
        self._disposed = True

    def __enter__(self) -> MosaicEngine:
        return self

    def __exit__(self, *exc: object) -> None:
        self.dispose()

    # -- inputs --------------------------------------------------------

    def on_new_static_buffer(self, frame: SourceFrame) -> None:
        """Show a still image, switching out of stream mode if necessary."""
        if self._mode is Mode.STREAM:
            self.set_mode(Mode.STATIC)
        self._static_frame = frame
        self._render_static()

    def on_stream_frame(self, frame: SourceFrame) -> None:
        """Render a live frame immediately; ignored outside stream mode."""
        if self._mode is not Mode.STREAM:
            logger.debug("Dropping live frame received in %s mode", self._mode.value)
            return
        self._last_stream_frame = frame
        self._render_now(frame)

    def redraw(self) -> None:
        """Re-render the current source after a style or density change."""
        if self._mode is Mode.STREAM:
            if self._last_stream_frame is not None:
                self._render_now(self._last_stream_frame)
        else:
            self._render_static()

    # -- internals -----------------------------------------------------

    def _start_stream(self) -> None:
        if self._stream is not None:
            if self._loop is not None and not self._loop.running:
                self._loop.start()
            return
        if self._stream_factory is None:
            msg = "No live frame source configured"
            logger.error(msg)
            raise StreamUnavailableError(msg)
        try:
            self._stream = self._stream_factory()
        except StreamUnavailableError as exc:
            logger.error("Could not acquire live stream: %s", exc)
            raise
        self._loop = StreamLoop(
            self.queue,
            self._stream,
            self.on_stream_frame,
            fps=self.config.fps,
            frame_interval_ms=self.config.frame_interval_ms,
        )
        self._loop.start()

    def _stop_stream(self) -> None:
        if self._loop is not None:
            self._loop.stop()
            self._loop = None
        if self._stream is not None:
            self._stream.release()
            self._stream = None
        self._last_stream_frame = None

    def _render_now(self, frame: SourceFrame) -> None:
        self.pipeline.reveal.cancel_reveal()
        try:
            render_pass = self.pipeline.prepare(frame, self.base_density, self.style)
        except InvalidDimensionsError as exc:
            logger.debug("Skipping render: %s", exc)
            return
        self.pipeline.render_immediate(render_pass)

    def _render_static(self) -> None:
        self.pipeline.reveal.cancel_reveal()
        if self._static_frame is None:
            return
        try:
            render_pass = self.pipeline.prepare(
                self._static_frame, self.base_density, self.style,
            )
        except InvalidDimensionsError as exc:
            logger.debug("Skipping render: %s", exc)
            return
        self.pipeline.render_gradual(render_pass)
