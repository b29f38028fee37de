"""Tests for the timer queue, the reveal, the stream loop and the engine."""

from __future__ import annotations

import numpy as np
import pytest

from shape_mosaic.config import MosaicConfig, StyleConfig
from shape_mosaic.engine import Mode, MosaicEngine
from shape_mosaic.errors import StreamUnavailableError
from shape_mosaic.grid import Cell, compute_grid
from shape_mosaic.sampling import SourceFrame
from shape_mosaic.scheduler import (
    RepeatingTask,
    RevealScheduler,
    TaskQueue,
    cells_per_tick,
)
from shape_mosaic.stream import FrameSource, StreamLoop

# -- Fixtures ----------------------------------------------------------


def _frame(w: int = 40, h: int = 30, value: int = 60) -> SourceFrame:
    return SourceFrame.from_array(np.full((h, w, 3), value, dtype=np.uint8))


class FakeSource:
    """In-memory live source that counts reads and releases."""

    def __init__(self, frame: SourceFrame | None = None) -> None:
        self.frame = frame if frame is not None else _frame()
        self.reads = 0
        self.releases = 0

    @property
    def width(self) -> int:
        return self.frame.width if self.frame else 0

    @property
    def height(self) -> int:
        return self.frame.height if self.frame else 0

    def read(self) -> SourceFrame | None:
        self.reads += 1
        return self.frame

    def release(self) -> None:
        self.releases += 1


@pytest.fixture
def queue() -> TaskQueue:
    return TaskQueue()


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def engine(queue: TaskQueue, source: FakeSource) -> MosaicEngine:
    return MosaicEngine(
        stream_factory=lambda: source,
        config=MosaicConfig(base_density=8),
        style=StyleConfig(),
        queue=queue,
        rng=np.random.default_rng(0),
    )


def _cells(n: int) -> list[Cell]:
    return [(i, 0) for i in range(n)]


# -- Task queue --------------------------------------------------------

class TestTaskQueue:
    def test_runs_in_deadline_order(self, queue: TaskQueue) -> None:
        seen: list[str] = []
        queue.call_later(20, lambda: seen.append("b"))
        queue.call_later(10, lambda: seen.append("a"))
        queue.call_later(20, lambda: seen.append("c"))
        assert queue.advance(25) == 3
        assert seen == ["a", "b", "c"]
        assert queue.now == 25

    def test_not_due_yet(self, queue: TaskQueue) -> None:
        seen: list[int] = []
        queue.call_later(10, lambda: seen.append(1))
        queue.advance(9)
        assert seen == []
        queue.advance(1)
        assert seen == [1]

    def test_cancelled_never_runs(self, queue: TaskQueue) -> None:
        seen: list[int] = []
        handle = queue.call_later(5, lambda: seen.append(1))
        handle.cancel()
        queue.advance(100)
        assert seen == []
        assert queue.pending() == 0

    def test_callbacks_scheduled_while_advancing(self, queue: TaskQueue) -> None:
        seen: list[float] = []

        def first() -> None:
            seen.append(queue.now)
            queue.call_later(5, lambda: seen.append(queue.now))

        queue.call_later(10, first)
        queue.advance(20)
        assert seen == [10, 15]

    def test_run_until_idle_is_bounded(self, queue: TaskQueue) -> None:
        task = RepeatingTask(queue, 10, lambda: True)
        task.start()
        ran = queue.run_until_idle(limit_ms=100)
        assert ran == 10
        task.stop()
        assert queue.pending() == 0


# -- Repeating task ----------------------------------------------------

class TestRepeatingTask:
    def test_stops_when_fn_returns_false(self, queue: TaskQueue) -> None:
        calls: list[float] = []

        def fn() -> bool:
            calls.append(queue.now)
            return len(calls) < 3

        task = RepeatingTask(queue, 16, fn)
        task.start(immediate=True)
        queue.run_until_idle()
        assert calls == [0, 16, 32]
        assert not task.running

    def test_stop_inside_fn(self, queue: TaskQueue) -> None:
        calls: list[int] = []
        task: RepeatingTask

        def fn() -> bool:
            calls.append(1)
            task.stop()
            return True

        task = RepeatingTask(queue, 16, fn)
        task.start()
        queue.advance(100)
        assert calls == [1]

    def test_restart_replaces_schedule(self, queue: TaskQueue) -> None:
        calls: list[float] = []
        task = RepeatingTask(queue, 10, lambda: calls.append(queue.now))
        task.start()
        queue.advance(5)
        task.start()
        queue.advance(12)
        assert calls == [15]


# -- Reveal ------------------------------------------------------------

class TestReveal:
    def test_cells_per_tick(self) -> None:
        assert cells_per_tick(100, 1000, 16) == 2
        assert cells_per_tick(62, 1000, 16) == 1
        assert cells_per_tick(6400, 1000, 16) == 103
        assert cells_per_tick(1, 1000, 16) == 1

    def test_completeness(self, queue: TaskQueue) -> None:
        drawn: list[Cell] = []
        reveal = RevealScheduler(queue)
        cells = [(gx, gy) for gy in range(9) for gx in range(13)]
        reveal.start_reveal(cells, drawn.append)
        queue.run_until_idle()
        assert len(drawn) == len(cells)
        assert sorted(drawn) == sorted(cells)
        assert not reveal.active

    def test_first_slice_is_synchronous(self, queue: TaskQueue) -> None:
        drawn: list[Cell] = []
        reveal = RevealScheduler(queue)
        reveal.start_reveal(_cells(100), drawn.append)
        assert len(drawn) == 2
        assert reveal.active
        queue.advance(16)
        assert len(drawn) == 4

    def test_finishes_in_about_the_duration(self, queue: TaskQueue) -> None:
        drawn: list[Cell] = []
        reveal = RevealScheduler(queue)
        reveal.start_reveal(_cells(500), drawn.append, total_duration_ms=1000, tick_ms=16)
        queue.advance(1000)
        assert len(drawn) == 500

    def test_cancel_stops_drawing(self, queue: TaskQueue) -> None:
        drawn: list[Cell] = []
        reveal = RevealScheduler(queue)
        reveal.start_reveal(_cells(100), drawn.append)
        queue.advance(32)
        reveal.cancel_reveal()
        count = len(drawn)
        queue.run_until_idle()
        assert len(drawn) == count < 100
        assert not reveal.active
        reveal.cancel_reveal()  # idempotent

    def test_new_reveal_supersedes_old(self, queue: TaskQueue) -> None:
        first: list[Cell] = []
        second: list[Cell] = []
        reveal = RevealScheduler(queue)
        reveal.start_reveal(_cells(100), first.append)
        queue.advance(16)
        reveal.start_reveal(_cells(50), second.append)
        count = len(first)
        queue.run_until_idle()
        assert len(first) == count
        assert sorted(second) == _cells(50)

    def test_cancel_from_render_fn(self, queue: TaskQueue) -> None:
        reveal = RevealScheduler(queue)
        drawn: list[Cell] = []

        def render(cell: Cell) -> None:
            drawn.append(cell)
            reveal.cancel_reveal()

        reveal.start_reveal(_cells(200), render)
        queue.run_until_idle()
        assert len(drawn) == 1

    def test_empty_cells(self, queue: TaskQueue) -> None:
        reveal = RevealScheduler(queue)
        reveal.start_reveal([], lambda cell: None)
        assert not reveal.active


# -- Stream loop -------------------------------------------------------

class TestStreamLoop:
    def test_rate_limited(self, queue: TaskQueue, source: FakeSource) -> None:
        times: list[float] = []
        loop = StreamLoop(queue, source, lambda f: times.append(queue.now), fps=12)
        loop.start()
        queue.advance(1000)
        assert 10 <= len(times) <= 13
        gaps = np.diff(times)
        assert np.all(gaps > 1000 / 12)
        assert source.reads == len(times)

    def test_first_tick_renders(self, queue: TaskQueue, source: FakeSource) -> None:
        frames: list[SourceFrame] = []
        loop = StreamLoop(queue, source, frames.append)
        loop.start()
        assert len(frames) == 1

    def test_no_frame_yet_is_skipped(self, queue: TaskQueue) -> None:
        idle = FakeSource()
        idle.frame = None
        frames: list[SourceFrame] = []
        loop = StreamLoop(queue, idle, frames.append)
        loop.start()
        queue.advance(500)
        assert frames == []
        assert loop.running

    def test_stop(self, queue: TaskQueue, source: FakeSource) -> None:
        frames: list[SourceFrame] = []
        loop = StreamLoop(queue, source, frames.append)
        loop.start()
        loop.stop()
        queue.advance(1000)
        assert len(frames) == 1
        assert not loop.running

    def test_fake_is_a_frame_source(self, source: FakeSource) -> None:
        assert isinstance(source, FrameSource)


# -- Engine ------------------------------------------------------------

class TestEngine:
    def test_initial_state_is_stream(
        self, engine: MosaicEngine, source: FakeSource,
    ) -> None:
        assert engine.mode is Mode.STREAM
        engine.init()
        assert engine.streaming
        assert source.reads == 1
        assert engine.surface.size == (source.width, source.height)

    def test_stream_renders_every_cell_immediately(
        self, engine: MosaicEngine, source: FakeSource,
    ) -> None:
        engine.init()
        g = compute_grid(source.width, source.height, engine.base_density)
        assert engine.surface.commands_drawn == g.cell_count
        assert not engine.reveal_active

    def test_acquisition_failure_propagates(self, queue: TaskQueue) -> None:
        def deny() -> FrameSource:
            raise StreamUnavailableError("denied")

        engine = MosaicEngine(stream_factory=deny, queue=queue)
        with pytest.raises(StreamUnavailableError):
            engine.init()
        assert engine.mode is Mode.STREAM
        assert not engine.streaming
        assert queue.pending() == 0

    def test_no_factory(self, queue: TaskQueue) -> None:
        engine = MosaicEngine(queue=queue)
        with pytest.raises(StreamUnavailableError):
            engine.set_mode(Mode.STREAM)

    def test_static_buffer_reveals_every_cell_once(
        self, engine: MosaicEngine, queue: TaskQueue,
    ) -> None:
        engine.init(Mode.STATIC)
        frame = _frame(64, 48)
        engine.on_new_static_buffer(frame)
        assert engine.reveal_active
        queue.run_until_idle()
        g = compute_grid(64, 48, engine.base_density)
        assert engine.surface.commands_drawn == g.cell_count
        assert not engine.reveal_active
        assert engine.surface.size == (64, 48)

    def test_mode_exclusivity(
        self, engine: MosaicEngine, queue: TaskQueue, source: FakeSource,
    ) -> None:
        engine.init(Mode.STATIC)
        engine.set_mode(Mode.STREAM)
        queue.advance(300)
        assert source.reads > 1
        engine.set_mode(Mode.STATIC)
        assert source.releases == 1
        passes, reads = engine.surface.passes, source.reads
        queue.advance(2000)
        assert engine.surface.passes == passes
        assert source.reads == reads
        assert not engine.streaming

    def test_static_buffer_during_stream_switches_mode(
        self, engine: MosaicEngine, queue: TaskQueue, source: FakeSource,
    ) -> None:
        engine.init()
        engine.on_new_static_buffer(_frame(20, 20))
        assert engine.mode is Mode.STATIC
        assert source.releases == 1
        reads = source.reads
        queue.run_until_idle()
        assert source.reads == reads

    def test_switching_to_stream_cancels_reveal(
        self, engine: MosaicEngine, queue: TaskQueue,
    ) -> None:
        engine.init(Mode.STATIC)
        engine.base_density = 60
        engine.on_new_static_buffer(_frame(120, 90))
        queue.advance(16)
        engine.set_mode(Mode.STREAM)
        assert not engine.reveal_active
        drawn = engine.surface.commands_drawn
        queue.advance(50)  # below the stream's frame gap
        assert engine.surface.commands_drawn == drawn

    def test_new_static_buffer_restarts_reveal(
        self, engine: MosaicEngine, queue: TaskQueue,
    ) -> None:
        engine.init(Mode.STATIC)
        engine.base_density = 40
        engine.on_new_static_buffer(_frame(200, 100, value=0))
        queue.advance(100)
        engine.on_new_static_buffer(_frame(30, 30, value=255))
        queue.run_until_idle()
        g = compute_grid(30, 30, 40)
        assert engine.surface.commands_drawn == g.cell_count
        assert engine.surface.size == (30, 30)

    def test_live_frame_ignored_in_static(self, engine: MosaicEngine) -> None:
        engine.init(Mode.STATIC)
        passes = engine.surface.passes
        engine.on_stream_frame(_frame())
        assert engine.surface.passes == passes

    def test_redraw_stream_uses_new_density(
        self, engine: MosaicEngine, source: FakeSource,
    ) -> None:
        engine.init()
        engine.base_density = 4
        engine.redraw()
        g = compute_grid(source.width, source.height, 4)
        assert engine.surface.commands_drawn == g.cell_count

    def test_redraw_static_replays_reveal(
        self, engine: MosaicEngine, queue: TaskQueue,
    ) -> None:
        engine.init(Mode.STATIC)
        engine.on_new_static_buffer(_frame(16, 16))
        queue.run_until_idle()
        engine.style = StyleConfig.from_ui(True, "#112233", "diamond", 0.5)
        engine.redraw()
        assert engine.reveal_active

    def test_invalid_density_is_skipped(
        self, engine: MosaicEngine, queue: TaskQueue,
    ) -> None:
        engine.init(Mode.STATIC)
        engine.base_density = 0
        engine.on_new_static_buffer(_frame())
        assert not engine.reveal_active
        queue.run_until_idle()

    def test_skipped_buffer_cancels_running_reveal(
        self, engine: MosaicEngine, queue: TaskQueue,
    ) -> None:
        engine.init(Mode.STATIC)
        engine.base_density = 40
        engine.on_new_static_buffer(_frame(120, 90, value=0))
        queue.advance(16)
        assert engine.reveal_active
        drawn = engine.surface.commands_drawn

        engine.base_density = 0
        engine.on_new_static_buffer(_frame(30, 30, value=255))
        queue.run_until_idle()
        assert not engine.reveal_active
        assert engine.surface.commands_drawn == drawn

    def test_skipped_redraw_cancels_running_reveal(
        self, engine: MosaicEngine, queue: TaskQueue,
    ) -> None:
        engine.init(Mode.STATIC)
        engine.base_density = 40
        engine.on_new_static_buffer(_frame(120, 90, value=0))
        queue.advance(16)
        drawn = engine.surface.commands_drawn

        engine.base_density = 0
        engine.redraw()
        queue.run_until_idle()
        assert not engine.reveal_active
        assert engine.surface.commands_drawn == drawn

    def test_monochrome_stream_paints_ink(
        self, engine: MosaicEngine, source: FakeSource,
    ) -> None:
        source.frame = _frame(8, 8, value=0)
        engine.style = StyleConfig.from_ui(True, "#112233", "square", 1.0)
        engine.base_density = 1
        engine.init()
        assert engine.surface.to_image().getpixel((4, 4)) == (17, 34, 51)

    def test_dispose_releases_once(
        self, engine: MosaicEngine, queue: TaskQueue, source: FakeSource,
    ) -> None:
        engine.init()
        engine.dispose()
        engine.dispose()
        assert source.releases == 1
        assert queue.pending() == 0

    def test_context_manager_disposes(
        self, queue: TaskQueue, source: FakeSource,
    ) -> None:
        with MosaicEngine(stream_factory=lambda: source, queue=queue) as engine:
            engine.init()
        assert source.releases == 1
