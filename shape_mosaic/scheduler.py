"""Cooperative timers and the randomized gradual reveal.

Everything runs on one thread. :class:`TaskQueue` owns a millisecond clock
and a heap of pending callbacks; tests move the clock by hand with
:meth:`TaskQueue.advance`, UI shells follow wall time with
:meth:`TaskQueue.run_realtime`.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import math
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import numpy as np

from shape_mosaic.grid import Cell

logger = logging.getLogger(__name__)


class TimerHandle:
    """A scheduled callback. Cancelling makes it a no-op when its time comes."""

    __slots__ = ("when", "callback", "cancelled", "_seq")

    def __init__(self, when: float, seq: int, callback: Callable[[], object]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False
        self._seq = seq

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: TimerHandle) -> bool:
        return (self.when, self._seq) < (other.when, other._seq)


class TaskQueue:
    """Single-threaded timer queue with its own clock in milliseconds."""

    def __init__(self) -> None:
        self._heap: list[TimerHandle] = []
        self._seq = itertools.count()
        self._now = 0.0

    @property
    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], object]) -> TimerHandle:
        handle = TimerHandle(self._now + max(0.0, delay_ms), next(self._seq), callback)
        heapq.heappush(self._heap, handle)
        return handle

    def _drop_cancelled(self) -> None:
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)

    def pending(self) -> int:
        """Number of live (not cancelled) callbacks."""
        return sum(1 for h in self._heap if not h.cancelled)

    def next_deadline(self) -> float | None:
        self._drop_cancelled()
        return self._heap[0].when if self._heap else None

    def advance(self, ms: float) -> int:
        """Move the clock forward by *ms*, running every callback that falls due.

        Callbacks scheduled while advancing run too if they fall inside the
        window. Returns the number of callbacks executed.
        """
        target = self._now + ms
        ran = 0
        while True:
            self._drop_cancelled()
            if not self._heap or self._heap[0].when > target:
                break
            handle = heapq.heappop(self._heap)
            self._now = handle.when
            handle.callback()
            ran += 1
        self._now = target
        return ran

    def run_until_idle(self, limit_ms: float = 60_000.0) -> int:
        """Jump from deadline to deadline until nothing is pending.

        *limit_ms* bounds the virtual time spent, so a task that reschedules
        itself forever (the stream loop) cannot hang the caller.
        """
        stop_at = self._now + limit_ms
        ran = 0
        while (deadline := self.next_deadline()) is not None and deadline <= stop_at:
            ran += self.advance(deadline - self._now)
        return ran

    def run_realtime(
        self,
        until: Callable[[], bool] | None = None,
        after_step: Callable[[], object] | None = None,
    ) -> None:
        """Follow wall time until the queue drains or *until* returns True.

        *after_step* runs after each batch of due callbacks, e.g. to push the
        current surface to a display.
        """
        last = time.perf_counter()
        while (deadline := self.next_deadline()) is not None:
            if until is not None and until():
                return
            delay = deadline - self._now
            if delay > 0:
                time.sleep(delay / 1000)
            current = time.perf_counter()
            self.advance(max((current - last) * 1000, delay))
            last = current
            if after_step is not None:
                after_step()


class RepeatingTask:
    """Run *fn* every *interval_ms* until it returns False or :meth:`stop` is called."""

    def __init__(
        self,
        queue: TaskQueue,
        interval_ms: float,
        fn: Callable[[], bool | None],
    ) -> None:
        self._queue = queue
        self._interval = interval_ms
        self._fn = fn
        self._handle: TimerHandle | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self, immediate: bool = False) -> None:
        self.stop()
        self._running = True
        if immediate:
            self._tick()
        else:
            self._handle = self._queue.call_later(self._interval, self._tick)

    def stop(self) -> None:
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _tick(self) -> None:
        self._handle = None
        if not self._running:
            return
        keep_going = self._fn()
        # fn may have stopped us, or stopped and restarted us
        if not self._running or self._handle is not None:
            return
        if keep_going is False:
            self._running = False
            return
        self._handle = self._queue.call_later(self._interval, self._tick)


@dataclass
class RevealState:
    pending_cells: list[Cell]
    cells_per_tick: int
    cursor: int = 0
    task: RepeatingTask | None = field(default=None, repr=False)

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.pending_cells)


def cells_per_tick(cell_count: int, total_duration_ms: float, tick_ms: float) -> int:
    """Slice size that spreads *cell_count* cells over the whole duration."""
    return max(1, math.ceil(cell_count / (total_duration_ms / tick_ms)))


class RevealScheduler:
    """Draws the cells of a still image in random order over about a second.

    At most one reveal is live; starting another cancels the first.
    """

    def __init__(self, queue: TaskQueue, rng: np.random.Generator | None = None) -> None:
        self._queue = queue
        self._rng = rng if rng is not None else np.random.default_rng()
        self._state: RevealState | None = None

    @property
    def active(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> RevealState | None:
        return self._state

    def start_reveal(
        self,
        cells: Sequence[Cell],
        render_fn: Callable[[Cell], object],
        total_duration_ms: float = 1000.0,
        tick_ms: float = 16.0,
    ) -> None:
        """Shuffle *cells* and hand them to *render_fn* a slice per tick.

        The first slice is drawn before this returns.
        """
        self.cancel_reveal()
        order = list(cells)
        if not order:
            return
        self._rng.shuffle(order)
        state = RevealState(
            pending_cells=order,
            cells_per_tick=cells_per_tick(len(order), total_duration_ms, tick_ms),
        )

        def tick() -> bool:
            # a cancelled reveal must never draw again
            if self._state is not state:
                return False
            end = min(state.cursor + state.cells_per_tick, len(state.pending_cells))
            for index in range(state.cursor, end):
                render_fn(state.pending_cells[index])
                state.cursor = index + 1
                if self._state is not state:
                    return False
            if state.exhausted:
                self._state = None
                logger.debug("Reveal finished (%d cells)", len(state.pending_cells))
                return False
            return True

        state.task = RepeatingTask(self._queue, tick_ms, tick)
        self._state = state
        logger.debug(
            "Reveal started: %d cells, %d per tick",
            len(order), state.cells_per_tick,
        )
        state.task.start(immediate=True)

    def cancel_reveal(self) -> None:
        state, self._state = self._state, None
        if state is not None and state.task is not None:
            state.task.stop()
            logger.debug("Reveal cancelled at %d/%d", state.cursor, len(state.pending_cells))
