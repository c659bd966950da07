# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

"""Frame scheduling.

Each tick reads the elapsed time, pushes the viewer state into the composer
and draws exactly one frame. ``start`` schedules ticks on the running asyncio
event loop, ``stop`` cancels them.
"""

import asyncio
import logging
import time
import warnings
from typing import Callable, Optional

from .composer import SceneComposer
from .state import ViewerState

logger = logging.getLogger(__name__)


class RenderLoopScheduler:
    """Drives the composer and the draw callback.

    Args:
        state: Viewer state read on every tick.
        composer: SceneComposer updated from the state.
        draw: Callable drawing one frame of the full scene.
        frame_interval: Seconds between ticks when started.
        clock: Monotonic time source.
    """

    def __init__(
        self,
        state: ViewerState,
        composer: SceneComposer,
        draw: Callable[[], None],
        frame_interval: float = 1.0 / 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if frame_interval < 0:
            raise ValueError(f"ERROR[RenderLoopScheduler]: frame interval must be >= 0, got {frame_interval}")
        self.state = state
        self.composer = composer
        self._draw = draw
        self.frame_interval = float(frame_interval)
        self._clock = clock

        self._t0 = clock()
        self._task: Optional[asyncio.Task] = None
        self.frame_count = 0
        self.failed_frames = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._t0

    def tick(self) -> float:
        """Run one frame. Returns the elapsed time since construction."""
        elapsed = self.elapsed
        self.composer.sync_visibility(self.state.layers)
        self.composer.apply_scale(self.state.scale)

        try:
            self._draw()
        except Exception as e:
            # a failed frame is reported, the next tick draws again
            self.failed_frames += 1
            warnings.warn(f"Render loop: drawing frame {self.frame_count} failed: {e}")

        self.frame_count += 1
        return elapsed

    async def _run(self) -> None:
        try:
            while True:
                self.tick()
                await asyncio.sleep(self.frame_interval)
        except asyncio.CancelledError:
            logger.debug("Render loop stopped after %d frames", self.frame_count)
            raise

    def start(self) -> asyncio.Task:
        """Schedule ticks on the running event loop.

        Raises:
            RuntimeError: if called without a running event loop.
        """
        if self.running:
            return self._task
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run())
        return self._task

    def stop(self) -> None:
        """Cancel the pending tick. Safe to call when not running."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def __repr__(self) -> str:
        return f"RenderLoopScheduler(running={self.running}, frames={self.frame_count})"
