# scheduler.py
# Delta-time frame driver. The host decides when frames happen: a real-time
# loop (run), a timer calling tick(), or a test calling step(dt) directly.

import logging
import time
from typing import Callable, Optional

from .sim_config import SimConfig

logger = logging.getLogger(__name__)


class AnimationScheduler:
    """
    Runs frame_fn only while something is animating.

    frame_fn(dt) advances the simulation and returns True while more frames
    are needed; once it returns False the scheduler stops until
    ensure_running() is called again.

    Args:
        frame_fn: Per-frame callback taking elapsed seconds.
        config:   SimConfig for the real-time frame interval.
        clock:    Monotonic time source in seconds.
    """

    def __init__(
        self,
        frame_fn: Callable[[float], bool],
        config: Optional[SimConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or SimConfig()
        self._frame_fn = frame_fn
        self._clock = clock
        self._scheduled = False
        self._last: Optional[float] = None
        self.frame_count = 0

    @property
    def is_running(self) -> bool:
        return self._scheduled

    def ensure_running(self) -> None:
        """Schedule frames if not already scheduled."""
        if not self._scheduled:
            self._scheduled = True
            self._last = None
            logger.debug("Animation scheduled")

    def stop(self) -> None:
        self._scheduled = False
        self._last = None

    # ------------------------------------------------------------------
    # Frame entry points
    # ------------------------------------------------------------------

    def tick(self, now: Optional[float] = None) -> bool:
        """
        Run one frame with dt measured from the previous tick.

        The first tick after scheduling has dt = 0.

        Returns:
            True if another frame is scheduled.
        """
        if not self._scheduled:
            return False
        now = self._clock() if now is None else now
        dt = 0.0 if self._last is None else now - self._last
        self._last = now
        return self._run_frame(dt)

    def step(self, dt: float) -> bool:
        """Run one frame with an explicit dt (fixed-tick hosts and tests)."""
        if not self._scheduled:
            return False
        return self._run_frame(dt)

    def run(
        self,
        max_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """
        Blocking real-time loop; returns when nothing is animating.

        Args:
            max_seconds: Wall-clock limit (None = until idle).
            sleep:       Sleep function between frames.

        Returns:
            Number of frames executed.
        """
        started = self._clock()
        frames = 0
        while self._scheduled:
            self.tick()
            frames += 1
            if max_seconds is not None and self._clock() - started >= max_seconds:
                logger.info(f"Animation loop stopped after {max_seconds}s limit")
                break
            sleep(self.config.frame_interval_s)
        return frames

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run_frame(self, dt: float) -> bool:
        self.frame_count += 1
        keep = bool(self._frame_fn(dt))
        if not keep:
            self._scheduled = False
            self._last = None
            logger.debug(f"Animation idle after {self.frame_count} frames")
        return keep
