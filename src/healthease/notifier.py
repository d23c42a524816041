# notifier.py
# User-facing notices: transient and persistent banners, optionally spoken.

import logging
import queue
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .tracking.sim_config import SimConfig

logger = logging.getLogger(__name__)


@dataclass
class Notice:
    text: str
    transient: bool
    created_at: float


class Speaker:
    """
    Background text-to-speech queue.

    Each phrase runs pyttsx3 in a child interpreter so a stuck audio driver
    cannot block the caller.
    """

    def __init__(self, rate: int = 150) -> None:
        self.rate = rate
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()

    def say(self, text: str) -> None:
        text = (text or "").strip()
        if text:
            self._queue.put(text)

    def close(self, timeout: float = 5.0) -> None:
        self._queue.join()       # let queued phrases finish
        self._queue.put(None)    # stop the worker
        self._thread.join(timeout=timeout)

    def _worker(self) -> None:
        while True:
            text = self._queue.get()
            if text is None:
                self._queue.task_done()
                break
            script = (
                "import pyttsx3\n"
                "engine = pyttsx3.init()\n"
                f"engine.setProperty('rate', {int(self.rate)})\n"
                f"engine.say({text!r})\n"
                "engine.runAndWait()"
            )
            try:
                subprocess.run([sys.executable, "-c", script], check=False)
            except OSError as e:
                logger.error(f"TTS failed: {e}")
            finally:
                self._queue.task_done()


class Notifier:
    """
    Keeps the banner shown above the map.

    A transient notice disappears after config.transient_banner_s; a
    persistent one stays until replaced or cleared.

    Args:
        config:  SimConfig.
        speaker: Optional Speaker; created automatically when
                 config.speak_notices is set.
        clock:   Time source.
    """

    def __init__(
        self,
        config: Optional[SimConfig] = None,
        speaker: Optional[Speaker] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or SimConfig()
        self._clock = clock
        self.speaker = speaker or (Speaker() if self.config.speak_notices else None)
        self._current: Optional[Notice] = None
        self.history: List[Notice] = []

    def info(self, text: str, transient: bool = False) -> Notice:
        notice = Notice(text=text, transient=transient, created_at=self._clock())
        self._current = notice
        self.history.append(notice)
        logger.info(f"[Notice] {text}")
        if self.speaker is not None:
            self.speaker.say(text)
        return notice

    def clear(self) -> None:
        self._current = None

    @property
    def banner(self) -> Optional[str]:
        """Text currently on screen, or None."""
        n = self._current
        if n is None:
            return None
        if n.transient and self._clock() - n.created_at >= self.config.transient_banner_s:
            self._current = None
            return None
        return n.text

    def close(self) -> None:
        if self.speaker is not None:
            self.speaker.close()
