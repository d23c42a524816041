# icon_cache.py
# Asynchronous icon loader keyed by icon reference (URL or file path).
# The renderer asks for an icon every frame; until it is decoded it gets None
# and draws a dot instead. Each completed load fires on_ready exactly once.

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Optional

import cv2
import httpx
import numpy as np

logger = logging.getLogger(__name__)

# Placeholder stored for icons that failed to load; never retried
_FAILED = object()


def fetch_icon_bytes(ref: str, timeout: float = 10.0) -> bytes:
    """Read raw image bytes from an http(s) URL or a local path."""
    if ref.startswith(("http://", "https://")):
        r = httpx.get(ref, timeout=timeout, follow_redirects=True)
        r.raise_for_status()
        return r.content
    return Path(ref).read_bytes()


def decode_icon(data: bytes) -> np.ndarray:
    """Decode PNG/JPEG bytes, keeping the alpha channel when present."""
    img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError("Unsupported or corrupt image data.")
    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    return img


class IconCache:
    """
    Thread-pool backed image cache.

    Args:
        on_ready: Called with the icon reference once its image is decoded.
        fetch:    Byte loader; defaults to fetch_icon_bytes.
        workers:  Thread pool size.
    """

    def __init__(
        self,
        on_ready: Optional[Callable[[str], None]] = None,
        fetch: Optional[Callable[[str], bytes]] = None,
        workers: int = 2,
    ) -> None:
        self.on_ready = on_ready
        self._fetch = fetch or fetch_icon_bytes
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="icon")
        self._lock = threading.Lock()
        self._images: Dict[str, object] = {}
        self._pending: Dict[str, Future] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, ref: str) -> Optional[np.ndarray]:
        """Return the decoded icon, or None while it is loading (or failed)."""
        with self._lock:
            img = self._images.get(ref)
            if img is not None:
                return None if img is _FAILED else img
            if ref not in self._pending:
                self._pending[ref] = self._executor.submit(self._load, ref)
        return None

    def is_ready(self, ref: str) -> bool:
        with self._lock:
            img = self._images.get(ref)
        return img is not None and img is not _FAILED

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until every pending load has finished."""
        with self._lock:
            futures = list(self._pending.values())
        for f in futures:
            f.result(timeout=timeout)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self, ref: str) -> None:
        try:
            img = decode_icon(self._fetch(ref))
        except Exception as e:
            logger.warning(f"Icon {ref} could not be loaded: {e}")
            with self._lock:
                self._images[ref] = _FAILED
                self._pending.pop(ref, None)
            return

        with self._lock:
            self._images[ref] = img
            self._pending.pop(ref, None)
        logger.debug(f"Icon {ref} ready ({img.shape[1]}x{img.shape[0]})")
        if self.on_ready is not None:
            self.on_ready(ref)
