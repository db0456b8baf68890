# personal_color/frames.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger("personal_color.frames")

EMPTY_FRAME = np.zeros((0, 0, 3), dtype=np.uint8)
EMPTY_FRAME.flags.writeable = False


def decode_frame(b: bytes) -> Optional[np.ndarray]:
    """Decode JPEG/PNG/WebP bytes into an RGB raster, or None."""
    if not b:
        return None
    arr = np.frombuffer(b, dtype=np.uint8)
    img_bgr = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if img_bgr is None:
        return None
    return cv2.cvtColor(img_bgr, cv2.COLOR_BGR2RGB)


def encode_frame(frame: np.ndarray, quality: int = 92) -> bytes:
    bgr = cv2.cvtColor(np.ascontiguousarray(frame), cv2.COLOR_RGB2BGR)
    ok, buf = cv2.imencode(".jpg", bgr, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        raise ValueError("JPEG encoding failed")
    return buf.tobytes()


def frame_area(frame: Optional[np.ndarray]) -> int:
    if frame is None or frame.ndim < 2:
        return 0
    return int(frame.shape[0] * frame.shape[1])


class LatestFrameSource:
    """
    Live frame source fed by the client. Holds only the most recent frame;
    an empty frame means the source is not ready yet.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame: np.ndarray = EMPTY_FRAME
        self.generation = 0

    def push(self, frame: np.ndarray) -> None:
        # lock a view; the caller's array keeps its own flags
        view = frame.view()
        view.flags.writeable = False
        with self._lock:
            self._frame = view

    def current(self) -> np.ndarray:
        with self._lock:
            return self._frame

    def dimensions(self) -> Tuple[int, int]:
        f = self.current()
        if f.ndim < 2:
            return 0, 0
        return int(f.shape[1]), int(f.shape[0])

    def clear(self) -> None:
        with self._lock:
            self._frame = EMPTY_FRAME

    def switch(self) -> None:
        # camera facing toggled: frames from the old source are stale
        with self._lock:
            self._frame = EMPTY_FRAME
            self.generation += 1


class FrameSampler:
    def __init__(self, source: LatestFrameSource) -> None:
        self.source = source

    def sample(self) -> np.ndarray:
        frame = self.source.current()
        view = frame.view()
        view.flags.writeable = False
        return view


class PeriodicTask:
    """
    Calls `callback` every `interval` seconds on a daemon thread.
    Ticks never overlap: the next wait starts after the previous tick returns.
    """

    def __init__(self, name: str, interval: float, callback: Callable[[], object]) -> None:
        self.name = name
        self.interval = max(0.01, float(interval))
        self.callback = callback
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout)
        self._thread = None

    def _run(self) -> None:
        stop = self._stop
        while not stop.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Periodic task %s tick failed", self.name)
