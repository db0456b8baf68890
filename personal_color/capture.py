# personal_color/capture.py
from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Dict, List, Optional

import numpy as np

from personal_color import config
from personal_color.exposure import ExposureAnalyzer
from personal_color.frames import FrameSampler, LatestFrameSource, PeriodicTask, encode_frame, frame_area
from personal_color.position import SubjectPositionAnalyzer
from personal_color.prompt import AnalysisImage
from personal_color.schemas import FrameAssessment, LightingStatus, PositionStatus, QualityStatus

logger = logging.getLogger("personal_color.capture")


class CaptureNotReady(Exception):
    pass


def is_ready(lighting: LightingStatus, position: PositionStatus, quality: QualityStatus) -> bool:
    return (lighting == LightingStatus.GOOD
            and position == PositionStatus.ADEQUATE
            and quality != QualityStatus.POOR)


class CaptureGate:
    """Latest status published by each analyzer; readiness is derived on demand."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.lighting = LightingStatus.MEASURING
        self.position = PositionStatus.MEASURING
        self.quality = QualityStatus.MEASURING

    def publish_lighting(self, status: LightingStatus) -> None:
        with self._lock:
            self.lighting = status

    def publish_position(self, position: PositionStatus, quality: QualityStatus) -> None:
        with self._lock:
            self.position = position
            self.quality = quality

    def reset(self) -> None:
        with self._lock:
            self.lighting = LightingStatus.MEASURING
            self.position = PositionStatus.MEASURING
            self.quality = QualityStatus.MEASURING

    @property
    def ready(self) -> bool:
        return self.snapshot().ready

    def snapshot(self) -> FrameAssessment:
        with self._lock:
            l, p, q = self.lighting, self.position, self.quality
        return FrameAssessment(lighting_status=l, position_status=p, quality_status=q,
                               ready=is_ready(l, p, q))


def assess_still(frame: Optional[np.ndarray],
                 exposure: Optional[ExposureAnalyzer] = None,
                 position: Optional[SubjectPositionAnalyzer] = None) -> FrameAssessment:
    gate = CaptureGate()
    gate.publish_lighting((exposure or ExposureAnalyzer()).analyze(frame).status)
    reading = (position or SubjectPositionAnalyzer()).analyze(frame)
    gate.publish_position(reading.position, reading.quality)
    return gate.snapshot()


class CaptureSession:
    """
    One active capture surface: a frame source sampled by two independent
    periodic analyzers publishing into a shared gate. stop() must be called
    when the surface goes away so the timers do not outlive it.
    """

    def __init__(self,
                 session_id: Optional[str] = None,
                 exposure: Optional[ExposureAnalyzer] = None,
                 position: Optional[SubjectPositionAnalyzer] = None,
                 exposure_interval: float = config.EXPOSURE_INTERVAL_S,
                 position_interval: float = config.POSITION_INTERVAL_S) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.source = LatestFrameSource()
        self.sampler = FrameSampler(self.source)
        self.exposure = exposure or ExposureAnalyzer()
        self.position = position or SubjectPositionAnalyzer()
        self.gate = CaptureGate()
        self._switch_lock = threading.Lock()
        self.last_active = time.monotonic()
        self._tasks = [
            PeriodicTask(f"exposure-{self.id[:8]}", exposure_interval, self.tick_exposure),
            PeriodicTask(f"position-{self.id[:8]}", position_interval, self.tick_position),
        ]

    @property
    def running(self) -> bool:
        return any(t.running for t in self._tasks)

    def start(self) -> None:
        for t in self._tasks:
            t.start()
        logger.info("Capture session %s started", self.id)

    def stop(self) -> None:
        for t in self._tasks:
            t.stop()
        logger.info("Capture session %s stopped", self.id)

    def touch(self) -> None:
        self.last_active = time.monotonic()

    def idle_for(self, now: Optional[float] = None) -> float:
        return (time.monotonic() if now is None else now) - self.last_active

    def push_frame(self, frame: np.ndarray) -> None:
        self.touch()
        self.source.push(frame)

    def tick_exposure(self) -> LightingStatus:
        generation = self.source.generation
        status = self.exposure.analyze(self.sampler.sample()).status
        with self._switch_lock:
            # a reading taken across a source switch belongs to the old source
            if generation == self.source.generation:
                self.gate.publish_lighting(status)
        return status

    def tick_position(self) -> PositionStatus:
        generation = self.source.generation
        reading = self.position.analyze(self.sampler.sample())
        with self._switch_lock:
            if generation == self.source.generation:
                self.gate.publish_position(reading.position, reading.quality)
        return reading.position

    def assess_frame(self) -> FrameAssessment:
        self.touch()
        return self.gate.snapshot()

    def switch_source(self) -> FrameAssessment:
        self.touch()
        with self._switch_lock:
            self.source.switch()
            self.gate.reset()
        logger.info("Capture session %s switched source", self.id)
        return self.gate.snapshot()

    def capture(self, enforce_ready: bool = False) -> Optional[AnalysisImage]:
        """JPEG still of the current frame. Readiness is advisory unless enforced."""
        self.touch()
        if enforce_ready and not self.gate.ready:
            raise CaptureNotReady("capture conditions are not met yet")
        frame = self.sampler.sample()
        if frame_area(frame) == 0:
            return None
        data = encode_frame(frame)
        return AnalysisImage(data=data, mime_type="image/jpeg", size=len(data))


class SessionRegistry:
    """
    Live capture sessions by id. Sessions with no client activity for
    `idle_timeout` seconds are stopped and dropped by a background reaper,
    started with the first session and stopped by close_all().
    """

    def __init__(self,
                 idle_timeout: float = config.SESSION_IDLE_TIMEOUT_S,
                 reap_interval: float = config.SESSION_REAP_INTERVAL_S) -> None:
        self._lock = threading.Lock()
        self._sessions: Dict[str, CaptureSession] = {}
        self.idle_timeout = idle_timeout
        self._reaper = PeriodicTask("session-reaper", reap_interval, self.reap_idle)

    def create(self, **kwargs) -> CaptureSession:
        session = CaptureSession(**kwargs)
        with self._lock:
            self._sessions[session.id] = session
        session.start()
        self._reaper.start()
        return session

    def reap_idle(self, now: Optional[float] = None) -> List[str]:
        now = time.monotonic() if now is None else now
        with self._lock:
            idle = [s for s in self._sessions.values() if s.idle_for(now) > self.idle_timeout]
            for s in idle:
                del self._sessions[s.id]
        for s in idle:
            logger.info("Closing capture session %s after %.0fs idle", s.id, s.idle_for(now))
            s.stop()
        return [s.id for s in idle]

    def get(self, session_id: str) -> Optional[CaptureSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.stop()
        return True

    def close_all(self) -> None:
        self._reaper.stop()
        with self._lock:
            sessions: List[CaptureSession] = list(self._sessions.values())
            self._sessions.clear()
        for s in sessions:
            s.stop()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
