# personal_color/exposure.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from personal_color import config
from personal_color.frames import frame_area
from personal_color.schemas import LightingStatus

logger = logging.getLogger("personal_color.exposure")

# Rec. 709 luma weights, RGB order
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)


@dataclass(frozen=True)
class ExposureThresholds:
    min_luminance: float = config.LUMA_MIN
    max_luminance: float = config.LUMA_MAX
    max_variance: float = config.LUMA_VAR_MAX


@dataclass(frozen=True)
class ExposureReading:
    status: LightingStatus
    mean_luminance: float = 0.0
    luminance_variance: float = 0.0


MEASURING = ExposureReading(LightingStatus.MEASURING)


def luminance(frame: np.ndarray) -> np.ndarray:
    """Per-pixel perceptual luminance of an RGB raster (float64, H×W)."""
    if frame.ndim != 3 or frame.shape[2] < 3:
        raise ValueError(f"expected an H×W×3 raster, got shape {frame.shape}")
    return frame[..., :3].astype(np.float64) @ LUMA_WEIGHTS


class ExposureAnalyzer:
    def __init__(self, thresholds: Optional[ExposureThresholds] = None) -> None:
        self.thresholds = thresholds or ExposureThresholds()

    def analyze(self, frame: Optional[np.ndarray]) -> ExposureReading:
        if frame_area(frame) == 0:
            return MEASURING
        try:
            luma = luminance(frame)
            avg = float(luma.mean())
            var = float(luma.var())
        except Exception as e:
            logger.debug("Exposure measurement failed: %s", e)
            return MEASURING

        t = self.thresholds
        good = t.min_luminance <= avg <= t.max_luminance and var < t.max_variance
        status = LightingStatus.GOOD if good else LightingStatus.POOR
        return ExposureReading(status, avg, var)
