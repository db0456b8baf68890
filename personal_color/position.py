# personal_color/position.py
"""
Face placement and image quality from pixel statistics.

There is no face detector here: a square region at the centre of the frame
stands in for the face guide, and the share of flesh-toned pixels inside it
approximates whether a face fills that guide. Too little skin means nobody is
in the guide; too much means the subject is so close that the frame is
over-filled.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from personal_color import config
from personal_color.exposure import luminance
from personal_color.frames import frame_area
from personal_color.schemas import PositionStatus, QualityStatus

logger = logging.getLogger("personal_color.position")


@dataclass(frozen=True)
class PositionThresholds:
    roi_fraction: float = config.ROI_FRACTION
    # flesh-tone rule: R > G > B, R-B >= spread, sum within bounds
    skin_min_spread: float = config.SKIN_MIN_SPREAD
    skin_min_sum: float = config.SKIN_MIN_SUM
    skin_max_sum: float = config.SKIN_MAX_SUM
    skin_min_ratio: float = config.SKIN_MIN_RATIO
    skin_max_ratio: float = config.SKIN_MAX_RATIO
    lax_min_luminance: float = config.LAX_LUMA_MIN
    lax_max_luminance: float = config.LAX_LUMA_MAX
    strict_min_luminance: float = config.STRICT_LUMA_MIN
    strict_max_luminance: float = config.STRICT_LUMA_MAX
    edge_threshold: float = config.EDGE_THRESHOLD
    min_sharpness: float = config.SHARPNESS_MIN
    min_edge_ratio: float = config.EDGE_RATIO_MIN


@dataclass(frozen=True)
class PositionReading:
    position: PositionStatus
    quality: QualityStatus
    skin_ratio: float = 0.0
    mean_luminance: float = 0.0
    sharpness: float = 0.0
    edge_ratio: float = 0.0


MEASURING = PositionReading(PositionStatus.MEASURING, QualityStatus.MEASURING)


def center_roi(frame: np.ndarray, fraction: float) -> Optional[np.ndarray]:
    h, w = frame.shape[:2]
    side = int(min(h, w) * fraction)
    if side < 2:
        return None
    y0 = (h - side) // 2
    x0 = (w - side) // 2
    return frame[y0:y0 + side, x0:x0 + side]


def skin_mask(region: np.ndarray, t: PositionThresholds) -> np.ndarray:
    rgb = region[..., :3].astype(np.int32)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    total = r + g + b
    return ((r > g) & (g > b)
            & ((r - b) >= t.skin_min_spread)
            & (total >= t.skin_min_sum) & (total <= t.skin_max_sum))


def sharpness_stats(luma: np.ndarray, edge_threshold: float) -> Tuple[float, float]:
    """Mean absolute horizontal difference and share of differences above threshold."""
    diffs = np.abs(np.diff(luma, axis=1))
    return float(diffs.mean()), float((diffs > edge_threshold).mean())


class SubjectPositionAnalyzer:
    def __init__(self, thresholds: Optional[PositionThresholds] = None) -> None:
        self.thresholds = thresholds or PositionThresholds()

    def analyze(self, frame: Optional[np.ndarray]) -> PositionReading:
        if frame_area(frame) == 0:
            return MEASURING
        t = self.thresholds
        try:
            roi = center_roi(frame, t.roi_fraction)
            if roi is None:
                return MEASURING
            skin = float(skin_mask(roi, t).mean())
            luma = luminance(roi)
            avg = float(luma.mean())
            sharpness, edge_ratio = sharpness_stats(luma, t.edge_threshold)
        except Exception as e:
            logger.debug("Position measurement failed: %s", e)
            return MEASURING

        position, quality = self.classify(skin, avg, sharpness, edge_ratio)
        return PositionReading(position, quality, skin, avg, sharpness, edge_ratio)

    def classify(self, skin: float, avg: float, sharpness: float,
                 edge_ratio: float) -> Tuple[PositionStatus, QualityStatus]:
        t = self.thresholds
        adequate = (t.skin_min_ratio <= skin <= t.skin_max_ratio
                    and t.lax_min_luminance <= avg <= t.lax_max_luminance)
        if not adequate:
            return PositionStatus.INADEQUATE, QualityStatus.POOR

        strict = t.strict_min_luminance <= avg <= t.strict_max_luminance
        if strict and sharpness >= t.min_sharpness and edge_ratio >= t.min_edge_ratio:
            return PositionStatus.ADEQUATE, QualityStatus.EXCELLENT
        if strict:
            return PositionStatus.ADEQUATE, QualityStatus.GOOD
        return PositionStatus.ADEQUATE, QualityStatus.POOR
