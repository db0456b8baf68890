import json
import struct
import zlib
from types import SimpleNamespace

import cv2
import numpy as np
import pytest

GRAY = (128, 128, 128)
SKIN = (200, 150, 120)
SKIN_LIGHT = (230, 170, 130)


def solid_frame(color=GRAY, h=120, w=160) -> np.ndarray:
    return np.full((h, w, 3), color, dtype=np.uint8)


def face_frame(textured: bool = False, h=120, w=160, fraction=0.33) -> np.ndarray:
    """Gray frame whose centre guide is half covered by flesh-toned pixels."""
    frame = solid_frame(GRAY, h, w)
    side = int(min(h, w) * fraction)
    y0, x0 = (h - side) // 2, (w - side) // 2
    half = side // 2
    frame[y0:y0 + side, x0:x0 + half] = SKIN
    if textured:
        frame[y0:y0 + side, x0:x0 + half:2] = SKIN_LIGHT
    return frame


def png_bytes(frame: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", cv2.cvtColor(frame, cv2.COLOR_RGB2BGR))
    assert ok
    return buf.tobytes()


def jpeg_bytes(frame: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".jpg", cv2.cvtColor(frame, cv2.COLOR_RGB2BGR))
    assert ok
    return buf.tobytes()


def _png_chunk(kind: bytes, body: bytes) -> bytes:
    return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", zlib.crc32(kind + body))


def oversized_png(width=30000, height=30000) -> bytes:
    """A tiny PNG whose header declares far more pixels than Pillow will open."""
    return (b"\x89PNG\r\n\x1a\n"
            + _png_chunk(b"IHDR", struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0))
            + _png_chunk(b"IDAT", zlib.compress(b"\x00" * 16))
            + _png_chunk(b"IEND", b""))


def product(name="Silk Lip", category="Lipstick", **overrides):
    p = {"category": category, "name": name, "shade": "Rose 02", "price": 21000,
         "rating": 4.5, "reviewCount": 120, "reason": "Soft rose suits cool skin."}
    p.update(overrides)
    return p


def profile_payload(n_products=5, **overrides):
    data = {
        "personalColor": "Summer Cool Mute",
        "personalColorDescription": "Soft, muted and cool shades make you glow.",
        "skinAnalysis": "Fair skin with a pink undertone.",
        "makeupAnalysis": "Dusty rose and mauve work well.",
        "representativeColor": "#C8A2C8",
        "score": 91,
        "recommendedProducts": [product(name=f"Product {i}") for i in range(n_products)],
    }
    data.update(overrides)
    return data


class FakeModels:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeGenaiClient:
    def __init__(self, text=None, error=None):
        self.models = FakeModels(text=text, error=error)


@pytest.fixture
def model_text():
    return json.dumps(profile_payload())
