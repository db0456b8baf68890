# personal_color/prompt.py
from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

from personal_color import config
from personal_color.schemas import PERSONAL_COLOR_TYPES, SCORE_MAX, ProductCategory

logger = logging.getLogger("personal_color.prompt")

DEFAULT_MIME = "image/jpeg"
SUPPORTED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")
_MIME_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg", "image/x-png": "image/png"}
_PIL_FORMATS = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}
_DATA_URL = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>(?:;[^;,]*)*),(?P<payload>.*)$", re.DOTALL)

_COLOR_LIST = ", ".join(f'"{c}"' for c in PERSONAL_COLOR_TYPES)
_CATEGORY_LIST = ", ".join(f'"{c.value}"' for c in ProductCategory)

PROFILE_PROMPT = f"""You are a professional and friendly beauty consultant.
Look at the attached face photo (if any) and produce a personal color beauty profile.
The analysis should be positive and empowering.

Respond with exactly one JSON object and nothing else, using this shape:
{{
  "personalColor": one of [{_COLOR_LIST}],
  "personalColorDescription": a friendly single-paragraph description of this color type,
  "skinAnalysis": a short paragraph about skin tone, undertone and texture,
  "makeupAnalysis": a short paragraph about which makeup shades flatter and which to avoid,
  "representativeColor": the most flattering color as a hex string such as "#F4C7A1",
  "alternateColor": the second closest personal color type from the same list,
  "score": an integer between 85 and 95 for how well the photo suited the analysis,
  "recommendedProducts": a list of 5 to 7 objects, each with
    "category": one of [{_CATEGORY_LIST}],
    "name": product name,
    "shade": shade name,
    "price": positive integer price,
    "rating": number between 0 and 5 such as 4.7,
    "reviewCount": non-negative integer such as 3241,
    "reason": one sentence on why it suits this color type
}}
Generate realistic but fictional product names and details. Prices must be reasonable
whole numbers. Scores must never exceed {SCORE_MAX}."""


@dataclass
class AnalysisImage:
    """A captured or uploaded still: raw bytes, a base64 string or a data URL."""
    data: Union[bytes, str]
    mime_type: Optional[str] = None
    size: Optional[int] = None


class InlineImage(BaseModel):
    mime_type: str
    data: bytes


class ProfileRequest(BaseModel):
    prompt: str
    image: Optional[InlineImage] = None
    model: str = config.GEMINI_MODEL_NAME
    response_mime_type: str = "application/json"


def normalize_mime(mime: Optional[str]) -> Optional[str]:
    if not mime:
        return None
    m = mime.split(";")[0].strip().lower()
    m = _MIME_ALIASES.get(m, m)
    if m in ("", "application/octet-stream"):
        return None
    return m


def sniff_mime(data: bytes) -> Optional[str]:
    """Format Pillow recognizes in the header. DecompressionBombError propagates."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return _PIL_FORMATS.get(img.format or "")
    except (UnidentifiedImageError, OSError, ValueError):
        return None


def estimated_decoded_size(b64: str) -> int:
    padding = len(b64) - len(b64.rstrip("="))
    return max(0, len(b64) * 3 // 4 - padding)


def _decode_payload(image: AnalysisImage, max_bytes: int):
    """Returns (raw bytes, declared mime) or None when the payload must be dropped."""
    declared = image.mime_type
    data = image.data
    if isinstance(data, (bytes, bytearray)):
        raw = bytes(data)
        if len(raw) > max_bytes:
            logger.info("Dropping image: %d bytes over limit", len(raw))
            return None
        return raw, declared

    text = data.strip()
    m = _DATA_URL.match(text)
    if m:
        if ";base64" not in m.group("params").lower():
            logger.info("Dropping image: data URL is not base64 encoded")
            return None
        declared = declared or m.group("mime")
        text = m.group("payload")
    text = re.sub(r"\s+", "", text)

    if estimated_decoded_size(text) > max_bytes:
        logger.info("Dropping image: ~%d decoded bytes over limit", estimated_decoded_size(text))
        return None
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        logger.info("Dropping image: payload is not valid base64")
        return None
    return raw, declared


def prepare_image(image: AnalysisImage, max_bytes: int = config.MAX_IMAGE_BYTES) -> Optional[InlineImage]:
    if image.size is not None and image.size > max_bytes:
        logger.info("Dropping image: declared size %d over limit", image.size)
        return None
    decoded = _decode_payload(image, max_bytes)
    if decoded is None:
        return None
    raw, declared = decoded
    if not raw:
        logger.info("Dropping image: empty payload")
        return None

    mime = normalize_mime(declared)
    if mime not in SUPPORTED_MIME_TYPES:
        try:
            sniffed = sniff_mime(raw)
        except Image.DecompressionBombError as e:
            logger.info("Dropping image: %s", e)
            return None
        if sniffed:
            mime = sniffed
        elif mime is None:
            mime = DEFAULT_MIME
        else:
            logger.info("Dropping image: unsupported type %s", mime)
            return None
    return InlineImage(mime_type=mime, data=raw)


def build_request(image: Union[AnalysisImage, bytes, str, None] = None,
                  max_bytes: int = config.MAX_IMAGE_BYTES) -> ProfileRequest:
    if image is None:
        return ProfileRequest(prompt=PROFILE_PROMPT)
    if isinstance(image, (bytes, bytearray, str)):
        image = AnalysisImage(data=image)
    elif not isinstance(image, AnalysisImage):
        raise TypeError(f"image must be AnalysisImage, bytes, str or None, not {type(image).__name__}")
    if not isinstance(image.data, (bytes, bytearray, str)):
        raise TypeError(f"image data must be bytes or str, not {type(image.data).__name__}")

    return ProfileRequest(prompt=PROFILE_PROMPT, image=prepare_image(image, max_bytes))
