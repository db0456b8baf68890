# personal_color/interpreter.py
"""
Turns whatever text the generative model returned into a PersonalColorProfile.

The JSON object is located by a fixed chain of extractors, tried in order;
the first candidate that parses as a JSON object wins. The parsed object is
then normalized field by field, with the fallback catalog filling in whatever
cannot be trusted. Every path ends in a valid profile.
"""
from __future__ import annotations

import json
import logging
import math
import random
import re
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import ValidationError

from personal_color.fallback import fallback_products, fallback_profile
from personal_color.schemas import (
    MIN_PRODUCTS,
    PERSONAL_COLOR_TYPES,
    SCORE_MAX,
    SCORE_MIN,
    PersonalColorProfile,
    Product,
    ProductCategory,
    ServiceFailure,
)

logger = logging.getLogger("personal_color.interpreter")

DEFAULT_DESCRIPTION = (
    "Your natural coloring is harmonious and easy to flatter. "
    "Soft, clear shades bring out a fresh and radiant look."
)
RANDOM_SCORE_RANGE = (85, 95)
OPTIONAL_TEXT_FIELDS = ("skinAnalysis", "makeupAnalysis", "representativeColor", "alternateColor")

_JSON_FENCE = re.compile(r"```[ \t]*json[ \t]*\r?\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[^\n`]*\r?\n?(.*?)```", re.DOTALL)
_JSON_MARKER = re.compile(r"\bjson\b[\s:=]*(?=\{)", re.IGNORECASE)
_SPACES = re.compile(r"\s+")

_COLOR_LOOKUP = {c.lower(): c for c in PERSONAL_COLOR_TYPES}
_CATEGORY_LOOKUP = {c.value.lower(): c for c in ProductCategory}


# ---------------- Extraction ----------------
def balanced_object(text: str, start: int = 0) -> Optional[str]:
    """The first brace-balanced {...} span at or after `start`, string-aware."""
    begin = text.find("{", start)
    if begin < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(begin, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[begin:i + 1]
    return None


def from_json_fence(text: str) -> Optional[str]:
    m = _JSON_FENCE.search(text)
    return m.group(1).strip() if m else None


def from_any_fence(text: str) -> Optional[str]:
    m = _ANY_FENCE.search(text)
    return m.group(1).strip() if m else None


def from_json_marker(text: str) -> Optional[str]:
    m = _JSON_MARKER.search(text)
    return balanced_object(text, m.end()) if m else None


def from_first_object(text: str) -> Optional[str]:
    return balanced_object(text)


EXTRACTORS: Tuple[Callable[[str], Optional[str]], ...] = (
    from_json_fence,
    from_any_fence,
    from_json_marker,
    from_first_object,
)


def _candidates(text: str) -> Iterator[str]:
    for extract in EXTRACTORS:
        candidate = extract(text)
        if candidate:
            yield candidate


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    for candidate in _candidates(text):
        try:
            parsed = json.loads(candidate)
        except (ValueError, RecursionError):
            # also over-long integer literals (ValueError) and deep nesting
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


# ---------------- Normalization ----------------
def _personal_color(value: Any, rng: random.Random) -> str:
    if isinstance(value, str):
        key = _SPACES.sub(" ", value).strip().lower()
        if key in _COLOR_LOOKUP:
            return _COLOR_LOOKUP[key]
    picked = rng.choice(PERSONAL_COLOR_TYPES)
    logger.info("Unknown personal color %r, substituting %s", value, picked)
    return picked


def _score(value: Any, rng: random.Random) -> int:
    # ints compare exactly; very large ones do not fit in a float
    if isinstance(value, int) and not isinstance(value, bool):
        if SCORE_MIN <= value <= SCORE_MAX:
            return value
    elif isinstance(value, float) and value.is_integer() and SCORE_MIN <= value <= SCORE_MAX:
        return int(value)
    return rng.randint(*RANDOM_SCORE_RANGE)


def _text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _product(raw: Any) -> Optional[Product]:
    if not isinstance(raw, dict):
        return None
    data = dict(raw)
    category = data.get("category")
    if isinstance(category, str):
        data["category"] = _CATEGORY_LOOKUP.get(category.strip().lower(), category)
    price = data.get("price")
    if isinstance(price, float) and math.isfinite(price):
        data["price"] = int(round(price))
    rating = data.get("rating")
    if isinstance(rating, int) and not isinstance(rating, bool):
        data["rating"] = float(min(5, max(0, rating)))
    elif isinstance(rating, float) and math.isfinite(rating):
        data["rating"] = min(5.0, max(0.0, rating))
    try:
        return Product.model_validate(data)
    except ValidationError as e:
        logger.debug("Dropping product %r: %s", raw, e.error_count())
        return None


def _products(value: Any) -> List[Product]:
    if not isinstance(value, list):
        return []
    return [p for p in (_product(item) for item in value) if p is not None]


def pad_products(products: List[Product]) -> List[Product]:
    """Append catalog products (originals first, untouched) when the list is too short."""
    if len(products) >= MIN_PRODUCTS:
        return products
    names = {p.name.lower() for p in products}
    padded = list(products)
    for p in fallback_products():
        if p.name.lower() not in names:
            padded.append(p)
            names.add(p.name.lower())
    logger.warning("Padded product list from %d to %d catalog-backed entries", len(products), len(padded))
    return padded


def normalize_profile(data: Dict[str, Any], rng: Optional[random.Random] = None) -> PersonalColorProfile:
    rng = rng or random.Random()
    profile: Dict[str, Any] = {
        "personalColor": _personal_color(data.get("personalColor"), rng),
        "personalColorDescription": _text(data.get("personalColorDescription")) or DEFAULT_DESCRIPTION,
        "score": _score(data.get("score"), rng),
        "recommendedProducts": pad_products(_products(data.get("recommendedProducts"))),
    }
    for field in OPTIONAL_TEXT_FIELDS:
        value = _text(data.get(field))
        if value is not None:
            profile[field] = value
    return PersonalColorProfile.model_validate(profile)


# ---------------- Public API ----------------
def interpret_response(result: Union[str, ServiceFailure, None],
                       rng: Optional[random.Random] = None) -> PersonalColorProfile:
    """
    Accepts the raw model text, or the ServiceFailure describing why there is none.
    Anything else is a caller error and raises TypeError.
    """
    if result is None:
        logger.warning("No model response; using fallback profile")
        return fallback_profile()
    if isinstance(result, ServiceFailure):
        logger.warning("Service failure (%s): %s; using fallback profile", result.reason.value, result.detail)
        return fallback_profile()
    if not isinstance(result, str):
        raise TypeError(f"result must be str, ServiceFailure or None, not {type(result).__name__}")

    data = extract_json(result)
    if data is None:
        logger.warning("No JSON object in model response: %r", result[:200])
        return fallback_profile()
    try:
        return normalize_profile(data, rng)
    except ValidationError as e:
        logger.warning("Normalized profile failed validation (%d errors); using fallback", e.error_count())
        return fallback_profile()
