# personal_color/config.py
import logging
import os

logger = logging.getLogger("personal_color.config")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r, using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


# ---------------- Service ----------------
APP_VERSION = "1.0"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# ---------------- Gemini ----------------
GEMINI_API_KEY = (os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or "").strip()
GEMINI_MODEL_NAME = os.getenv("GEMINI_MODEL_NAME", "gemini-2.5-flash")
GEMINI_TEMPERATURE = _env_float("GEMINI_TEMPERATURE", 0.7)

# ---------------- Request images ----------------
MAX_IMAGE_BYTES = _env_int("MAX_IMAGE_BYTES", 4 * 1024 * 1024)

# ---------------- Sampling cadence (seconds) ----------------
EXPOSURE_INTERVAL_S = _env_float("EXPOSURE_INTERVAL_S", 1.5)
POSITION_INTERVAL_S = _env_float("POSITION_INTERVAL_S", 2.0)

# ---------------- Capture sessions (seconds) ----------------
SESSION_IDLE_TIMEOUT_S = _env_float("SESSION_IDLE_TIMEOUT_S", 300.0)
SESSION_REAP_INTERVAL_S = _env_float("SESSION_REAP_INTERVAL_S", 30.0)

# ---------------- Exposure tunables ----------------
LUMA_MIN = _env_float("LUMA_MIN", 70.0)
LUMA_MAX = _env_float("LUMA_MAX", 220.0)
LUMA_VAR_MAX = _env_float("LUMA_VAR_MAX", 2000.0)

# ---------------- Position / quality tunables ----------------
ROI_FRACTION = _env_float("ROI_FRACTION", 0.33)
SKIN_MIN_SPREAD = _env_float("SKIN_MIN_SPREAD", 15.0)
SKIN_MIN_SUM = _env_float("SKIN_MIN_SUM", 150.0)
SKIN_MAX_SUM = _env_float("SKIN_MAX_SUM", 700.0)
SKIN_MIN_RATIO = _env_float("SKIN_MIN_RATIO", 0.15)
SKIN_MAX_RATIO = _env_float("SKIN_MAX_RATIO", 0.60)
LAX_LUMA_MIN = _env_float("LAX_LUMA_MIN", 40.0)
LAX_LUMA_MAX = _env_float("LAX_LUMA_MAX", 240.0)
STRICT_LUMA_MIN = _env_float("STRICT_LUMA_MIN", 70.0)
STRICT_LUMA_MAX = _env_float("STRICT_LUMA_MAX", 200.0)
EDGE_THRESHOLD = _env_float("EDGE_THRESHOLD", 20.0)
SHARPNESS_MIN = _env_float("SHARPNESS_MIN", 4.0)
EDGE_RATIO_MIN = _env_float("EDGE_RATIO_MIN", 0.02)
