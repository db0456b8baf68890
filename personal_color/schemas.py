from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

PERSONAL_COLOR_TYPES: Tuple[str, ...] = (
    "Spring Warm Light",
    "Spring Warm Bright",
    "Summer Cool Light",
    "Summer Cool Mute",
    "Autumn Warm Mute",
    "Autumn Warm Deep",
    "Winter Cool Bright",
    "Winter Cool Deep",
)

SCORE_MIN, SCORE_MAX = 80, 100
MIN_PRODUCTS = 3


class LightingStatus(str, Enum):
    GOOD = "good"
    POOR = "poor"
    MEASURING = "measuring"


class PositionStatus(str, Enum):
    ADEQUATE = "adequate"
    INADEQUATE = "inadequate"
    MEASURING = "measuring"


class QualityStatus(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"
    MEASURING = "measuring"


class ProductCategory(str, Enum):
    FOUNDATION = "Foundation"
    CUSHION = "Cushion"
    LIPSTICK = "Lipstick"
    BLUSHER = "Blusher"
    EYESHADOW = "Eyeshadow"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrameAssessment(_CamelModel):
    lighting_status: LightingStatus = LightingStatus.MEASURING
    position_status: PositionStatus = PositionStatus.MEASURING
    quality_status: QualityStatus = QualityStatus.MEASURING
    ready: bool = False


class SessionInfo(_CamelModel):
    id: str
    assessment: FrameAssessment


class Product(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    category: ProductCategory
    name: str = Field(..., min_length=1)
    shade: str
    price: int = Field(..., gt=0, description="Price in the minor currency unit.")
    rating: float = Field(..., ge=0, le=5)
    review_count: int = Field(..., ge=0)
    reason: Optional[str] = None


class PersonalColorProfile(_CamelModel):
    """The validated beauty profile handed back to callers."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    personal_color: str
    personal_color_description: str = Field(..., min_length=1)
    score: int = Field(..., ge=SCORE_MIN, le=SCORE_MAX)
    recommended_products: Tuple[Product, ...] = Field(..., min_length=MIN_PRODUCTS)
    skin_analysis: Optional[str] = None
    makeup_analysis: Optional[str] = None
    representative_color: Optional[str] = None
    alternate_color: Optional[str] = None

    @field_validator("personal_color")
    @classmethod
    def _known_color_type(cls, v: str) -> str:
        if v not in PERSONAL_COLOR_TYPES:
            raise ValueError(f"unknown personal color type: {v!r}")
        return v


class FailureReason(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    NETWORK_ERROR = "network_error"
    BAD_STATUS = "bad_status"
    EMPTY_RESPONSE = "empty_response"


@dataclass(frozen=True)
class ServiceFailure:
    reason: FailureReason
    detail: str = ""
