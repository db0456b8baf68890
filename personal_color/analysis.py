import logging
import random
from typing import Optional, Union

from .gemini import GeminiProfileService
from .interpreter import interpret_response
from .prompt import AnalysisImage, build_request
from .schemas import PersonalColorProfile

logger = logging.getLogger("personal_color.analysis")


def get_profile_service() -> GeminiProfileService:
    return GeminiProfileService()


def analyze_personal_color(image: Union[AnalysisImage, bytes, str, None] = None,
                           service: Optional[GeminiProfileService] = None,
                           rng: Optional[random.Random] = None) -> PersonalColorProfile:
    """Build the request, make a single service attempt and interpret what comes back."""
    request = build_request(image)
    logger.info("Requesting profile (image attached: %s)", request.image is not None)
    result = (service or GeminiProfileService()).generate(request)
    return interpret_response(result, rng=rng)
