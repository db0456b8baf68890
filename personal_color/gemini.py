# personal_color/gemini.py
"""
Gemini transport for profile requests. One attempt per request, no retries:
every failure is reported as a ServiceFailure and the interpreter falls back.
"""
from __future__ import annotations

import logging
from typing import Optional, Union

from personal_color import config
from personal_color.prompt import ProfileRequest
from personal_color.schemas import FailureReason, ServiceFailure

logger = logging.getLogger("personal_color.gemini")


class GeminiProfileService:
    def __init__(self, api_key: Optional[str] = None, client=None) -> None:
        self.api_key = (config.GEMINI_API_KEY if api_key is None else api_key).strip()
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self):
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
            logger.info("Gemini client initialized")
        return self._client

    def generate(self, request: ProfileRequest) -> Union[str, ServiceFailure]:
        if not self.configured:
            logger.warning("Gemini API key not set; skipping the service call")
            return ServiceFailure(FailureReason.MISSING_CREDENTIAL, "GEMINI_API_KEY is not set")

        from google.genai import errors, types

        contents = []
        if request.image is not None:
            contents.append(types.Part.from_bytes(data=request.image.data,
                                                  mime_type=request.image.mime_type))
        contents.append(request.prompt)

        try:
            response = self._get_client().models.generate_content(
                model=request.model,
                contents=contents,
                config=types.GenerateContentConfig(
                    temperature=config.GEMINI_TEMPERATURE,
                    response_mime_type=request.response_mime_type,
                ),
            )
        except errors.APIError as e:
            code = getattr(e, "code", None)
            logger.warning("Gemini API error %s: %s", code, e)
            if code in (401, 403):
                return ServiceFailure(FailureReason.INVALID_CREDENTIAL, str(e))
            return ServiceFailure(FailureReason.BAD_STATUS, str(e))
        except Exception as e:
            logger.warning("Gemini call failed: %s", e)
            return ServiceFailure(FailureReason.NETWORK_ERROR, str(e))

        text = getattr(response, "text", None)
        if not text or not text.strip():
            logger.warning("Gemini returned empty text for model=%s", request.model)
            return ServiceFailure(FailureReason.EMPTY_RESPONSE, "empty response text")
        return text
