import json
import random

from google.genai import errors, types

from personal_color.analysis import analyze_personal_color
from personal_color.fallback import fallback_profile
from personal_color.gemini import GeminiProfileService
from personal_color.prompt import PROFILE_PROMPT, build_request
from personal_color.schemas import FailureReason, ServiceFailure

from conftest import FakeGenaiClient, face_frame, jpeg_bytes, profile_payload


def test_missing_credential_short_circuits(monkeypatch):
    def no_client(*args, **kwargs):
        raise AssertionError("no client may be built without a key")

    monkeypatch.setattr("google.genai.Client", no_client)
    service = GeminiProfileService(api_key="   ")
    assert not service.configured
    result = service.generate(build_request())
    assert isinstance(result, ServiceFailure)
    assert result.reason == FailureReason.MISSING_CREDENTIAL


def test_request_is_sent_once_with_image_first(model_text):
    client = FakeGenaiClient(text=model_text)
    service = GeminiProfileService(api_key="key", client=client)
    data = jpeg_bytes(face_frame())
    assert service.generate(build_request(data)) == model_text

    assert len(client.models.calls) == 1
    call = client.models.calls[0]
    image_part, prompt = call["contents"]
    assert isinstance(image_part, types.Part)
    assert image_part.inline_data.mime_type == "image/jpeg"
    assert image_part.inline_data.data == data
    assert prompt == PROFILE_PROMPT
    assert call["config"].response_mime_type == "application/json"


def test_text_only_request_sends_prompt_only(model_text):
    client = FakeGenaiClient(text=model_text)
    GeminiProfileService(api_key="key", client=client).generate(build_request())
    assert client.models.calls[0]["contents"] == [PROFILE_PROMPT]


def test_network_error_is_reported():
    client = FakeGenaiClient(error=ConnectionError("connection reset"))
    result = GeminiProfileService(api_key="key", client=client).generate(build_request())
    assert result.reason == FailureReason.NETWORK_ERROR
    assert "connection reset" in result.detail
    assert len(client.models.calls) == 1


def test_rejected_key_is_reported():
    err = errors.ClientError(401, {"error": {"code": 401, "message": "API key not valid",
                                             "status": "UNAUTHENTICATED"}})
    client = FakeGenaiClient(error=err)
    result = GeminiProfileService(api_key="key", client=client).generate(build_request())
    assert result.reason == FailureReason.INVALID_CREDENTIAL


def test_server_error_is_reported():
    err = errors.ServerError(503, {"error": {"code": 503, "message": "overloaded",
                                             "status": "UNAVAILABLE"}})
    client = FakeGenaiClient(error=err)
    result = GeminiProfileService(api_key="key", client=client).generate(build_request())
    assert result.reason == FailureReason.BAD_STATUS


def test_empty_text_is_reported():
    for text in (None, "", "   "):
        client = FakeGenaiClient(text=text)
        result = GeminiProfileService(api_key="key", client=client).generate(build_request())
        assert result.reason == FailureReason.EMPTY_RESPONSE


def test_analysis_end_to_end(model_text):
    client = FakeGenaiClient(text=f"```json\n{model_text}\n```")
    profile = analyze_personal_color(jpeg_bytes(face_frame()),
                                     service=GeminiProfileService(api_key="key", client=client))
    assert profile.personal_color == "Summer Cool Mute"
    assert len(profile.recommended_products) == 5


def test_analysis_without_key_returns_fallback():
    profile = analyze_personal_color(service=GeminiProfileService(api_key=""))
    assert profile == fallback_profile()


def test_analysis_with_thin_response_is_padded():
    text = json.dumps(profile_payload(n_products=1, score=500))
    client = FakeGenaiClient(text=text)
    profile = analyze_personal_color(service=GeminiProfileService(api_key="key", client=client),
                                     rng=random.Random(1))
    assert profile.recommended_products[0].name == "Product 0"
    assert len(profile.recommended_products) >= 3
    assert 85 <= profile.score <= 95
