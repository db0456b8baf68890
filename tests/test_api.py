import base64
import json
import time

import pytest
from fastapi.testclient import TestClient

from personal_color.analysis import get_profile_service
from personal_color.capture import SessionRegistry
from personal_color.capture_api import get_sessions, sessions
from personal_color.fallback import FALLBACK_PROFILE
from personal_color.gemini import GeminiProfileService
from personal_color.main import app

from conftest import FakeGenaiClient, face_frame, oversized_png, png_bytes, profile_payload, solid_frame


class FastRegistry(SessionRegistry):
    def create(self, **kwargs):
        return super().create(exposure_interval=0.01, position_interval=0.01)


@pytest.fixture
def registry():
    reg = FastRegistry()
    yield reg
    reg.close_all()


@pytest.fixture
def client(registry):
    app.dependency_overrides[get_sessions] = lambda: registry
    app.dependency_overrides[get_profile_service] = lambda: GeminiProfileService(api_key="")
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def upload(frame_bytes, name="frame.png", content_type="image/png"):
    return {"file": (name, frame_bytes, content_type)}


def poll_ready(client, session_id, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/capture/sessions/{session_id}").json()
        if body["assessment"]["ready"]:
            return body
        time.sleep(0.02)
    return client.get(f"/capture/sessions/{session_id}").json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_assess_single_still(client):
    r = client.post("/capture/assess", files=upload(png_bytes(face_frame())))
    assert r.status_code == 200
    assert r.json() == {"lightingStatus": "good", "positionStatus": "adequate",
                        "qualityStatus": "good", "ready": True}


def test_assess_garbage_is_measuring(client):
    r = client.post("/capture/assess", files=upload(b"garbage"))
    assert r.status_code == 200
    assert r.json() == {"lightingStatus": "measuring", "positionStatus": "measuring",
                        "qualityStatus": "measuring", "ready": False}


def test_session_flow(client, registry):
    r = client.post("/capture/sessions")
    assert r.status_code == 201
    sid = r.json()["id"]
    assert r.json()["assessment"]["lightingStatus"] == "measuring"

    r = client.post(f"/capture/sessions/{sid}/frames", files=upload(png_bytes(face_frame())))
    assert r.status_code == 204
    assert poll_ready(client, sid)["assessment"]["ready"] is True

    r = client.post(f"/capture/sessions/{sid}/switch")
    assert r.json()["assessment"] == {"lightingStatus": "measuring", "positionStatus": "measuring",
                                      "qualityStatus": "measuring", "ready": False}

    r = client.delete(f"/capture/sessions/{sid}")
    assert r.status_code == 204
    assert client.get(f"/capture/sessions/{sid}").status_code == 404
    assert len(registry) == 0


def test_session_analyze(client):
    sid = client.post("/capture/sessions").json()["id"]
    assert client.post(f"/capture/sessions/{sid}/analyze").status_code == 409

    client.post(f"/capture/sessions/{sid}/frames", files=upload(png_bytes(solid_frame())))
    assert client.post(f"/capture/sessions/{sid}/analyze", params={"enforce_ready": True}).status_code == 409

    r = client.post(f"/capture/sessions/{sid}/analyze")
    assert r.status_code == 200
    assert r.json()["personalColor"] == FALLBACK_PROFILE["personalColor"]


def test_session_errors(client):
    assert client.get("/capture/sessions/nope").status_code == 404
    assert client.post("/capture/sessions/nope/switch").status_code == 404
    assert client.delete("/capture/sessions/nope").status_code == 404
    sid = client.post("/capture/sessions").json()["id"]
    assert client.post(f"/capture/sessions/{sid}/frames", files=upload(b"garbage")).status_code == 400


def test_analyze_without_key_returns_fallback(client):
    r = client.post("/analyze/personal-color", files=upload(png_bytes(face_frame())))
    assert r.status_code == 200
    body = r.json()
    assert body["personalColor"] == FALLBACK_PROFILE["personalColor"]
    assert body["score"] == FALLBACK_PROFILE["score"]
    assert len(body["recommendedProducts"]) >= 3
    assert "reviewCount" in body["recommendedProducts"][0]


def test_analyze_with_data_url_uses_model(client, model_text):
    fake = FakeGenaiClient(text=f"Here you go:\n```json\n{model_text}\n```")
    app.dependency_overrides[get_profile_service] = lambda: GeminiProfileService(api_key="k", client=fake)
    url = "data:image/png;base64," + base64.b64encode(png_bytes(face_frame())).decode()
    r = client.post("/analyze/personal-color", data={"image": url})
    assert r.status_code == 200
    assert r.json()["personalColor"] == "Summer Cool Mute"
    sent = fake.models.calls[0]["contents"]
    assert sent[0].inline_data.mime_type == "image/png"


def test_analyze_text_only(client, model_text):
    fake = FakeGenaiClient(text=model_text)
    app.dependency_overrides[get_profile_service] = lambda: GeminiProfileService(api_key="k", client=fake)
    r = client.post("/analyze/personal-color")
    assert r.status_code == 200
    assert len(fake.models.calls[0]["contents"]) == 1


def test_shutdown_closes_sessions():
    with TestClient(app) as c:
        sid = c.post("/capture/sessions").json()["id"]
        session = sessions.get(sid)
        assert session.running
    assert sessions.get(sid) is None
    assert not session.running


def test_analyze_with_oversized_image_still_answers(client):
    r = client.post("/analyze/personal-color",
                    files=upload(oversized_png(), name="blob", content_type="application/octet-stream"))
    assert r.status_code == 200
    assert r.json()["personalColor"] == FALLBACK_PROFILE["personalColor"]


def test_absent_optional_fields_are_omitted(client):
    payload = profile_payload()
    for key in ("skinAnalysis", "makeupAnalysis", "representativeColor"):
        del payload[key]
    fake = FakeGenaiClient(text=json.dumps(payload))
    app.dependency_overrides[get_profile_service] = lambda: GeminiProfileService(api_key="k", client=fake)

    body = client.post("/analyze/personal-color").json()
    sid = client.post("/capture/sessions").json()["id"]
    client.post(f"/capture/sessions/{sid}/frames", files=upload(png_bytes(face_frame())))
    session_body = client.post(f"/capture/sessions/{sid}/analyze").json()

    for result in (body, session_body):
        assert result["personalColor"] == "Summer Cool Mute"
        for key in ("skinAnalysis", "makeupAnalysis", "representativeColor", "alternateColor"):
            assert key not in result
