# personal_color/capture_api.py
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile

from personal_color.analysis import analyze_personal_color, get_profile_service
from personal_color.capture import CaptureNotReady, CaptureSession, SessionRegistry, assess_still
from personal_color.frames import decode_frame
from personal_color.gemini import GeminiProfileService
from personal_color.schemas import FrameAssessment, PersonalColorProfile, SessionInfo

router = APIRouter(prefix="/capture", tags=["capture"])
sessions = SessionRegistry()


def get_sessions() -> SessionRegistry:
    return sessions


def read_upload(file: Optional[UploadFile]) -> bytes:
    if file is None:
        return b""
    data = file.file.read()
    file.file.close()
    return data


def _session(session_id: str, registry: SessionRegistry) -> CaptureSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Unknown capture session.")
    return session


def _info(session: CaptureSession) -> SessionInfo:
    return SessionInfo(id=session.id, assessment=session.assess_frame())


@router.post("/assess", response_model=FrameAssessment)
def assess(file: UploadFile = File(..., description="single still frame")) -> FrameAssessment:
    """One-shot assessment of an uploaded still. Undecodable input reads as 'measuring'."""
    return assess_still(decode_frame(read_upload(file)))


@router.post("/sessions", response_model=SessionInfo, status_code=201)
def create_session(registry: SessionRegistry = Depends(get_sessions)) -> SessionInfo:
    return _info(registry.create())


@router.get("/sessions/{session_id}", response_model=SessionInfo)
def session_status(session_id: str, registry: SessionRegistry = Depends(get_sessions)) -> SessionInfo:
    return _info(_session(session_id, registry))


@router.post("/sessions/{session_id}/frames", status_code=204)
def push_frame(session_id: str,
               file: UploadFile = File(..., description="latest camera frame"),
               registry: SessionRegistry = Depends(get_sessions)) -> Response:
    session = _session(session_id, registry)
    frame = decode_frame(read_upload(file))
    if frame is None:
        raise HTTPException(status_code=400, detail="Could not decode frame.")
    session.push_frame(frame)
    return Response(status_code=204)


@router.post("/sessions/{session_id}/switch", response_model=SessionInfo)
def switch_source(session_id: str, registry: SessionRegistry = Depends(get_sessions)) -> SessionInfo:
    session = _session(session_id, registry)
    session.switch_source()
    return _info(session)


@router.post("/sessions/{session_id}/analyze", response_model=PersonalColorProfile,
             response_model_exclude_none=True)
def analyze_capture(session_id: str,
                    enforce_ready: bool = Query(False),
                    registry: SessionRegistry = Depends(get_sessions),
                    service: GeminiProfileService = Depends(get_profile_service)) -> PersonalColorProfile:
    session = _session(session_id, registry)
    try:
        image = session.capture(enforce_ready=enforce_ready)
    except CaptureNotReady as e:
        raise HTTPException(status_code=409, detail=str(e))
    if image is None:
        raise HTTPException(status_code=409, detail="No frame available yet.")
    return analyze_personal_color(image, service=service)


@router.delete("/sessions/{session_id}", status_code=204)
def close_session(session_id: str, registry: SessionRegistry = Depends(get_sessions)) -> Response:
    if not registry.close(session_id):
        raise HTTPException(status_code=404, detail="Unknown capture session.")
    return Response(status_code=204)
