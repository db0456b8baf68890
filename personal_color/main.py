# personal_color/main.py

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, File, Form, UploadFile
from fastapi.middleware.cors import CORSMiddleware

import uvicorn

from personal_color import config
from personal_color.analysis import analyze_personal_color, get_profile_service
from personal_color.capture_api import read_upload, router as capture_router, sessions
from personal_color.gemini import GeminiProfileService
from personal_color.prompt import AnalysisImage
from personal_color.schemas import PersonalColorProfile

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("personal_color.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # capture timers must not outlive the app
    sessions.close_all()
    logger.info("All capture sessions closed")


app = FastAPI(title="Personal Color API", version=config.APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(capture_router)


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "version": app.version}


@app.post("/analyze/personal-color", response_model=PersonalColorProfile,
          response_model_exclude_none=True)
def analyze(
    file: Optional[UploadFile] = File(default=None, description="face photo"),
    image: Optional[str] = Form(default=None, description="face photo as a data URL"),
    service: GeminiProfileService = Depends(get_profile_service),
) -> PersonalColorProfile:
    """
    Accepts either:
      - an uploaded photo via 'file', or
      - a data URL via 'image' (what the browser capture canvas produces).
    With neither, the profile is generated from the prompt alone.
    Always answers with a complete profile; service problems fall back to the catalog.
    """
    payload: Optional[AnalysisImage] = None
    if file is not None:
        data = read_upload(file)
        payload = AnalysisImage(data=data, mime_type=file.content_type, size=len(data))
    elif image:
        payload = AnalysisImage(data=image)
    return analyze_personal_color(payload, service=service)


if __name__ == "__main__":
    uvicorn.run("personal_color.main:app", host="0.0.0.0", port=8000, reload=False)
