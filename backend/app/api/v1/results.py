from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session
from app.api.deps import get_owned_video
from app.core.db import get_session
from app.core.errors import InvalidStateError
from app.models import Video
from app.services.videos import build_results

router = APIRouter()


@router.get("/{video_id}")
def get_results(
    response: Response,
    include_frames: bool = False,
    video: Video = Depends(get_owned_video),
    session: Session = Depends(get_session),
):
    """
    poll endpoint. 202 with progress while processing, 200 once terminal
    """
    try:
        payload = build_results(session, video, include_frames=include_frames)
    except InvalidStateError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if payload["status"] == "processing":
        response.status_code = 202
    elif payload["status"] == "completed":
        response.headers["Cache-Control"] = "public, max-age=3600"
    return payload
