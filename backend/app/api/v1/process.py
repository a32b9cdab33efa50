from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session
from app.api.deps import get_current_user_id
from app.core.db import get_session
from app.core.errors import InvalidStateError
from app.models import Video
from app.services.queue import enqueue_video_processing
from app.services.videos import start_processing
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


class ProcessRequest(BaseModel):
    video_id: UUID


@router.post("/")
def process_video(
    body: ProcessRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """start analysis; returns immediately, clients poll /api/results"""
    video = session.get(Video, body.video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    if video.owner_id != user_id:
        raise HTTPException(status_code=403, detail="Unauthorized")

    try:
        start_processing(session, video, enqueue=enqueue_video_processing)
    except InvalidStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to start video processing")

    return {
        "message": "Video processing started",
        "video_id": str(video.id),
        "status": "processing",
    }
