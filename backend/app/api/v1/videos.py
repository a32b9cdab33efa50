from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session
from app.api.deps import get_current_user_id, get_object_storage, get_owned_video
from app.core.db import get_session
from app.core.errors import InvalidStateError
from app.models import Video, VIDEO_STATUSES
from app.services.storage import ObjectStorage
from app.services.videos import list_videos, delete_video
from typing import Optional

router = APIRouter()

@router.get("/")
def get_video_library(
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
    status: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
):
    """the caller's videos, newest first"""
    if status and status not in VIDEO_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown status: {status}")
    videos = list_videos(session, user_id, status=status, limit=limit, offset=offset)
    return {"videos": videos, "total": len(videos)}

@router.delete("/{video_id}")
def remove_video(
    video: Video = Depends(get_owned_video),
    session: Session = Depends(get_session),
    storage: ObjectStorage = Depends(get_object_storage),
):
    video_id = str(video.id)
    try:
        removed = delete_video(session, storage, video)
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"message": "Video deleted", "video_id": video_id, "objects_removed": removed}
