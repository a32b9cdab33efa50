from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel
from sqlmodel import Session
from app.api.deps import get_current_user_id, get_object_storage, get_owned_video
from app.core.db import get_session
from app.core.errors import UploadValidationError, InvalidStateError, StorageError
from app.models import Video
from app.services.storage import ObjectStorage
from app.services.videos import create_upload_intent, store_upload
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


class UploadIntentRequest(BaseModel):
    filename: str = ""
    filesize: int = 0
    mimetype: str = ""


@router.post("/intent")
def upload_intent(
    body: UploadIntentRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """register a video before its bytes arrive"""
    try:
        video = create_upload_intent(session, user_id, body.filename, body.filesize, body.mimetype)
    except UploadValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "video_id": str(video.id),
        "file_path": video.source_path,
        "upload_url": f"/api/upload/{video.id}",
        "status": video.status,
    }


@router.put("/{video_id}")
async def upload_video(
    file: UploadFile = File(...),
    video: Video = Depends(get_owned_video),
    storage: ObjectStorage = Depends(get_object_storage),
):
    data = await file.read()
    try:
        path = store_upload(storage, video, data, file.content_type or "application/octet-stream")
    except UploadValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError as e:
        logger.error(f"upload for video {video.id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to store upload")

    return {"video_id": str(video.id), "file_path": path, "size": len(data)}
