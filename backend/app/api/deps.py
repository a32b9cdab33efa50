from fastapi import Depends, Header, HTTPException
from sqlmodel import Session
from app.core.db import get_session
from app.models import Video
from app.services.storage import ObjectStorage, get_storage
from uuid import UUID


def get_current_user_id(x_user_id: str = Header(default="")) -> str:
    """
    user id asserted by the identity provider in front of this service.
    the bearer credential is validated upstream; only the id reaches us
    """
    if not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()


def get_object_storage() -> ObjectStorage:
    return get_storage()


def get_owned_video(
    video_id: UUID,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> Video:
    video = session.get(Video, video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    if video.owner_id != user_id:
        raise HTTPException(status_code=403, detail="Unauthorized")
    return video
