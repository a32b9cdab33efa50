from sqlalchemy import update, delete
from sqlmodel import Session, select
from app.core.config import settings
from app.core.errors import UploadValidationError, InvalidStateError
from app.models import Video, VideoAnalysis, VideoFrame
from app.services.storage import ObjectStorage
from app.services.video_state import get_progress, fail_video
from app.core.clock import as_utc, utc_now
from typing import Callable, Optional, List
from uuid import uuid4
import logging
import os

logger = logging.getLogger(__name__)


def video_prefix(video: Video) -> str:
    return f"{video.owner_id}/{video.id}/"


def _isoformat(value) -> Optional[str]:
    return as_utc(value).isoformat() if value else None


def create_upload_intent(session: Session, user_id: str, filename: str, filesize: int, mimetype: str) -> Video:
    """validate an upload request and register a pending_upload video"""
    if not filename or not filesize or not mimetype:
        raise UploadValidationError("Missing required fields: filename, filesize, mimetype")
    if mimetype not in settings.ALLOWED_VIDEO_TYPES:
        raise UploadValidationError("Invalid file type. Allowed types: mp4, mov, webm, avi, mkv")
    if filesize > settings.MAX_UPLOAD_BYTES:
        mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise UploadValidationError(f"File size exceeds maximum limit of {mb}MB")

    video_id = uuid4()
    ext = os.path.splitext(filename)[1].lstrip(".").lower() or "mp4"
    video = Video(
        id=video_id,
        owner_id=user_id,
        original_filename=filename,
        source_path=f"{user_id}/{video_id}/video.{ext}",
        status="pending_upload",
    )
    session.add(video)
    session.commit()
    session.refresh(video)
    return video


def store_upload(storage: ObjectStorage, video: Video, data: bytes, content_type: str) -> str:
    """put the uploaded bytes at the video's source path"""
    if video.status != "pending_upload":
        raise InvalidStateError("Video has already been uploaded")
    if not data:
        raise UploadValidationError("Uploaded file is empty")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise UploadValidationError(f"File size exceeds maximum limit of {mb}MB")
    return storage.upload(video.source_path, data, content_type)


def start_processing(session: Session, video: Video, enqueue: Callable) -> Video:
    """
    flip a video to 'processing' and hand it to the worker without waiting.
    failed and timed out videos may be re-run; their old results are cleared
    """
    if video.status == "processing":
        raise InvalidStateError("Video is already being processed")
    if video.status == "completed":
        raise InvalidStateError("Video has already been processed")

    # conditional flip guards against two concurrent start requests
    result = session.execute(
        update(Video)
        .where(Video.id == video.id, Video.status == video.status)
        .values(
            status="processing",
            error_message=None,
            processing_started_at=utc_now(),
            processing_completed_at=None,
        )
    )
    if result.rowcount != 1:
        session.rollback()
        raise InvalidStateError("Video status changed, try again")

    session.execute(delete(VideoFrame).where(VideoFrame.video_id == video.id))
    session.execute(delete(VideoAnalysis).where(VideoAnalysis.video_id == video.id))
    session.commit()
    session.refresh(video)

    try:
        enqueue(video.id, video.owner_id, video.source_path)
    except Exception as e:
        logger.error(f"could not enqueue video {video.id}: {e}", exc_info=True)
        fail_video(session.get_bind(), video.id, f"Failed to queue processing job: {e}")
        session.refresh(video)
        raise

    logger.info(f"video {video.id} queued for processing")
    return video


def get_analysis(session: Session, video: Video) -> Optional[VideoAnalysis]:
    return session.exec(
        select(VideoAnalysis).where(VideoAnalysis.video_id == video.id)
    ).first()


def list_frames(session: Session, video: Video) -> List[VideoFrame]:
    return session.exec(
        select(VideoFrame)
        .where(VideoFrame.video_id == video.id)
        .order_by(VideoFrame.frame_number)
    ).all()


def frame_to_dict(frame: VideoFrame) -> dict:
    return {
        "frame_number": frame.frame_number,
        "storage_path": frame.storage_path,
        "lighting": frame.lighting,
        "sharpness": frame.sharpness,
        "framing": frame.framing,
        "overall": frame.overall,
        "issues": frame.issues,
        "timestamp_seconds": frame.timestamp_seconds,
    }


def build_results(session: Session, video: Video, include_frames: bool = False) -> dict:
    """poll payload: progress while processing, scores once completed"""
    if video.status == "pending_upload":
        raise InvalidStateError("Video has not been uploaded yet")

    if video.status == "processing":
        return {
            "video_id": str(video.id),
            "status": "processing",
            "progress": get_progress(session, video.id),
            "message": "Video is still being processed",
        }

    if video.status in ("failed", "timeout"):
        return {
            "video_id": str(video.id),
            "status": video.status,
            "error_message": video.error_message or "Processing failed",
        }

    analysis = get_analysis(session, video)
    processing_time = None
    if video.processing_started_at and video.processing_completed_at:
        processing_time = round((as_utc(video.processing_completed_at) - as_utc(video.processing_started_at)).total_seconds())

    payload = {
        "video_id": str(video.id),
        "filename": video.original_filename,
        "status": video.status,
        "scores": {
            "lighting": analysis.lighting_score if analysis else None,
            "sharpness": analysis.sharpness_score if analysis else None,
            "framing": analysis.framing_score if analysis else None,
            "audio": analysis.audio_score if analysis else None,
            "final": analysis.final_score if analysis else None,
        },
        "issues": (analysis.issues if analysis else None) or {},
        "metadata": {
            "frame_count": analysis.frame_count if analysis else 0,
            "duration": analysis.duration_seconds if analysis else None,
            "processing_time": processing_time,
        },
        "created_at": as_utc(video.created_at).isoformat(),
        "processing_completed_at": _isoformat(video.processing_completed_at),
    }

    if include_frames:
        payload["frames"] = [frame_to_dict(f) for f in list_frames(session, video)]

    return payload


def video_to_dict(video: Video, analysis: Optional[VideoAnalysis]) -> dict:
    return {
        "id": str(video.id),
        "filename": video.original_filename,
        "status": video.status,
        "error_message": video.error_message,
        "created_at": as_utc(video.created_at).isoformat(),
        "processing_started_at": _isoformat(video.processing_started_at),
        "processing_completed_at": _isoformat(video.processing_completed_at),
        "final_score": analysis.final_score if analysis else None,
    }


def list_videos(session: Session, user_id: str, status: Optional[str] = None, limit: int = 20, offset: int = 0) -> List[dict]:
    """a user's videos, newest first"""
    query = select(Video).where(Video.owner_id == user_id)
    if status:
        query = query.where(Video.status == status)
    query = query.order_by(Video.created_at.desc()).offset(offset).limit(limit)

    videos = session.exec(query).all()
    return [video_to_dict(video, get_analysis(session, video)) for video in videos]


def delete_video(session: Session, storage: ObjectStorage, video: Video) -> int:
    """remove stored objects and every row belonging to the video"""
    if video.status == "processing":
        raise InvalidStateError("Cannot delete a video while it is being processed")

    prefix = video_prefix(video)
    paths = [prefix + item["name"] for item in storage.list(prefix)]
    removed = storage.remove(paths) if paths else 0

    session.execute(delete(VideoFrame).where(VideoFrame.video_id == video.id))
    session.execute(delete(VideoAnalysis).where(VideoAnalysis.video_id == video.id))
    session.delete(video)
    session.commit()
    logger.info(f"deleted video {video.id} ({removed} stored objects)")
    return removed
