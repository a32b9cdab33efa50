from sqlalchemy import update, func
from sqlmodel import Session, select
from app.models import Video, VideoAnalysis, VideoFrame
from app.analysis.aggregate import AggregateResult
from app.analysis.frames import FrameScore
from app.core.clock import utc_now
from app.core.errors import AggregationError, NotProcessingError
from uuid import UUID
from typing import Optional
import logging
import math

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Processing exceeded maximum time limit"


def _lock_processing(session: Session, video_id: UUID):
    """
    row-lock the video for the rest of the transaction and require it to
    still be 'processing', so no row lands after a terminal write
    """
    status = session.exec(
        select(Video.status).where(Video.id == video_id).with_for_update()
    ).first()
    if status != "processing":
        raise NotProcessingError(f"video {video_id} is {status or 'missing'}, not processing")


def is_processing(engine, video_id: UUID) -> bool:
    with Session(engine) as session:
        status = session.exec(select(Video.status).where(Video.id == video_id)).first()
    return status == "processing"


def insert_analysis(engine, video_id: UUID, frame_count: int, duration_seconds: float) -> UUID:
    """create the analysis row once the frame count is known; polling progress starts here"""
    with Session(engine) as session:
        _lock_processing(session, video_id)
        analysis = VideoAnalysis(
            video_id=video_id,
            frame_count=frame_count,
            duration_seconds=duration_seconds,
        )
        session.add(analysis)
        session.commit()
        session.refresh(analysis)
        return analysis.id


def insert_frame(
    engine,
    video_id: UUID,
    frame_number: int,
    storage_path: str,
    score: FrameScore,
    timestamp_seconds: float,
):
    """append one frame result"""
    with Session(engine) as session:
        _lock_processing(session, video_id)
        frame = VideoFrame(
            video_id=video_id,
            frame_number=frame_number,
            storage_path=storage_path,
            lighting=score.lighting,
            sharpness=score.sharpness,
            framing=score.framing,
            overall=score.overall,
            issues=list(score.issues),
            timestamp_seconds=timestamp_seconds,
        )
        session.add(frame)
        session.commit()


def _claim_terminal(session: Session, video_id: UUID, status: str, error_message: Optional[str]) -> bool:
    """
    conditional status flip; only a video still in 'processing' is updated,
    so at most one terminal write per job can succeed
    """
    result = session.execute(
        update(Video)
        .where(Video.id == video_id, Video.status == "processing")
        .values(
            status=status,
            error_message=error_message,
            processing_completed_at=utc_now(),
        )
    )
    return result.rowcount == 1


def complete_video(engine, video_id: UUID, result: AggregateResult) -> bool:
    """write final scores and mark the video completed in one transaction"""
    with Session(engine) as session:
        if not _claim_terminal(session, video_id, "completed", None):
            session.rollback()
            logger.warning(f"video {video_id} already left processing, completion discarded")
            return False

        analysis = session.exec(
            select(VideoAnalysis).where(VideoAnalysis.video_id == video_id)
        ).first()
        if not analysis:
            session.rollback()
            raise AggregationError(f"analysis record missing for video {video_id}")

        analysis.lighting_score = result.lighting_score
        analysis.sharpness_score = result.sharpness_score
        analysis.framing_score = result.framing_score
        analysis.audio_score = result.audio_score
        analysis.final_score = result.final_score
        analysis.issues = result.issues
        analysis.completed_at = utc_now()
        session.add(analysis)
        session.commit()
        return True


def fail_video(engine, video_id: UUID, error_message: str) -> bool:
    """mark a video failed"""
    with Session(engine) as session:
        claimed = _claim_terminal(session, video_id, "failed", error_message or "Unknown error occurred")
        session.commit()
    if not claimed:
        logger.warning(f"video {video_id} already left processing, failure discarded")
    return claimed


def timeout_video(engine, video_id: UUID, error_message: str = TIMEOUT_MESSAGE) -> bool:
    """mark a video timed out"""
    with Session(engine) as session:
        claimed = _claim_terminal(session, video_id, "timeout", error_message)
        session.commit()
    if not claimed:
        logger.warning(f"video {video_id} already left processing, timeout discarded")
    return claimed


def count_frames(session: Session, video_id: UUID) -> int:
    return session.exec(
        select(func.count()).select_from(VideoFrame).where(VideoFrame.video_id == video_id)
    ).one()


def get_progress(session: Session, video_id: UUID) -> int:
    """
    percent of frames persisted so far. 0 until the analysis row exists,
    since the frame count is unknown before extraction
    """
    analysis = session.exec(
        select(VideoAnalysis).where(VideoAnalysis.video_id == video_id)
    ).first()
    if not analysis or not analysis.frame_count:
        return 0
    processed = count_frames(session, video_id)
    if processed >= analysis.frame_count:
        return 100
    # half-up rounding, held below 100 until the last frame lands
    return min(99, math.floor(processed / analysis.frame_count * 100 + 0.5))
