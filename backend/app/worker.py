import asyncio
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID

from app.core.config import settings
from app.core.errors import (
    AudioExtractionError,
    DeadlineExceeded,
    DownloadError,
    NotProcessingError,
    handle_worker_error,
)
from app.analysis.config import AnalysisConfig
from app.analysis.frames import FrameScore, analyze_frame
from app.analysis.audio import AudioScore, analyze_audio, AUDIO_EXTRACTION_FAILURE_ISSUE
from app.analysis.aggregate import aggregate
from app.services.ffmpeg import FFmpegTool, sampling_fps
from app.services.storage import ObjectStorage, LocalObjectStorage
from app.services.inference import InferenceClient
from app.services.video_state import (
    insert_analysis,
    insert_frame,
    complete_video,
    fail_video,
    timeout_video,
    is_processing,
)

logger = logging.getLogger(__name__)


@dataclass
class PipelineDeps:
    """collaborators for one pipeline run, passed explicitly rather than read from globals"""
    engine: object
    storage: ObjectStorage
    media: FFmpegTool
    inference: InferenceClient
    config: AnalysisConfig = field(default_factory=AnalysisConfig)
    deadline_seconds: float = settings.MAX_PROCESSING_SECONDS
    frame_delay_seconds: float = settings.FRAME_DELAY_SECONDS
    work_root: str = settings.WORK_DIR

    @classmethod
    def default(cls) -> "PipelineDeps":
        from app.core.db import engine
        return cls(
            engine=engine,
            storage=LocalObjectStorage(),
            media=FFmpegTool(),
            inference=InferenceClient(),
        )


@contextmanager
def working_area(video_id: UUID, root: str):
    """private scratch directory for one run, removed on every exit path"""
    os.makedirs(root, exist_ok=True)
    path = tempfile.mkdtemp(prefix=f"{video_id}_", dir=root)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.info(f"released working area {path}")


def frame_storage_path(user_id: str, video_id: UUID, frame_number: int) -> str:
    return f"{user_id}/{video_id}/frame_{frame_number:04d}.jpg"


def _read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _write_file(path: str, data: bytes):
    with open(path, "wb") as f:
        f.write(data)


async def _download_source(storage: ObjectStorage, source_path: str, local_path: str):
    try:
        data = await asyncio.to_thread(storage.download, source_path)
        await asyncio.to_thread(_write_file, local_path, data)
    except Exception as e:
        raise DownloadError(f"failed to download {source_path}: {e}") from e


async def _analyze_audio_track(video_path: str, work_dir: str, deps: PipelineDeps) -> AudioScore:
    audio_path = os.path.join(work_dir, "audio.wav")
    try:
        await deps.media.extract_audio(video_path, audio_path)
        pcm_bytes = await asyncio.to_thread(_read_file, audio_path)
    except (AudioExtractionError, OSError) as e:
        logger.warning(f"audio extraction failed, continuing without audio score: {e}")
        return AudioScore.empty(AUDIO_EXTRACTION_FAILURE_ISSUE)
    return await analyze_audio(pcm_bytes, deps.inference, deps.config)


async def _process(video_id: UUID, user_id: str, source_path: str, work_dir: str, deps: PipelineDeps) -> bool:
    """
    steps 2-8 of a run. fatal failures raise; per-frame and audio failures
    are absorbed by the analyzers. returns whether the completion write won
    """
    ext = os.path.splitext(source_path)[1] or ".mp4"
    video_path = os.path.join(work_dir, f"video{ext}")
    frames_dir = os.path.join(work_dir, "frames")

    logger.info(f"video {video_id}: downloading {source_path}")
    await _download_source(deps.storage, source_path, video_path)

    info = await deps.media.probe(video_path)
    fps = sampling_fps(info.duration_seconds, deps.config)
    logger.info(
        f"video {video_id}: {info.duration_seconds:.1f}s {info.width}x{info.height} "
        f"codec={info.codec} audio={info.has_audio}, sampling at {fps} fps"
    )

    frame_paths = await deps.media.extract_frames(video_path, frames_dir, fps)
    logger.info(f"video {video_id}: extracted {len(frame_paths)} frames")

    await asyncio.to_thread(insert_analysis, deps.engine, video_id, len(frame_paths), info.duration_seconds)

    frame_scores: List[FrameScore] = []
    for frame_number, frame_path in enumerate(frame_paths, start=1):
        image_bytes = await asyncio.to_thread(_read_file, frame_path)
        score = await analyze_frame(image_bytes, deps.inference, deps.config)

        storage_path = frame_storage_path(user_id, video_id, frame_number)
        await asyncio.to_thread(deps.storage.upload, storage_path, image_bytes, "image/jpeg")
        await asyncio.to_thread(
            insert_frame,
            deps.engine,
            video_id,
            frame_number,
            storage_path,
            score,
            (frame_number - 1) / fps,
        )
        frame_scores.append(score)
        logger.debug(f"video {video_id}: frame {frame_number}/{len(frame_paths)} overall={score.overall}")

        if deps.frame_delay_seconds > 0:
            await asyncio.sleep(deps.frame_delay_seconds)

    audio: Optional[AudioScore] = None
    if info.has_audio:
        audio = await _analyze_audio_track(video_path, work_dir, deps)

    result = aggregate(frame_scores, audio, deps.config)
    claimed = await asyncio.to_thread(complete_video, deps.engine, video_id, result)
    if claimed:
        logger.info(f"video {video_id}: completed, final score {result.final_score}")
    return claimed


async def _run_with_deadline(coro, seconds: float):
    """
    race the run against the watchdog. on expiry the run is cancelled and
    awaited so child processes are killed before cleanup
    """
    task = asyncio.ensure_future(coro)
    try:
        done, _ = await asyncio.wait({task}, timeout=seconds)
    except asyncio.CancelledError:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise

    if task in done:
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    if not task.cancelled() and task.exception() is None:
        # finished between the deadline firing and the cancel
        return task.result()
    raise DeadlineExceeded(f"deadline of {seconds}s exceeded")


async def run_pipeline(video_id, user_id: str, source_path: str, deps: Optional[PipelineDeps] = None) -> Optional[str]:
    """
    drive one video from 'processing' to a terminal status.

    returns the terminal status this run wrote, or None when another writer
    had already moved the video out of 'processing'
    """
    deps = deps or PipelineDeps.default()
    video_id = UUID(str(video_id))

    # redelivered jobs for finished videos must not touch rows or storage
    if not await asyncio.to_thread(is_processing, deps.engine, video_id):
        logger.warning(f"video {video_id}: not in processing, skipping run")
        return None

    logger.info(f"video {video_id}: pipeline started (deadline {deps.deadline_seconds}s)")

    try:
        with working_area(video_id, deps.work_root) as work_dir:
            claimed = await _run_with_deadline(
                _process(video_id, user_id, source_path, work_dir, deps),
                deps.deadline_seconds,
            )
        return "completed" if claimed else None
    except NotProcessingError as e:
        logger.warning(f"video {video_id}: another writer finished the video, run abandoned: {e}")
        return None
    except DeadlineExceeded:
        logger.error(f"video {video_id}: timed out after {deps.deadline_seconds}s")
        claimed = await asyncio.to_thread(timeout_video, deps.engine, video_id)
        return "timeout" if claimed else None
    except Exception as e:
        logger.error(f"video {video_id}: processing failed: {e}", exc_info=True)
        claimed = await asyncio.to_thread(fail_video, deps.engine, video_id, str(e))
        return "failed" if claimed else None


def process_video(video_id: str, user_id: str, source_path: str):
    """rq entry point"""
    try:
        return asyncio.run(run_pipeline(video_id, user_id, source_path))
    except Exception as e:
        handle_worker_error(video_id, e)
        raise


if __name__ == "__main__":
    from redis import Redis
    from rq import Worker, Queue
    import app.core.logging_config  # noqa: F401

    redis_conn = Redis.from_url(settings.REDIS_URL)
    queue = Queue(connection=redis_conn)

    logger.info(f"Starting RQ worker, listening on queue: {queue.name}")
    worker = Worker([queue], connection=redis_conn)
    worker.work()
