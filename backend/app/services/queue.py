from redis import Redis
from rq import Queue
from app.core.config import settings
from uuid import UUID

redis_conn = Redis.from_url(settings.REDIS_URL)
queue = Queue(connection=redis_conn)

# the pipeline enforces its own deadline; rq only kills hung workers
JOB_TIMEOUT_SECONDS = int(settings.MAX_PROCESSING_SECONDS) + 120

def enqueue_video_processing(video_id: UUID, user_id: str, source_path: str):
    """hand a video to the worker; callers never wait on the result"""
    return queue.enqueue(
        "app.worker.process_video",
        str(video_id),
        user_id,
        source_path,
        job_timeout=JOB_TIMEOUT_SECONDS,
        description=f"analyze video {video_id}",
    )
