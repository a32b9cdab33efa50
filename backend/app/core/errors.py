import logging

logger = logging.getLogger(__name__)


def handle_worker_error(video_id: str, error: BaseException):
    """
    centralized error handler for worker jobs
    logs error so the rq failure registry has context next to it
    """
    logger.error(f"video {video_id} pipeline crashed: {error}", exc_info=error)


class GraderException(Exception):
    """base exception for framegrade-specific errors"""
    pass


class DownloadError(GraderException):
    """raised when the source video cannot be fetched from object storage"""
    pass


class ProbeError(GraderException):
    """raised when ffprobe cannot read the container"""
    pass


class FrameExtractionError(GraderException):
    """raised when ffmpeg fails to rasterize frames"""
    pass


class AudioExtractionError(GraderException):
    """raised when ffmpeg fails to extract the audio track (non-fatal)"""
    pass


class InferenceError(GraderException):
    """raised by inference clients; analyzers degrade instead of propagating it"""
    pass


class AggregationError(GraderException):
    """raised when there is nothing to aggregate, e.g. zero extracted frames"""
    pass


class DeadlineExceeded(GraderException):
    """marks a run preempted by the processing deadline"""
    pass


class StorageError(GraderException):
    """raised when an object storage operation fails"""
    pass


class UploadValidationError(GraderException):
    """raised when an upload request has a bad filename, size or type"""
    pass


class InvalidStateError(GraderException):
    """raised when a video is not in a status that allows the operation"""
    pass


class NotProcessingError(InvalidStateError):
    """raised when a pipeline write targets a video that already left 'processing'"""
    pass
