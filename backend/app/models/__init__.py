from .videos import Video, VIDEO_STATUSES, TERMINAL_STATUSES
from .analysis import VideoAnalysis
from .frames import VideoFrame
