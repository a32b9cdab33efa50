import asyncio
import json
import logging
import os
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence
from app.core.config import settings
from app.core.errors import ProbeError, FrameExtractionError, AudioExtractionError
from app.analysis.config import AnalysisConfig

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%04d.jpg"
_FRAME_INDEX = re.compile(r"frame_(\d+)\.jpg$")


@dataclass
class MediaInfo:
    duration_seconds: float
    width: int
    height: int
    has_audio: bool
    codec: Optional[str]


def sampling_fps(duration_seconds: float, config: Optional[AnalysisConfig] = None) -> float:
    """
    frame extraction rate for a video of the given length.
    long videos are sampled at a lower rate to bound inference cost
    """
    config = config or AnalysisConfig()
    if duration_seconds > config.long_video_threshold_seconds:
        return config.long_video_fps
    return config.default_fps


def parse_probe_output(raw: str) -> MediaInfo:
    """
    turns ffprobe json (-show_format -show_streams) into MediaInfo.
    raises ProbeError if the output is unusable or there is no video stream
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProbeError(f"unreadable probe output: {e}") from e

    streams = data.get("streams") or []
    video_stream = next((s for s in streams if s.get("codec_type") == "video"), None)
    if not video_stream:
        raise ProbeError("No video stream found")
    audio_stream = next((s for s in streams if s.get("codec_type") == "audio"), None)

    try:
        duration = float((data.get("format") or {}).get("duration") or video_stream.get("duration") or 0)
    except (TypeError, ValueError) as e:
        raise ProbeError(f"invalid duration in probe output: {e}") from e

    return MediaInfo(
        duration_seconds=duration,
        width=int(video_stream.get("width", 0) or 0),
        height=int(video_stream.get("height", 0) or 0),
        has_audio=audio_stream is not None,
        codec=video_stream.get("codec_name"),
    )


def _frame_index(path: str) -> int:
    match = _FRAME_INDEX.search(os.path.basename(path))
    return int(match.group(1)) if match else 0


async def run_command(cmd: Sequence[str]) -> tuple:
    """
    runs a subprocess and returns (returncode, stdout, stderr).
    if the awaiting task is cancelled the child process is killed
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        logger.warning(f"killed {cmd[0]} (pid {proc.pid}) after cancellation")
        raise
    return proc.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace")


class FFmpegTool:
    """async wrapper around ffprobe/ffmpeg invocations"""

    def __init__(self, ffmpeg_bin: Optional[str] = None, ffprobe_bin: Optional[str] = None):
        self.ffmpeg_bin = ffmpeg_bin or settings.FFMPEG_BIN
        self.ffprobe_bin = ffprobe_bin or settings.FFPROBE_BIN

    async def probe(self, local_path: str) -> MediaInfo:
        cmd = [
            self.ffprobe_bin,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            local_path,
        ]
        try:
            code, stdout, stderr = await run_command(cmd)
        except OSError as e:
            raise ProbeError(f"could not run {self.ffprobe_bin}: {e}") from e
        if code != 0:
            raise ProbeError(f"ffprobe exited with code {code}: {stderr.strip()[:500]}")
        return parse_probe_output(stdout)

    async def extract_frames(self, local_path: str, out_dir: str, fps: float) -> List[str]:
        """rasterize one jpeg per sampled instant, returned in frame order"""
        os.makedirs(out_dir, exist_ok=True)
        cmd = [
            self.ffmpeg_bin,
            "-i", local_path,
            "-vf", f"fps={fps}",
            "-q:v", "2",  # high jpeg quality
            "-y",
            os.path.join(out_dir, FRAME_PATTERN),
        ]
        try:
            code, _, stderr = await run_command(cmd)
        except OSError as e:
            raise FrameExtractionError(f"could not run {self.ffmpeg_bin}: {e}") from e
        if code != 0:
            raise FrameExtractionError(f"ffmpeg frame extraction failed ({code}): {stderr.strip()[-500:]}")

        frames = [
            os.path.join(out_dir, name)
            for name in os.listdir(out_dir)
            if _FRAME_INDEX.search(name)
        ]
        return sorted(frames, key=_frame_index)

    async def extract_audio(self, local_path: str, out_path: str) -> None:
        """mono 16khz 16-bit pcm wav, the normalized input for transcription"""
        cmd = [
            self.ffmpeg_bin,
            "-i", local_path,
            "-vn",  # no video
            "-acodec", "pcm_s16le",
            "-ar", "16000",
            "-ac", "1",
            "-y",
            out_path,
        ]
        try:
            code, _, stderr = await run_command(cmd)
        except OSError as e:
            raise AudioExtractionError(f"could not run {self.ffmpeg_bin}: {e}") from e
        if code != 0:
            raise AudioExtractionError(f"ffmpeg audio extraction failed ({code}): {stderr.strip()[-500:]}")
