import logging
from dataclasses import dataclass, field
from typing import List, Optional
from app.analysis.config import AnalysisConfig
from app.analysis.frames import coerce_score, coerce_issues

logger = logging.getLogger(__name__)

NO_AUDIO_ISSUE = "No audio detected"
AUDIO_FAILURE_ISSUE = "Audio analysis failed"
AUDIO_EXTRACTION_FAILURE_ISSUE = "Audio extraction or analysis failed"


@dataclass
class AudioScore:
    clarity: Optional[float] = None
    noise: Optional[float] = None
    distortion: Optional[float] = None
    overall: Optional[float] = None
    issues: List[str] = field(default_factory=list)

    @classmethod
    def empty(cls, issue: str) -> "AudioScore":
        return cls(issues=[issue])


async def analyze_audio(pcm_bytes: bytes, client, config: Optional[AnalysisConfig] = None) -> AudioScore:
    """
    transcribe, then rate the transcript.

    silence short-circuits to "No audio detected"; any failure in either stage
    degrades to null scores instead of raising
    """
    config = config or AnalysisConfig()
    try:
        transcript = await client.transcribe(pcm_bytes)
        if not transcript or not transcript.strip():
            return AudioScore.empty(NO_AUDIO_ISSUE)

        result = await client.rate_transcript(transcript)
        return AudioScore(
            clarity=coerce_score(result.get("clarity"), config),
            noise=coerce_score(result.get("noise"), config),
            distortion=coerce_score(result.get("distortion"), config),
            overall=coerce_score(result.get("overall"), config),
            issues=coerce_issues(result.get("issues")),
        )
    except Exception as e:
        logger.warning(f"audio analysis degraded: {e}")
        return AudioScore.empty(AUDIO_FAILURE_ISSUE)
