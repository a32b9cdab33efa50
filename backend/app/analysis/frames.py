import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional
from app.analysis.config import AnalysisConfig

logger = logging.getLogger(__name__)

FRAME_FAILURE_ISSUE = "Analysis failed"


@dataclass
class FrameScore:
    lighting: float
    sharpness: float
    framing: float
    overall: float
    issues: List[str] = field(default_factory=list)

    @classmethod
    def fallback(cls, config: Optional[AnalysisConfig] = None) -> "FrameScore":
        neutral = (config or AnalysisConfig()).neutral_score
        return cls(neutral, neutral, neutral, neutral, [FRAME_FAILURE_ISSUE])


def coerce_score(value: Any, config: AnalysisConfig) -> float:
    """float in [min_score, max_score]; absent or non-numeric values become the neutral score"""
    if isinstance(value, bool) or value is None:
        return config.neutral_score
    try:
        number = float(value)
    except (TypeError, ValueError):
        return config.neutral_score
    if math.isnan(number):
        return config.neutral_score
    return min(max(number, config.min_score), config.max_score)


def coerce_issues(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(issue) for issue in value if issue is not None]


async def analyze_frame(image_bytes: bytes, client, config: Optional[AnalysisConfig] = None) -> FrameScore:
    """
    score one frame with the vision capability.

    never raises: any failure yields the neutral fallback so a single bad frame
    cannot abort the job
    """
    config = config or AnalysisConfig()
    try:
        result = await client.score_frame(image_bytes)
        return FrameScore(
            lighting=coerce_score(result.get("lighting"), config),
            sharpness=coerce_score(result.get("sharpness"), config),
            framing=coerce_score(result.get("framing"), config),
            overall=coerce_score(result.get("overall"), config),
            issues=coerce_issues(result.get("issues")),
        )
    except Exception as e:
        logger.warning(f"frame analysis degraded to fallback: {e}")
        return FrameScore.fallback(config)
