from pydantic import BaseModel, Field
from typing import List
import os


class IssueRule(BaseModel):
    """an issue string containing any keyword (case-insensitive) lands in category"""
    category: str
    keywords: List[str]


DEFAULT_ISSUE_RULES = [
    IssueRule(category="lighting", keywords=["light", "bright", "dark"]),
    IssueRule(category="framing", keywords=["fram", "compos", "crop"]),
]


class AnalysisConfig(BaseModel):
    """configuration for frame sampling, scoring and issue classification"""

    # sampling
    long_video_threshold_seconds: float = float(os.getenv("ANALYSIS_LONG_VIDEO_SECONDS", "60"))
    long_video_fps: float = float(os.getenv("ANALYSIS_LONG_VIDEO_FPS", "0.5"))
    default_fps: float = float(os.getenv("ANALYSIS_DEFAULT_FPS", "1"))

    # scoring
    video_weight: float = 0.6
    audio_weight: float = 0.4
    neutral_score: float = 5.0
    min_score: float = 1.0
    max_score: float = 10.0

    # issue classification, first matching rule wins
    issue_rules: List[IssueRule] = Field(default_factory=lambda: list(DEFAULT_ISSUE_RULES))
    fallback_category: str = "technical"
    audio_category: str = "audio"

    @property
    def categories(self) -> List[str]:
        ordered = [rule.category for rule in self.issue_rules]
        for extra in (self.fallback_category, self.audio_category):
            if extra not in ordered:
                ordered.append(extra)
        return ordered
