import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence
from app.analysis.config import AnalysisConfig
from app.analysis.frames import FrameScore
from app.analysis.audio import AudioScore
from app.core.errors import AggregationError


@dataclass
class AggregateResult:
    lighting_score: float
    sharpness_score: float
    framing_score: float
    audio_score: Optional[float]
    final_score: float
    video_quality: float
    issues: Dict[str, List[str]]


def round_score(value: float) -> float:
    """one decimal, half away from zero"""
    scaled = math.floor(abs(value) * 10 + 0.5)
    return math.copysign(scaled, value) / 10


def classify_issue(issue: str, config: AnalysisConfig) -> str:
    lowered = issue.lower()
    for rule in config.issue_rules:
        if any(keyword in lowered for keyword in rule.keywords):
            return rule.category
    return config.fallback_category


def _append_unique(bucket: List[str], issue: str):
    if issue not in bucket:
        bucket.append(issue)


def classify_issues(
    frame_issues: Iterable[str],
    audio_issues: Iterable[str] = (),
    config: Optional[AnalysisConfig] = None,
) -> Dict[str, List[str]]:
    """
    bucket issue strings by category, keeping first-seen order and
    dropping exact duplicates
    """
    config = config or AnalysisConfig()
    buckets: Dict[str, List[str]] = {category: [] for category in config.categories}

    for issue in frame_issues:
        category = classify_issue(issue, config)
        _append_unique(buckets.setdefault(category, []), issue)

    for issue in audio_issues:
        _append_unique(buckets[config.audio_category], issue)

    return buckets


def aggregate(
    frames: Sequence[FrameScore],
    audio: Optional[AudioScore] = None,
    config: Optional[AnalysisConfig] = None,
) -> AggregateResult:
    config = config or AnalysisConfig()
    if not frames:
        raise AggregationError("No frames were extracted from the video")

    count = len(frames)
    avg_lighting = sum(f.lighting for f in frames) / count
    avg_sharpness = sum(f.sharpness for f in frames) / count
    avg_framing = sum(f.framing for f in frames) / count

    # each dimension is averaged across frames before combining
    video_quality = (avg_lighting + avg_sharpness + avg_framing) / 3

    audio_overall = audio.overall if audio is not None else None
    if audio_overall is not None:
        final = config.video_weight * video_quality + config.audio_weight * audio_overall
    else:
        final = video_quality

    issues = classify_issues(
        (issue for frame in frames for issue in frame.issues),
        audio.issues if audio is not None else (),
        config,
    )

    return AggregateResult(
        lighting_score=round_score(avg_lighting),
        sharpness_score=round_score(avg_sharpness),
        framing_score=round_score(avg_framing),
        audio_score=round_score(audio_overall) if audio_overall is not None else None,
        final_score=round_score(final),
        video_quality=round_score(video_quality),
        issues=issues,
    )
