from .config import AnalysisConfig, IssueRule
from .frames import FrameScore, analyze_frame
from .audio import AudioScore, analyze_audio
from .aggregate import AggregateResult, aggregate, classify_issues, round_score
