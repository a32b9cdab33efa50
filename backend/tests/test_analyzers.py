import asyncio
from app.analysis.audio import analyze_audio, AUDIO_FAILURE_ISSUE, NO_AUDIO_ISSUE
from app.analysis.frames import analyze_frame, FrameScore, FRAME_FAILURE_ISSUE
from fakes import FakeInference


class ScriptedVision:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error

    async def score_frame(self, image_bytes):
        if self.error:
            raise self.error
        return self.reply


def test_frame_scores_are_coerced():
    client = ScriptedVision({
        "lighting": "7.5",
        "sharpness": 9,
        "framing": None,
        "overall": "great",
        "issues": ["Slight blur"],
    })
    score = asyncio.run(analyze_frame(b"jpeg", client))

    assert score == FrameScore(7.5, 9.0, 5.0, 5.0, ["Slight blur"])


def test_frame_missing_fields_default_to_neutral():
    score = asyncio.run(analyze_frame(b"jpeg", ScriptedVision({})))

    assert score == FrameScore(5.0, 5.0, 5.0, 5.0, [])


def test_frame_issues_must_be_a_list():
    score = asyncio.run(analyze_frame(b"jpeg", ScriptedVision({"lighting": 8, "issues": "too dark"})))

    assert score.issues == []
    assert score.lighting == 8.0


def test_frame_scores_clamped_to_scale():
    score = asyncio.run(analyze_frame(b"jpeg", ScriptedVision({"lighting": 14, "sharpness": -3, "framing": 0.5})))

    assert score.lighting == 10.0
    assert score.sharpness == 1.0
    assert score.framing == 1.0


def test_frame_failure_returns_neutral_fallback():
    score = asyncio.run(analyze_frame(b"jpeg", ScriptedVision(error=RuntimeError("503 from capability"))))

    assert score == FrameScore(5, 5, 5, 5, [FRAME_FAILURE_ISSUE])


def test_frame_malformed_reply_returns_fallback():
    # a list has no .get, which must still degrade rather than raise
    score = asyncio.run(analyze_frame(b"jpeg", ScriptedVision(["not", "an", "object"])))

    assert score.issues == [FRAME_FAILURE_ISSUE]


def test_audio_scored_from_transcript():
    score = asyncio.run(analyze_audio(b"pcm", FakeInference()))

    assert score.overall == 6.0
    assert score.clarity == 8.0
    assert score.issues == ["Slight echo"]


def test_silent_audio_short_circuits():
    client = FakeInference(transcript="   \n", rating_error=True)
    score = asyncio.run(analyze_audio(b"pcm", client))

    assert score.overall is None
    assert score.clarity is None
    assert score.issues == [NO_AUDIO_ISSUE]


def test_transcription_failure_degrades():
    score = asyncio.run(analyze_audio(b"pcm", FakeInference(transcription_error=True)))

    assert score.overall is None
    assert score.issues == [AUDIO_FAILURE_ISSUE]


def test_rating_failure_degrades():
    score = asyncio.run(analyze_audio(b"pcm", FakeInference(rating_error=True)))

    assert (score.clarity, score.noise, score.distortion, score.overall) == (None, None, None, None)
    assert score.issues == [AUDIO_FAILURE_ISSUE]
