import base64
import json
import logging
from typing import Optional
from app.core.config import settings
from app.core.errors import InferenceError

logger = logging.getLogger(__name__)

FRAME_PROMPT = (
    "Analyze this UGC video frame quality. Rate lighting (1-10), sharpness/focus (1-10), "
    "framing/composition (1-10). Identify specific issues. Return JSON only with this exact "
    'structure: {"lighting": number, "sharpness": number, "framing": number, '
    '"overall": number, "issues": string[]}'
)

AUDIO_PROMPT = (
    'Evaluate this UGC video audio quality from transcript: "{transcript}". '
    "Rate clarity (1-10), background noise (1-10 where 10=clean), distortion (1-10 where 10=none). "
    'Return JSON only: {{"clarity": number, "noise": number, "distortion": number, '
    '"overall": number, "issues": string[]}}'
)


def parse_json_object(content: Optional[str]) -> dict:
    """parse a model reply into a dict, tolerating markdown code fences"""
    if not content:
        raise InferenceError("empty response from inference capability")
    text = content.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        text = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    try:
        data = json.loads(text)
    except ValueError as e:
        raise InferenceError(f"malformed json from inference capability: {e}") from e
    if not isinstance(data, dict):
        raise InferenceError(f"expected a json object, got {type(data).__name__}")
    return data


class InferenceClient:
    """
    OpenAI-backed vision scoring, transcription and transcript rating.

    every failure surfaces as InferenceError so callers only need one
    degradation path
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        vision_model: Optional[str] = None,
        rating_model: Optional[str] = None,
        transcription_model: Optional[str] = None,
    ):
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.vision_model = vision_model or settings.VISION_MODEL
        self.rating_model = rating_model or settings.RATING_MODEL
        self.transcription_model = transcription_model or settings.TRANSCRIPTION_MODEL
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def score_frame(self, image_bytes: bytes) -> dict:
        image_base64 = base64.b64encode(image_bytes).decode()
        try:
            response = await self.client.chat.completions.create(
                model=self.vision_model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": FRAME_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {
                                    "url": f"data:image/jpeg;base64,{image_base64}",
                                    "detail": "low",
                                },
                            },
                        ],
                    }
                ],
                max_tokens=500,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise InferenceError(f"vision request failed: {e}") from e
        return parse_json_object(response.choices[0].message.content)

    async def transcribe(self, audio_bytes: bytes) -> str:
        try:
            transcription = await self.client.audio.transcriptions.create(
                model=self.transcription_model,
                file=("audio.wav", audio_bytes, "audio/wav"),
            )
        except Exception as e:
            raise InferenceError(f"transcription request failed: {e}") from e
        return transcription.text or ""

    async def rate_transcript(self, transcript: str) -> dict:
        try:
            response = await self.client.chat.completions.create(
                model=self.rating_model,
                messages=[{"role": "user", "content": AUDIO_PROMPT.format(transcript=transcript)}],
                max_tokens=300,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise InferenceError(f"audio rating request failed: {e}") from e
        return parse_json_object(response.choices[0].message.content)
