"""
Content generation capability consumed by the pipeline.

The core only depends on `ContentService`: text extraction from an image and
question generation from text, both failing with `ExternalServiceError`
whose `retryable` flag marks busy / rate-limited signals. `GeminiContentService`
is the production implementation on top of google-genai.
"""
from abc import ABC, abstractmethod
from typing import Optional
import logging

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from app.core.config import settings
from app.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 503}
RETRYABLE_MARKERS = ("overloaded", "quota", "rate limit", "resource_exhausted", "unavailable")

IMAGE_TEXT_PROMPT = """Extract all visible text from this image.
If it contains educational material, reading passages or academic documents,
include all of the text in a clear, structured way.

Respond ONLY with the extracted text, without additional comments."""

QUESTIONS_PROMPT = """You are an exam generator for school students.
Read the following text and generate exactly {count} multiple-choice questions.
Each question must have exactly 4 options (A, B, C, D) with exactly one correct answer.
Return ONLY valid JSON with this exact shape:

[
  {{
    "questionText": "question text",
    "options": [
      {{"letter": "A", "text": "option A", "isCorrect": true}},
      {{"letter": "B", "text": "option B", "isCorrect": false}},
      {{"letter": "C", "text": "option C", "isCorrect": false}},
      {{"letter": "D", "text": "option D", "isCorrect": false}}
    ],
    "difficulty": "easy" | "medium" | "hard",
    "explanation": "why the correct option is correct"
  }}
]

Do not include any text outside the JSON.

Source text:
{content}"""


class ContentService(ABC):
    @abstractmethod
    async def extract_text(self, data: bytes, mime_type: str) -> str:
        """Return the text visible in an image."""
        pass

    @abstractmethod
    async def generate_questions(self, content_text: str, count: int) -> str:
        """Return the raw model output describing `count` questions."""
        pass


class GeminiContentService(ContentService):
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 temperature: Optional[float] = None):
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self.temperature = settings.GEMINI_TEMPERATURE if temperature is None else temperature
        self._client: Optional[genai.Client] = None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise ExternalServiceError("GEMINI_API_KEY is not set. Add it to your .env file.")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def extract_text(self, data: bytes, mime_type: str) -> str:
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=data, mime_type=mime_type),
                    IMAGE_TEXT_PROMPT,
                ],
                config=types.GenerateContentConfig(temperature=0.1),
            )
        except genai_errors.APIError as e:
            raise self._translate_error(e) from e
        return response.text or ""

    async def generate_questions(self, content_text: str, count: int) -> str:
        client = self._get_client()
        prompt = QUESTIONS_PROMPT.format(count=count, content=content_text[:settings.MAX_CONTENT_CHARS])
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    response_mime_type="application/json",
                ),
            )
        except genai_errors.APIError as e:
            raise self._translate_error(e) from e
        return response.text or ""

    @staticmethod
    def _translate_error(error: genai_errors.APIError) -> ExternalServiceError:
        message = str(error)
        retryable = (
            getattr(error, "code", None) in RETRYABLE_STATUS_CODES
            or any(marker in message.lower() for marker in RETRYABLE_MARKERS)
        )
        logger.warning(f"Content service error (code={getattr(error, 'code', None)}, retryable={retryable}): {message}")
        return ExternalServiceError(f"Content service error: {message}", retryable=retryable)


_content_service: Optional[ContentService] = None


def get_content_service() -> ContentService:
    global _content_service
    if _content_service is None:
        _content_service = GeminiContentService()
    return _content_service
